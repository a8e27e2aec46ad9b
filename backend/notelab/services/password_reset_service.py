"""
Password reset service for self-service password recovery.

Lifecycle of a reset token: Requested -> Issued -> (Consumed | Expired).

- Tokens live in the key-value store under ``reset_<token>`` with a TTL equal
  to their logical expiry (1 hour by default).
- Unknown emails get exactly the same outcome as known ones.
- Email delivery is best-effort: the token is already stored when sending
  is attempted, so a failure is logged and swallowed.
- Tokens are single use; an expired entry found before the store evicted it
  is deleted on sight.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy.orm import Session

from notelab.models import User
from notelab.services.email_service import EmailService
from notelab.services.kv_store import KeyValueStore
from notelab.services.password_hasher import PasswordHasher
from notelab.services.session_service import SessionService
from notelab.utils.validators import RESET_PASSWORD_MIN_LENGTH

logger = logging.getLogger(__name__)


class PasswordResetError(Exception):
    """Raised when password reset fails"""

    code = "PASSWORD_RESET_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code


class InvalidResetTokenError(PasswordResetError):
    code = "INVALID_RESET_TOKEN"


class ResetTokenExpiredError(PasswordResetError):
    code = "RESET_TOKEN_EXPIRED"


class PasswordResetService:
    """Service for password reset operations"""

    KEY_PREFIX = "reset_"
    TOKEN_EXPIRY_SECONDS = 3600

    def __init__(
        self,
        db: Session,
        store: KeyValueStore,
        hasher: PasswordHasher,
        email_service: Optional[EmailService] = None,
        ttl_seconds: int = TOKEN_EXPIRY_SECONDS,
    ):
        self.db = db
        self.store = store
        self.hasher = hasher
        self.email_service = email_service
        self.ttl_seconds = ttl_seconds

    @classmethod
    def _key(cls, token: str) -> str:
        return f"{cls.KEY_PREFIX}{token}"

    @staticmethod
    def build_reset_url(base_url: str, token: str, email: str) -> str:
        query = urlencode({"token": token, "email": email})
        return f"{base_url.rstrip('/')}/forgot-password.html?{query}"

    def request_reset(
        self,
        email: str,
        reset_url_base: str,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Issue a reset token for the account with this email, if any.

        Args:
            email: Address the user typed
            reset_url_base: Frontend origin used to build the emailed link
            now: Issue time (UTC)

        Returns:
            The issued token, or None for an unknown email. Callers must
            respond identically in both cases.
        """
        user = self.db.query(User).filter(User.email == email).first()

        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        now = now or datetime.utcnow()
        token = self._generate_token()
        record = {
            "userId": str(user.id),
            "email": user.email,
            "name": user.name,
            "expiresAt": (now + timedelta(seconds=self.ttl_seconds)).isoformat(),
        }
        self.store.put_json(self._key(token), record, self.ttl_seconds)

        logger.info(f"Password reset token issued for user {user.id}")

        self._notify(
            "reset request",
            lambda: self.email_service.send_password_reset(
                user.email,
                user.name,
                self.build_reset_url(reset_url_base, token, user.email),
            ),
        )

        return token

    def reset_password(
        self,
        token: str,
        new_password: str,
        now: Optional[datetime] = None,
    ) -> User:
        """
        Consume a reset token and set a new password.

        Raises:
            PasswordResetError: New password shorter than the reset minimum
            InvalidResetTokenError: Unknown or already consumed token
            ResetTokenExpiredError: Token found but past its expiry (it is deleted)
        """
        if len(new_password) < RESET_PASSWORD_MIN_LENGTH:
            raise PasswordResetError(
                f"Password must be at least {RESET_PASSWORD_MIN_LENGTH} characters long",
                code="PASSWORD_TOO_SHORT",
            )

        key = self._key(token)
        record = self.store.get_json(key)
        if not record:
            raise InvalidResetTokenError("Invalid or expired reset token")

        now = now or datetime.utcnow()
        if self._is_expired(record, now):
            self.store.delete(key)
            logger.info("Expired password reset token presented and removed")
            raise ResetTokenExpiredError("Reset token has expired")

        user = self.db.query(User).filter(User.id == _parse_uuid(record.get("userId"))).first()
        if not user:
            self.store.delete(key)
            raise InvalidResetTokenError("Invalid or expired reset token")

        # Consume the token before the password changes; a concurrent reset
        # that already removed it loses
        if not self.store.delete(key):
            raise InvalidResetTokenError("Invalid or expired reset token")

        user.password_hash = self.hasher.hash(new_password)
        user.updated_at = now
        self.db.commit()

        # Force re-login everywhere
        SessionService(self.db).invalidate_all(user.id)

        logger.info(f"Password reset successful for user {user.id}")

        self._notify(
            "reset success",
            lambda: self.email_service.send_password_reset_success(user.email, user.name),
        )

        return user

    def _notify(self, label: str, send) -> None:
        """Best-effort email delivery"""
        if self.email_service is None:
            return
        try:
            send()
        except Exception as e:
            logger.error(f"Failed to send password {label} email: {e}", exc_info=True)

    @staticmethod
    def _is_expired(record: dict, now: datetime) -> bool:
        expires_at = record.get("expiresAt")
        if not expires_at:
            return True
        try:
            return datetime.fromisoformat(expires_at) <= now
        except (TypeError, ValueError):
            return True

    @staticmethod
    def _generate_token() -> str:
        """Cryptographically secure opaque token (256 bits)"""
        return secrets.token_urlsafe(32)


def _parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None
