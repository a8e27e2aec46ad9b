"""
Bearer token issuance and verification.

Tokens are compact HS256 JWTs carrying ``sub``, ``email``, ``name``, ``iat``
and ``exp``. They are never stored or revoked server-side; expiry is the only
invalidation, and rotating the secret invalidates every outstanding token.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError

logger = logging.getLogger(__name__)

JWT_INSECURE_DEFAULTS = {
    "",
    "secret",
    "your-secret-key",
    "your-secret-key-change-in-production",
    "change-me",
    "changeme",
    "dev-secret-key",
}


def jwt_secret_is_insecure(secret_key: Optional[str]) -> bool:
    """Empty or a well-known placeholder value"""
    key = (secret_key or "").strip().lower()
    return (
        key in JWT_INSECURE_DEFAULTS
        or key.startswith("your-secret-key")
        or key.startswith("change_me")
    )


class TokenError(Exception):
    """Base class for token verification failures"""


class InvalidTokenError(TokenError):
    """Signature mismatch, malformed token or missing claims"""


class TokenExpiredError(TokenError):
    """Valid signature, but the token is past its expiry"""


@dataclass(frozen=True)
class TokenIdentity:
    """Identity decoded from a verified token"""
    id: str
    email: str
    name: str


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
    ):
        if not secret_key:
            raise ValueError("A signing secret is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, user_id, email: str, name: str, now: Optional[datetime] = None) -> str:
        """
        Create a signed token for a user.

        Args:
            user_id: User identifier (becomes ``sub``)
            email: User email
            name: Display name
            now: Issue time (UTC); defaults to the current time

        Returns:
            Serialized JWT
        """
        issued_at = now or datetime.utcnow()
        claims = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenIdentity:
        """
        Verify signature and expiry.

        Raises:
            InvalidTokenError: Bad signature, malformed token or missing subject
            TokenExpiredError: Signature is valid but ``exp`` has passed
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError("Token has no subject")

        return TokenIdentity(
            id=subject,
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )


_ephemeral_secret: Optional[str] = None


def build_token_service(settings) -> TokenService:
    """
    Build the token service from application settings.

    Without a configured secret (allowed only in development, see startup
    checks) a random per-process secret is used, so tokens do not survive
    a restart.
    """
    global _ephemeral_secret

    secret = (settings.jwt_secret_key or "").strip()
    if jwt_secret_is_insecure(secret) and not settings.is_development:
        raise RuntimeError("JWT_SECRET_KEY must be set to a non-default value outside development")
    if not secret:
        if _ephemeral_secret is None:
            _ephemeral_secret = secrets.token_urlsafe(64)
            logger.warning("JWT_SECRET_KEY not set; using an ephemeral development secret")
        secret = _ephemeral_secret

    return TokenService(
        secret_key=secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(days=settings.jwt_expire_days),
    )
