"""
Server-side sessions issued alongside bearer tokens.

Only the SHA-256 hash of the opaque session token is stored. Invalidation is
a soft delete (``is_active = False``).
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from notelab.models import UserSession

logger = logging.getLogger(__name__)


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionService:
    """Create, validate and invalidate user sessions"""

    def __init__(self, db: Session, expire_days: int = 7):
        self.db = db
        self.expire_days = expire_days

    def create(self, user_id: UUID, now: Optional[datetime] = None) -> Tuple[UserSession, str]:
        """
        Create a session for a user.

        Returns:
            Tuple of (session record, raw session token). The raw token is
            returned once and never stored.
        """
        now = now or datetime.utcnow()
        token = secrets.token_urlsafe(32)

        session = UserSession(
            user_id=user_id,
            token_hash=hash_session_token(token),
            is_active=True,
            created_at=now,
            expires_at=now + timedelta(days=self.expire_days),
            last_used_at=now,
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)

        logger.debug(f"Session created for user {user_id}: {session.id}")
        return session, token

    def validate(self, token: str, now: Optional[datetime] = None) -> Optional[UserSession]:
        """Return the active, unexpired session for token and refresh last_used_at"""
        if not token:
            return None

        now = now or datetime.utcnow()
        session = self.db.query(UserSession).filter(
            UserSession.token_hash == hash_session_token(token),
            UserSession.is_active == True,  # noqa: E712
            UserSession.expires_at > now,
        ).first()

        if not session:
            return None

        session.last_used_at = now
        self.db.commit()
        return session

    def invalidate(self, session_id: UUID, user_id: UUID) -> bool:
        """Deactivate one of the user's sessions; False if it was not found"""
        session = self.db.query(UserSession).filter(
            UserSession.id == session_id,
            UserSession.user_id == user_id,
            UserSession.is_active == True,  # noqa: E712
        ).first()

        if not session:
            return False

        session.is_active = False
        self.db.commit()
        logger.info(f"Session {session_id} invalidated for user {user_id}")
        return True

    def invalidate_all(self, user_id: UUID) -> int:
        """Deactivate every active session of a user; returns how many"""
        count = self.db.query(UserSession).filter(
            UserSession.user_id == user_id,
            UserSession.is_active == True,  # noqa: E712
        ).update({UserSession.is_active: False}, synchronize_session=False)
        self.db.commit()

        if count:
            logger.info(f"Invalidated {count} sessions for user {user_id}")
        return count

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Delete sessions that are past expiry or inactive"""
        now = now or datetime.utcnow()
        count = self.db.query(UserSession).filter(
            (UserSession.expires_at < now) | (UserSession.is_active == False)  # noqa: E712
        ).delete(synchronize_session=False)
        self.db.commit()

        logger.info(f"Cleaned up {count} expired sessions")
        return count
