"""
Activity logging.

Entries are best-effort: a failed write is logged and rolled back, never
raised into the request that triggered it.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notelab.models import ActivityLog, ActivityAction
from notelab.utils.ip_utils import get_client_ip

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes entries to the activity log"""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: ActivityAction,
        user_id: Optional[UUID] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        """
        Record an action.

        Returns:
            The created entry, or None if the write failed
        """
        entry = ActivityLog(
            action=action.value,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id else None,
            details=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to write activity log {action.value}: {e}")
            return None

        logger.debug(f"Activity logged: {action.value} by {user_id}")
        return entry

    def log_request(self, request, action: ActivityAction, user_id: Optional[UUID] = None, **kwargs):
        """log() with client address and user agent taken from the request"""
        return self.log(
            action,
            user_id=user_id,
            ip_address=getattr(request.state, "client_ip", None) or get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
            **kwargs,
        )
