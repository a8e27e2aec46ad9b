"""
Activity log model.

Best-effort trail of user actions (logins, note edits, password resets).
Writes never block or fail the request that triggered them.
"""

from sqlalchemy import Column, String, DateTime, Text, Integer, JSON, Uuid, Index
from datetime import datetime
import enum
from notelab.database import Base


class ActivityAction(str, enum.Enum):
    """Types of logged actions"""
    # Authentication
    USER_REGISTER = "user_register"
    USER_LOGIN = "user_login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET_COMPLETE = "password_reset_complete"
    PROFILE_UPDATE = "profile_update"

    # Notes
    NOTES_LIST = "notes_list"
    NOTES_SEARCH = "notes_search"
    NOTE_CREATE = "note_create"
    NOTE_VIEW = "note_view"
    NOTE_UPDATE = "note_update"
    NOTE_DELETE = "note_delete"
    NOTES_BULK_UPDATE = "notes_bulk_update"

    # Categories
    CATEGORY_CREATE = "category_create"
    CATEGORY_UPDATE = "category_update"
    CATEGORY_DELETE = "category_delete"
    CATEGORIES_ASSIGN = "categories_assign"


class ActivityLog(Base):
    """One logged user action"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: entries outlive deleted users
    user_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(64), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_activity_logs_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<ActivityLog(action={self.action}, user_id={self.user_id})>"
