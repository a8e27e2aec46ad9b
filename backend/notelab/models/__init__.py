"""
SQLAlchemy models for Note.Lab.

All models are exported from this module for easy importing.
"""

# User authentication models
from notelab.models.user import User, UserSession

# Notes and categories
from notelab.models.note import Note, NoteCategory, NoteCategoryAssignment, NoteType

# Rate limiting
from notelab.models.rate_limit import RateLimitRecord

# Activity log
from notelab.models.activity import ActivityLog, ActivityAction

__all__ = [
    "User",
    "UserSession",
    "Note",
    "NoteCategory",
    "NoteCategoryAssignment",
    "NoteType",
    "RateLimitRecord",
    "ActivityLog",
    "ActivityAction",
]
