"""
Note and category models.

Notes are soft-deleted through `deleted_at`; every query that serves users
must filter on `deleted_at IS NULL`.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, Boolean, Integer, Text, JSON, ForeignKey,
    Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from notelab.database import Base


class NoteType(str, enum.Enum):
    """Kinds of notes the editor knows how to render"""
    STANDARD = "standard"
    PLAN = "plan"
    CODE = "code"
    CREDENTIALS = "credentials"


class Note(Base):
    """A user's note"""
    __tablename__ = "notes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False, default=NoteType.STANDARD.value)
    starred = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    note_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="notes")
    categories = relationship(
        "NoteCategory",
        secondary="note_category_assignments",
        back_populates="notes",
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_notes_user_deleted", "user_id", "deleted_at"),
        Index("ix_notes_user_updated", "user_id", "updated_at"),
    )

    def __repr__(self):
        return f"<Note(id={self.id}, title={self.title!r}, type={self.type})>"


class NoteCategory(Base):
    """User-defined folder-like grouping of notes"""
    __tablename__ = "note_categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False, default="#238636")
    icon = Column(String(10), nullable=False, default="📄")
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="categories")
    notes = relationship(
        "Note",
        secondary="note_category_assignments",
        back_populates="categories",
        viewonly=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_note_categories_user_name"),
    )

    def __repr__(self):
        return f"<NoteCategory(id={self.id}, name={self.name!r})>"


class NoteCategoryAssignment(Base):
    """Many-to-many link between notes and categories"""
    __tablename__ = "note_category_assignments"

    note_id = Column(Uuid(as_uuid=True), ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("note_categories.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<NoteCategoryAssignment(note_id={self.note_id}, category_id={self.category_id})>"
