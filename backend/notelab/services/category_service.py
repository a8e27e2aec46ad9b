"""
Category service.

Categories are per-user and unique by name. A category cannot be deleted
while notes are assigned to it.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from notelab.error_handlers import ConflictError, NotFoundError, ValidationError
from notelab.models import Note, NoteCategory, NoteCategoryAssignment
from notelab.schemas.category_schemas import (
    CategoryAssignRequest,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
)
from notelab.utils.validators import is_valid_hex_color, is_valid_uuid, sanitize_string

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#238636"
DEFAULT_ICON = "📄"


def serialize_category(category: NoteCategory, note_count=None, timestamps: bool = True) -> dict:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        color=category.color,
        icon=category.icon,
        sort_order=category.sort_order,
        note_count=note_count,
        created_at=category.created_at if timestamps else None,
        updated_at=category.updated_at if timestamps else None,
    ).to_response()


class CategoryService:
    """CRUD for a user's categories and note assignment"""

    def __init__(self, db: Session, user_id: UUID):
        self.db = db
        self.user_id = user_id

    def _owned(self):
        return self.db.query(NoteCategory).filter(NoteCategory.user_id == self.user_id)

    def _note_count(self, category_id: UUID) -> int:
        return self.db.query(func.count(NoteCategoryAssignment.note_id)).filter(
            NoteCategoryAssignment.category_id == category_id
        ).scalar() or 0

    def _name_taken(self, name: str, exclude_id: UUID = None) -> bool:
        query = self._owned().filter(NoteCategory.name == name)
        if exclude_id is not None:
            query = query.filter(NoteCategory.id != exclude_id)
        return query.first() is not None

    def get_owned(self, category_id: str) -> NoteCategory:
        if not is_valid_uuid(str(category_id)):
            raise ValidationError("Invalid category ID", "INVALID_CATEGORY_ID")

        category = self._owned().filter(NoteCategory.id == UUID(str(category_id))).first()
        if not category:
            raise NotFoundError("Category not found", "CATEGORY_NOT_FOUND")
        return category

    def list_categories(self) -> List[dict]:
        counts = dict(
            self.db.query(
                NoteCategoryAssignment.category_id,
                func.count(NoteCategoryAssignment.note_id),
            ).join(
                NoteCategory, NoteCategory.id == NoteCategoryAssignment.category_id
            ).filter(
                NoteCategory.user_id == self.user_id
            ).group_by(NoteCategoryAssignment.category_id).all()
        )

        categories = self._owned().order_by(NoteCategory.sort_order, NoteCategory.name).all()
        return [serialize_category(c, note_count=counts.get(c.id, 0)) for c in categories]

    def create(self, data: CategoryCreate) -> NoteCategory:
        name = sanitize_string(data.name, 100)
        if not name:
            raise ValidationError("Category name is required", "MISSING_NAME")

        if self._name_taken(name):
            raise ConflictError("Category with this name already exists", "DUPLICATE_NAME")

        now = datetime.utcnow()
        category = NoteCategory(
            user_id=self.user_id,
            name=name,
            color=data.color if is_valid_hex_color(data.color) else DEFAULT_COLOR,
            icon=sanitize_string(data.icon, 10) or DEFAULT_ICON,
            sort_order=data.sort_order or 0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)

        logger.info(f"Category created: {category.id}")
        return category

    def update(self, category_id: str, data: CategoryUpdate) -> NoteCategory:
        category = self.get_owned(category_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No updates provided", "NO_UPDATES")

        if "name" in changes:
            name = sanitize_string(changes["name"], 100)
            if not name:
                raise ValidationError("Category name is required", "MISSING_NAME")
            if self._name_taken(name, exclude_id=category.id):
                raise ConflictError("Category with this name already exists", "DUPLICATE_NAME")
            category.name = name
        if "color" in changes:
            color = changes["color"]
            category.color = color if is_valid_hex_color(color) else DEFAULT_COLOR
        if "icon" in changes:
            category.icon = sanitize_string(changes["icon"], 10) or DEFAULT_ICON
        if "sort_order" in changes:
            category.sort_order = changes["sort_order"] or 0

        category.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(category)

        logger.info(f"Category updated: {category.id}")
        return category

    def note_count(self, category: NoteCategory) -> int:
        return self._note_count(category.id)

    def delete(self, category_id: str) -> None:
        category = self.get_owned(category_id)

        if self._note_count(category.id) > 0:
            raise ValidationError("Cannot delete category with assigned notes", "CATEGORY_HAS_NOTES")

        self.db.delete(category)
        self.db.commit()
        logger.info(f"Category deleted: {category_id}")

    def assign(self, data: CategoryAssignRequest) -> List[UUID]:
        """
        Replace a note's categories.

        Returns:
            The assigned category ids
        """
        note_id = data.note_id
        if not note_id or not is_valid_uuid(str(note_id)):
            raise ValidationError("Invalid note ID", "INVALID_NOTE_ID")

        if not isinstance(data.category_ids, list):
            raise ValidationError("Category IDs must be an array", "INVALID_CATEGORY_IDS")

        for category_id in data.category_ids:
            if not is_valid_uuid(str(category_id)):
                raise ValidationError("Invalid category ID", "INVALID_CATEGORY_ID")

        note = self.db.query(Note).filter(
            Note.id == UUID(str(note_id)),
            Note.user_id == self.user_id,
            Note.deleted_at.is_(None),
        ).first()
        if not note:
            raise NotFoundError("Note not found", "NOTE_NOT_FOUND")

        # Preserve request order, drop duplicates
        category_ids = list(dict.fromkeys(UUID(str(c)) for c in data.category_ids))
        if category_ids:
            found = self._owned().filter(NoteCategory.id.in_(category_ids)).count()
            if found != len(category_ids):
                raise NotFoundError("One or more categories not found", "CATEGORY_NOT_FOUND")

        self.db.query(NoteCategoryAssignment).filter(
            NoteCategoryAssignment.note_id == note.id
        ).delete(synchronize_session=False)

        for category_id in category_ids:
            self.db.add(NoteCategoryAssignment(note_id=note.id, category_id=category_id))

        self.db.commit()
        logger.info(f"Assigned {len(category_ids)} categories to note {note.id}")
        return category_ids

    def note_categories(self, note_id: str) -> List[dict]:
        if not is_valid_uuid(str(note_id)):
            raise ValidationError("Invalid note ID", "INVALID_NOTE_ID")

        note = self.db.query(Note).filter(
            Note.id == UUID(str(note_id)),
            Note.user_id == self.user_id,
            Note.deleted_at.is_(None),
        ).first()
        if not note:
            raise NotFoundError("Note not found", "NOTE_NOT_FOUND")

        categories = self.db.query(NoteCategory).join(
            NoteCategoryAssignment, NoteCategoryAssignment.category_id == NoteCategory.id
        ).filter(
            NoteCategoryAssignment.note_id == note.id
        ).order_by(NoteCategory.sort_order, NoteCategory.name).all()

        return [serialize_category(c, timestamps=False) for c in categories]
