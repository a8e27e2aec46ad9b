"""
Note service.

All queries are scoped to the calling user and exclude soft-deleted notes.
A note owned by someone else is reported exactly like a missing one.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import String, case, cast, func, or_, select
from sqlalchemy.orm import Session

from notelab.error_handlers import NotFoundError, ValidationError
from notelab.models import Note, NoteCategory, NoteCategoryAssignment, NoteType
from notelab.schemas.note_schemas import (
    BulkUpdateRequest,
    NoteCreate,
    NoteResponse,
    NoteStats,
    NoteUpdate,
    Pagination,
    TagCount,
)
from notelab.utils.validators import (
    generate_preview,
    is_valid_uuid,
    sanitize_html,
    sanitize_string,
    sanitize_tags,
    split_csv,
)

logger = logging.getLogger(__name__)

SORT_FIELDS = ("created_at", "updated_at", "title", "starred")
SORT_ORDERS = ("asc", "desc")
NOTE_TYPES = tuple(t.value for t in NoteType)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100
DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 50
TOP_TAGS = 10


@dataclass
class NoteListQuery:
    """Filters, ordering and paging for listing notes"""
    limit: int = DEFAULT_LIST_LIMIT
    offset: int = 0
    search: str = ""
    starred: bool = False
    tags: str = ""
    type: str = ""
    category: str = ""
    sort: str = "updated_at"
    order: str = "desc"


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if not limit or limit < 1:
        return default
    return min(limit, maximum)


def serialize_note(
    note: Note,
    category_names: Optional[List[str]] = None,
    preview: bool = False,
    rank: Optional[float] = None,
) -> dict:
    return NoteResponse(
        id=note.id,
        title=note.title,
        content=note.content or "",
        type=note.type,
        starred=bool(note.starred),
        tags=list(note.tags or []),
        metadata=dict(note.note_metadata or {}),
        category_names=category_names,
        created_at=note.created_at,
        updated_at=note.updated_at,
        preview=generate_preview(note.content) if preview else None,
        rank=rank,
    ).to_response()


class NoteService:
    """CRUD, search and statistics for a user's notes"""

    def __init__(self, db: Session, user_id: UUID):
        self.db = db
        self.user_id = user_id

    def _live_notes(self):
        return self.db.query(Note).filter(
            Note.user_id == self.user_id,
            Note.deleted_at.is_(None),
        )

    def _category_names(self, note_ids: List[UUID]) -> Dict[UUID, List[str]]:
        names: Dict[UUID, List[str]] = {note_id: [] for note_id in note_ids}
        if not note_ids:
            return names

        rows = self.db.query(NoteCategoryAssignment.note_id, NoteCategory.name).join(
            NoteCategory, NoteCategory.id == NoteCategoryAssignment.category_id
        ).filter(
            NoteCategoryAssignment.note_id.in_(note_ids)
        ).order_by(NoteCategory.sort_order, NoteCategory.name).all()

        for note_id, name in rows:
            names[note_id].append(name)
        return names

    def get_owned(self, note_id: str) -> Note:
        """
        Load one of the caller's live notes.

        Raises:
            ValidationError: note_id is not a UUID
            NotFoundError: Absent, deleted or owned by another user
        """
        if not is_valid_uuid(str(note_id)):
            raise ValidationError("Invalid note ID", "INVALID_NOTE_ID")

        note = self._live_notes().filter(Note.id == UUID(str(note_id))).first()
        if not note:
            raise NotFoundError("Note not found", "NOTE_NOT_FOUND")
        return note

    # ==================== Queries ====================

    def list_notes(self, params: NoteListQuery) -> dict:
        if params.sort not in SORT_FIELDS:
            raise ValidationError("Invalid sort field", "INVALID_SORT_FIELD")
        if params.order not in SORT_ORDERS:
            raise ValidationError("Invalid sort order", "INVALID_SORT_ORDER")

        limit = clamp_limit(params.limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
        offset = max(params.offset or 0, 0)

        query = self._live_notes()

        if params.search:
            query = query.filter(or_(
                Note.title.icontains(params.search, autoescape=True),
                Note.content.icontains(params.search, autoescape=True),
            ))

        if params.starred:
            query = query.filter(Note.starred.is_(True))

        if params.type:
            query = query.filter(Note.type == params.type)

        if params.category:
            if not is_valid_uuid(params.category):
                raise ValidationError("Invalid category ID", "INVALID_CATEGORY_ID")
            query = query.filter(Note.id.in_(
                select(NoteCategoryAssignment.note_id).where(
                    NoteCategoryAssignment.category_id == UUID(params.category)
                )
            ))

        tag_list = split_csv(params.tags) if params.tags else []
        if tag_list:
            # Substring match on the serialized tag list; patterns are escaped
            # the way the JSON column writes them (\uXXXX for non-ASCII)
            tags_text = cast(Note.tags, String)
            query = query.filter(or_(*[
                tags_text.contains(json.dumps(tag)[1:-1], autoescape=True) for tag in tag_list
            ]))

        total = query.count()

        sort_column = getattr(Note, params.sort)
        ordering = sort_column.asc() if params.order == "asc" else sort_column.desc()
        notes = query.order_by(ordering, Note.id).offset(offset).limit(limit).all()

        names = self._category_names([note.id for note in notes])

        return {
            "notes": [
                serialize_note(note, category_names=names[note.id], preview=True)
                for note in notes
            ],
            "pagination": Pagination(
                limit=limit,
                offset=offset,
                total=total,
                has_more=offset + limit < total,
            ).to_response(),
        }

    def search(self, q: Optional[str], limit: Optional[int] = None) -> dict:
        """Substring search over title and content, newest first"""
        q = (q or "").strip()
        if not q:
            raise ValidationError("Search query is required", "MISSING_QUERY")

        limit = clamp_limit(limit, DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT)
        notes = self._live_notes().filter(or_(
            Note.title.icontains(q, autoescape=True),
            Note.content.icontains(q, autoescape=True),
        )).order_by(Note.updated_at.desc()).limit(limit).all()

        results = [serialize_note(note, preview=True, rank=0) for note in notes]
        return {"results": results, "query": q, "total": len(results)}

    def get_note(self, note_id: str) -> dict:
        note = self.get_owned(note_id)
        names = self._category_names([note.id])
        return {"note": serialize_note(note, category_names=names[note.id])}

    def stats(self) -> dict:
        row = self.db.query(
            func.count(Note.id),
            func.sum(case((Note.starred.is_(True), 1), else_=0)),
            func.sum(case((Note.type == NoteType.PLAN.value, 1), else_=0)),
            func.sum(case((Note.type == NoteType.CODE.value, 1), else_=0)),
            func.sum(case((Note.type == NoteType.CREDENTIALS.value, 1), else_=0)),
            func.sum(case((Note.type == NoteType.STANDARD.value, 1), else_=0)),
            func.sum(func.length(Note.content)),
            func.max(Note.updated_at),
        ).filter(
            Note.user_id == self.user_id,
            Note.deleted_at.is_(None),
        ).one()

        stats = NoteStats(
            total_notes=row[0] or 0,
            starred_notes=row[1] or 0,
            plan_notes=row[2] or 0,
            code_notes=row[3] or 0,
            credential_notes=row[4] or 0,
            standard_notes=row[5] or 0,
            total_characters=row[6] or 0,
            last_updated=row[7],
        )

        counts: Counter = Counter()
        for (tags,) in self._live_notes().with_entities(Note.tags).all():
            if isinstance(tags, list):
                counts.update(tag for tag in tags if isinstance(tag, str))

        top_tags = [
            TagCount(tag=tag, count=count).to_response()
            for tag, count in counts.most_common(TOP_TAGS)
        ]

        return {"stats": stats.to_response(), "topTags": top_tags}

    # ==================== Mutations ====================

    def create(self, data: NoteCreate) -> Note:
        title = sanitize_string(data.title, 200)
        if not title:
            raise ValidationError("Title is required", "MISSING_TITLE")

        note_type = data.type or NoteType.STANDARD.value
        if note_type not in NOTE_TYPES:
            raise ValidationError(f"Invalid note type: {note_type}", "INVALID_NOTE_TYPE")

        now = datetime.utcnow()
        note = Note(
            user_id=self.user_id,
            title=title,
            content=sanitize_html(data.content or ""),
            type=note_type,
            starred=bool(data.starred),
            tags=sanitize_tags(data.tags or []),
            note_metadata=data.metadata or {},
            created_at=now,
            updated_at=now,
        )
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)

        logger.info(f"Note created: {note.id}")
        return note

    def update(self, note_id: str, data: NoteUpdate) -> Note:
        """Apply only the fields present in the request"""
        note = self.get_owned(note_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No updates provided", "NO_UPDATES")

        if "title" in changes:
            title = sanitize_string(changes["title"], 200)
            if not title:
                raise ValidationError("Title cannot be empty", "MISSING_TITLE")
            note.title = title
        if "content" in changes:
            note.content = sanitize_html(changes["content"] or "")
        if "type" in changes:
            note_type = changes["type"] or NoteType.STANDARD.value
            if note_type not in NOTE_TYPES:
                raise ValidationError(f"Invalid note type: {note_type}", "INVALID_NOTE_TYPE")
            note.type = note_type
        if "tags" in changes:
            note.tags = sanitize_tags(changes["tags"] or [])
        if "starred" in changes:
            note.starred = bool(changes["starred"])
        if "metadata" in changes:
            note.note_metadata = changes["metadata"] or {}

        note.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(note)

        logger.info(f"Note updated: {note.id} ({', '.join(sorted(changes))})")
        return note

    def delete(self, note_id: str) -> Note:
        """Soft delete"""
        note = self.get_owned(note_id)
        note.deleted_at = datetime.utcnow()
        self.db.commit()

        logger.info(f"Note deleted: {note.id}")
        return note

    def bulk_update(self, data: BulkUpdateRequest) -> int:
        """
        Set starred and/or tags on many notes at once.

        Returns:
            Number of notes changed (ids that are not the caller's live notes
            are skipped)
        """
        note_ids = data.note_ids or []
        if not note_ids:
            raise ValidationError("Note IDs are required", "MISSING_NOTE_IDS")

        updates = data.updates or {}
        if not updates:
            raise ValidationError("Updates are required", "MISSING_UPDATES")

        for note_id in note_ids:
            if not is_valid_uuid(str(note_id)):
                raise ValidationError("Invalid note ID", "INVALID_NOTE_ID")

        values: Dict[Any, Any] = {}
        if "starred" in updates:
            values[Note.starred] = bool(updates["starred"])
        if "tags" in updates:
            values[Note.tags] = sanitize_tags(updates["tags"] or [])

        if not values:
            raise ValidationError("No valid updates provided", "NO_VALID_UPDATES")

        values[Note.updated_at] = datetime.utcnow()

        affected = self._live_notes().filter(
            Note.id.in_([UUID(str(note_id)) for note_id in note_ids])
        ).update(values, synchronize_session=False)
        self.db.commit()

        logger.info(f"Bulk updated {affected} notes for user {self.user_id}")
        return affected
