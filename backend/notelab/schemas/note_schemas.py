"""Pydantic schemas for notes."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from notelab.schemas.base import CamelModel


class NoteCreate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = ""
    type: Optional[str] = "standard"
    tags: Optional[List[Any]] = None
    starred: bool = False
    metadata: Optional[Dict[str, Any]] = None


class NoteUpdate(CamelModel):
    """
    Partial update: only fields present in the request body change.

    Use ``model_dump(exclude_unset=True)`` to get the supplied fields.
    """
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    tags: Optional[List[Any]] = None
    starred: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None


class BulkUpdateRequest(CamelModel):
    note_ids: Optional[List[str]] = None
    # Only "starred" and "tags" are honoured
    updates: Optional[Dict[str, Any]] = None


class NoteResponse(CamelModel):
    id: UUID
    title: str
    content: str
    type: str
    starred: bool
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    category_names: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime
    preview: Optional[str] = None
    rank: Optional[float] = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class TagCount(CamelModel):
    tag: str
    count: int


class NoteStats(CamelModel):
    total_notes: int = 0
    starred_notes: int = 0
    plan_notes: int = 0
    code_notes: int = 0
    credential_notes: int = 0
    standard_notes: int = 0
    total_characters: int = 0
    last_updated: Optional[datetime] = None
