"""Pydantic schemas for note categories."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from notelab.schemas.base import CamelModel


class CategoryCreate(CamelModel):
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    sort_order: Optional[int] = None


class CategoryUpdate(CamelModel):
    """Partial update; unset fields are left alone"""
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    sort_order: Optional[int] = None


class CategoryAssignRequest(CamelModel):
    note_id: Optional[str] = None
    category_ids: Any = None  # validated by the service (must be a list)


class CategoryResponse(CamelModel):
    id: UUID
    name: str
    color: str
    icon: str
    sort_order: int
    note_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
