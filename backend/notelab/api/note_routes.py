"""
Note API routes.

Every route is rate limited per client address and path, then authenticated.
Notes that do not belong to the caller are reported as not found.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from notelab.database import get_db
from notelab.dependencies.auth import get_current_user
from notelab.dependencies.services import get_activity_service
from notelab.middleware.rate_limit import api_rate_limit
from notelab.models import ActivityAction, User
from notelab.responses import success
from notelab.schemas.note_schemas import BulkUpdateRequest, NoteCreate, NoteUpdate
from notelab.services.activity_service import ActivityService
from notelab.services.category_service import CategoryService
from notelab.services.note_service import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    NoteListQuery,
    NoteService,
    clamp_limit,
    serialize_note,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notes",
    tags=["Notes"],
    dependencies=[Depends(api_rate_limit)],
)


def get_note_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NoteService:
    return NoteService(db, current_user.id)


@router.get("", summary="List notes")
async def list_notes(
    request: Request,
    limit: Optional[int] = Query(DEFAULT_LIST_LIMIT, description="Page size (max 100)"),
    offset: Optional[int] = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Substring of title or content"),
    starred: Optional[str] = Query(None, description="Only starred notes when 'true'"),
    tags: Optional[str] = Query(None, description="Comma separated, any match"),
    type: Optional[str] = Query(None, description="standard, plan, code or credentials"),
    category: Optional[str] = Query(None, description="Category id"),
    sort: str = Query("updated_at", description="created_at, updated_at, title or starred"),
    order: str = Query("desc", description="asc or desc"),
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    List the caller's notes with filters, ordering and pagination.

    **Errors:**
    - 400: Unknown sort field (`INVALID_SORT_FIELD`) or order (`INVALID_SORT_ORDER`)
    """
    params = NoteListQuery(
        limit=clamp_limit(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT),
        offset=offset or 0,
        search=search or "",
        starred=starred == "true",
        tags=tags or "",
        type=type or "",
        category=category or "",
        sort=sort,
        order=order,
    )
    result = notes.list_notes(params)

    activity.log_request(
        request,
        ActivityAction.NOTES_LIST,
        user_id=current_user.id,
        metadata={"count": len(result["notes"]), "offset": params.offset},
    )

    return success(result)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a note")
async def create_note(
    request: Request,
    body: NoteCreate,
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Create a note. The title is required; content has script blocks and
    inline handlers stripped.

    **Errors:**
    - 400: Missing title (`MISSING_TITLE`) or unknown type (`INVALID_NOTE_TYPE`)
    """
    note = notes.create(body)

    activity.log_request(
        request,
        ActivityAction.NOTE_CREATE,
        user_id=current_user.id,
        resource_type="note",
        resource_id=note.id,
        metadata={"type": note.type},
    )

    return success({"note": serialize_note(note, category_names=[])})


@router.get("/search", summary="Search notes")
async def search_notes(
    request: Request,
    q: Optional[str] = Query(None, description="Search text"),
    limit: Optional[int] = Query(20, description="Max results (max 50)"),
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    result = notes.search(q, limit)

    activity.log_request(
        request,
        ActivityAction.NOTES_SEARCH,
        user_id=current_user.id,
        metadata={"query": result["query"], "results": result["total"]},
    )

    return success(result)


@router.get("/stats", summary="Note statistics")
async def note_stats(notes: NoteService = Depends(get_note_service)):
    return success(notes.stats())


@router.post("/bulk-update", summary="Update many notes at once")
async def bulk_update_notes(
    request: Request,
    body: BulkUpdateRequest,
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Set `starred` and/or `tags` on several notes. Ids that are not the
    caller's live notes are skipped.
    """
    affected = notes.bulk_update(body)

    activity.log_request(
        request,
        ActivityAction.NOTES_BULK_UPDATE,
        user_id=current_user.id,
        metadata={"affected": affected, "fields": sorted((body.updates or {}).keys())},
    )

    return success({
        "message": f"Updated {affected} notes",
        "affectedCount": affected,
    })


@router.get("/{note_id}/categories", summary="Categories of a note")
async def get_note_categories(
    note_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    categories = CategoryService(db, current_user.id).note_categories(note_id)
    return success({"categories": categories})


@router.get("/{note_id}", summary="Get a note")
async def get_note(
    request: Request,
    note_id: str,
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    result = notes.get_note(note_id)

    activity.log_request(
        request,
        ActivityAction.NOTE_VIEW,
        user_id=current_user.id,
        resource_type="note",
        resource_id=note_id,
    )

    return success(result)


@router.put("/{note_id}", summary="Update a note")
async def update_note(
    request: Request,
    note_id: str,
    body: NoteUpdate,
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Partial update: only fields present in the body change.

    **Errors:**
    - 400: Invalid id, empty body (`NO_UPDATES`) or blank title
    - 404: Note not found (`NOTE_NOT_FOUND`)
    """
    note = notes.update(note_id, body)

    activity.log_request(
        request,
        ActivityAction.NOTE_UPDATE,
        user_id=current_user.id,
        resource_type="note",
        resource_id=note.id,
        metadata={"fields": sorted(body.model_dump(exclude_unset=True).keys())},
    )

    return success({"note": serialize_note(note)})


@router.delete("/{note_id}", summary="Delete a note")
async def delete_note(
    request: Request,
    note_id: str,
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    activity: ActivityService = Depends(get_activity_service),
):
    note = notes.delete(note_id)

    activity.log_request(
        request,
        ActivityAction.NOTE_DELETE,
        user_id=current_user.id,
        resource_type="note",
        resource_id=note.id,
    )

    return success({"message": "Note deleted successfully"})
