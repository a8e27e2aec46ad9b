"""
Category API routes.

Rate limited and authenticated like the note routes. The categories of a
single note are served from ``GET /notes/{note_id}/categories``.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from notelab.database import get_db
from notelab.dependencies.auth import get_current_user
from notelab.dependencies.services import get_activity_service
from notelab.middleware.rate_limit import api_rate_limit
from notelab.models import ActivityAction, User
from notelab.responses import success
from notelab.schemas.category_schemas import (
    CategoryAssignRequest,
    CategoryCreate,
    CategoryUpdate,
)
from notelab.services.activity_service import ActivityService
from notelab.services.category_service import CategoryService, serialize_category

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
    dependencies=[Depends(api_rate_limit)],
)


def get_category_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryService:
    return CategoryService(db, current_user.id)


@router.get("", summary="List categories")
async def list_categories(categories: CategoryService = Depends(get_category_service)):
    """Categories ordered by sort order then name, each with its note count"""
    return success({"categories": categories.list_categories()})


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a category")
async def create_category(
    request: Request,
    body: CategoryCreate,
    current_user: User = Depends(get_current_user),
    categories: CategoryService = Depends(get_category_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    **Errors:**
    - 400: Missing name (`MISSING_NAME`)
    - 409: Name already used by another of your categories (`DUPLICATE_NAME`)
    """
    category = categories.create(body)

    activity.log_request(
        request,
        ActivityAction.CATEGORY_CREATE,
        user_id=current_user.id,
        resource_type="category",
        resource_id=category.id,
        metadata={"name": category.name},
    )

    return success({"category": serialize_category(category, note_count=0)})


@router.post("/assign", summary="Set the categories of a note")
async def assign_categories(
    request: Request,
    body: CategoryAssignRequest,
    current_user: User = Depends(get_current_user),
    categories: CategoryService = Depends(get_category_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Replace the categories assigned to a note. An empty list clears them.
    """
    assigned = categories.assign(body)

    activity.log_request(
        request,
        ActivityAction.CATEGORIES_ASSIGN,
        user_id=current_user.id,
        resource_type="note",
        resource_id=body.note_id,
        metadata={"categoryIds": [str(c) for c in assigned]},
    )

    return success({
        "message": "Categories assigned successfully",
        "noteId": body.note_id,
        "categoryIds": [str(c) for c in assigned],
    })


@router.put("/{category_id}", summary="Update a category")
async def update_category(
    request: Request,
    category_id: str,
    body: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    categories: CategoryService = Depends(get_category_service),
    activity: ActivityService = Depends(get_activity_service),
):
    category = categories.update(category_id, body)

    activity.log_request(
        request,
        ActivityAction.CATEGORY_UPDATE,
        user_id=current_user.id,
        resource_type="category",
        resource_id=category.id,
    )

    return success({
        "category": serialize_category(category, note_count=categories.note_count(category))
    })


@router.delete("/{category_id}", summary="Delete a category")
async def delete_category(
    request: Request,
    category_id: str,
    current_user: User = Depends(get_current_user),
    categories: CategoryService = Depends(get_category_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    **Errors:**
    - 400: Notes are still assigned (`CATEGORY_HAS_NOTES`)
    - 404: Category not found (`CATEGORY_NOT_FOUND`)
    """
    categories.delete(category_id)

    activity.log_request(
        request,
        ActivityAction.CATEGORY_DELETE,
        user_id=current_user.id,
        resource_type="category",
        resource_id=category_id,
    )

    return success({"message": "Category deleted successfully"})
