"""
User profile routes.
"""

from fastapi import APIRouter, Depends, Request

from notelab.dependencies.auth import get_current_user
from notelab.dependencies.services import get_activity_service, get_auth_service
from notelab.models import ActivityAction, User
from notelab.responses import success
from notelab.schemas.auth_schemas import ProfileUpdateRequest, UserResponse
from notelab.services.activity_service import ActivityService
from notelab.services.auth_service import AuthService

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/profile", summary="Get the current user's profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return success({"user": UserResponse.model_validate(current_user).to_response()})


@router.put("/profile", summary="Update the current user's profile")
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Change the display name (required, trimmed to 100 characters).

    **Errors:**
    - 400: Name missing or blank (`MISSING_NAME`)
    """
    user = auth.update_profile(current_user, body.name)

    activity.log_request(
        request,
        ActivityAction.PROFILE_UPDATE,
        user_id=user.id,
        resource_type="user",
        resource_id=user.id,
    )

    return success({"user": UserResponse.model_validate(user).to_response()})
