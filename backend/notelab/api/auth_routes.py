"""
Authentication API routes.

Endpoints:
- POST /auth/register - Create an account and sign in
- POST /auth/login - Sign in with email and password
- POST /auth/refresh - Refresh tokens (not implemented, always 501)
- POST /auth/logout - Invalidate one session or all sessions
- POST /auth/forgot-password - Email a password reset link
- POST /auth/reset-password - Set a new password with a reset token

Register, login and the password reset endpoints are rate limited per client
address before any credential is looked at.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from notelab.config import Settings, get_settings
from notelab.dependencies.auth import get_current_user
from notelab.dependencies.services import (
    get_activity_service,
    get_auth_service,
    get_password_reset_service,
    get_session_service,
)
from notelab.error_handlers import (
    AuthenticationError,
    NotFoundError,
    NotImplementedAPIError,
    ValidationError,
)
from notelab.middleware.rate_limit import auth_rate_limit
from notelab.models import ActivityAction, User
from notelab.responses import success
from notelab.schemas.auth_schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from notelab.services.activity_service import ActivityService
from notelab.services.auth_service import AuthService
from notelab.services.password_reset_service import PasswordResetError, PasswordResetService
from notelab.services.session_service import SessionService
from notelab.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If an account with this email exists, a reset link has been sent."


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    dependencies=[Depends(auth_rate_limit)],
)
async def register(
    request: Request,
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Register a new account and return a bearer token for it.

    **Password policy:** at least 8 characters with at least one letter and one digit.

    **Errors:**
    - 400: Missing fields, invalid email or weak password
    - 409: Email already registered (`DUPLICATE`)
    - 429: Too many attempts from this address
    """
    result = auth.register(body.email, body.password, body.name)

    activity.log_request(
        request,
        ActivityAction.USER_REGISTER,
        user_id=result.user.id,
        metadata={"email": result.user.email},
    )

    return success(result.to_response())


@router.post(
    "/login",
    summary="Sign in",
    dependencies=[Depends(auth_rate_limit)],
)
async def login(
    request: Request,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Verify credentials and return a bearer token valid for 7 days.

    **Errors:**
    - 400: Missing email or password
    - 401: Email or password is incorrect (`INVALID_CREDENTIALS`)
    - 429: Too many attempts from this address
    """
    try:
        result = auth.login(body.email, body.password)
    except AuthenticationError:
        activity.log_request(
            request,
            ActivityAction.LOGIN_FAILED,
            metadata={"email": body.email},
        )
        raise

    activity.log_request(request, ActivityAction.USER_LOGIN, user_id=result.user.id)

    return success(result.to_response())


@router.post(
    "/refresh",
    summary="Refresh tokens (not implemented)",
    dependencies=[Depends(auth_rate_limit)],
)
async def refresh(body: RefreshTokenRequest):
    """
    Placeholder for refresh tokens. Bearer tokens cannot be refreshed; sign in
    again after expiry.

    **Errors:**
    - 400: No refresh token supplied
    - 501: Always, otherwise
    """
    if not body.refresh_token:
        raise ValidationError("Refresh token is required", "MISSING_REFRESH_TOKEN")

    raise NotImplementedAPIError("Refresh tokens are not implemented")


@router.post("/logout", summary="Invalidate sessions")
async def logout(
    request: Request,
    body: Optional[LogoutRequest] = None,
    current_user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Invalidate the session identified by `sessionToken`, or every session of
    the caller with `allSessions: true`.

    Bearer tokens are not revoked and stay valid until they expire.
    """
    body = body or LogoutRequest()

    if body.all_sessions:
        count = sessions.invalidate_all(current_user.id)
    elif body.session_token:
        session = sessions.validate(body.session_token)
        if not session or session.user_id != current_user.id:
            raise NotFoundError("Session not found", "SESSION_NOT_FOUND")
        sessions.invalidate(session.id, current_user.id)
        count = 1
    else:
        raise ValidationError("Session token is required", "MISSING_SESSION_TOKEN")

    activity.log_request(
        request,
        ActivityAction.LOGOUT,
        user_id=current_user.id,
        metadata={"sessions": count},
    )

    return success({
        "message": f"Logged out from {count} session{'s' if count != 1 else ''}",
        "invalidated": count,
    })


@router.post(
    "/forgot-password",
    summary="Request a password reset email",
    dependencies=[Depends(auth_rate_limit)],
)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
    activity: ActivityService = Depends(get_activity_service),
    settings: Settings = Depends(get_settings),
):
    """
    Email a single-use reset link valid for 1 hour.

    The response is identical whether or not the email belongs to an account.
    """
    if not body.email:
        raise ValidationError("Email is required", "MISSING_EMAIL")

    email = body.email.strip()
    if not is_valid_email(email):
        raise ValidationError("Invalid email address", "INVALID_EMAIL")

    reset_url_base = settings.frontend_url or str(request.base_url).rstrip("/")
    token = reset_service.request_reset(email, reset_url_base)

    if token:
        activity.log_request(request, ActivityAction.PASSWORD_RESET_REQUEST)

    return success({"message": RESET_REQUESTED_MESSAGE})


@router.post(
    "/reset-password",
    summary="Reset password with a token",
    dependencies=[Depends(auth_rate_limit)],
)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    reset_service: PasswordResetService = Depends(get_password_reset_service),
    activity: ActivityService = Depends(get_activity_service),
):
    """
    Consume a reset token and set a new password (minimum 6 characters).

    All sessions of the account are invalidated.

    **Errors:**
    - 400: Missing fields, password too short, unknown/used token
      (`INVALID_RESET_TOKEN`) or expired token (`RESET_TOKEN_EXPIRED`)
    """
    if not body.token or not body.password:
        raise ValidationError("Token and password are required", "MISSING_FIELDS")

    try:
        user = reset_service.reset_password(body.token, body.password)
    except PasswordResetError as e:
        raise ValidationError(str(e), e.code)

    activity.log_request(request, ActivityAction.PASSWORD_RESET_COMPLETE, user_id=user.id)

    return success({
        "message": "Password has been reset successfully. Please login with your new password."
    })
