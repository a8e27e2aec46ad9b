"""
Pydantic schemas for authentication and profile endpoints.

Request fields are optional so that missing values are reported by the
handlers with their specific error codes.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from notelab.schemas.base import CamelModel


# ==================== Requests ====================

class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
    )


class LogoutRequest(CamelModel):
    """Invalidate one session by its token, or every session of the caller"""
    session_token: Optional[str] = None
    all_sessions: bool = False


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = None


# ==================== Responses ====================

class UserResponse(CamelModel):
    id: UUID
    email: str
    name: str
    created_at: datetime
    last_login_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    """Returned by register and login"""
    user: UserResponse
    token: str
    session_id: UUID
    session_token: str
    expires_at: datetime
