"""
Error handling for the API

Provides:
- The error taxonomy raised by services and dependencies
- Exception handlers for FastAPI
- Uniform error bodies: {"error": true, "message", "code", "timestamp"}
"""
import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from notelab.config import get_settings
from notelab.responses import error_response

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for API exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        headers: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.headers = headers
        super().__init__(self.message)


class ValidationError(APIError):
    """Malformed or missing input"""

    def __init__(self, message: str = "Validation error", error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code
        )


class AuthenticationError(APIError):
    """Bad credentials or an invalid/expired token"""

    def __init__(self, message: str = "Authentication failed", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code
        )


class NotFoundError(APIError):
    """Resource absent or not owned by the caller"""

    def __init__(self, message: str = "Resource not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code
        )


class ConflictError(APIError):
    """Duplicate email or category name"""

    def __init__(self, message: str = "Resource already exists", error_code: str = "DUPLICATE"):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code
        )


class RateLimitExceededError(APIError):
    """Too many requests in the current window"""

    def __init__(
        self,
        remaining: int,
        reset_time: str,
        limit: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        headers = {
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": reset_time,
        }
        if limit is not None:
            headers["X-RateLimit-Limit"] = str(limit)
        if retry_after is not None:
            headers["Retry-After"] = str(max(retry_after, 0))
        super().__init__(
            message="Too many requests. Please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_EXCEEDED",
            headers=headers,
        )
        self.remaining = remaining
        self.reset_time = reset_time


class NotImplementedAPIError(APIError):
    """Endpoint exists but the feature is not implemented"""

    def __init__(self, message: str = "Not implemented"):
        super().__init__(
            message=message,
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            error_code="NOT_IMPLEMENTED"
        )


class InternalError(APIError):
    """Unexpected failure"""

    def __init__(self, message: str = "Internal server error", error_code: str = "INTERNAL_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=error_code
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle taxonomy exceptions"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"API error: {exc.error_code} - {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path
        }
    )

    return error_response(exc.message, exc.status_code, exc.error_code, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation errors as 400s"""
    errors = exc.errors()
    logger.warning(
        f"Validation error: {errors}",
        extra={"path": request.url.path}
    )

    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Request validation failed")
    if location:
        message = f"{location}: {message}"

    return error_response(message, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle framework HTTP errors (unknown routes, wrong methods)"""
    codes = {
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    }
    return error_response(
        str(exc.detail),
        exc.status_code,
        codes.get(exc.status_code, "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy database errors"""
    logger.error(
        f"Database error: {str(exc)}",
        extra={"path": request.url.path},
        exc_info=True
    )

    if isinstance(exc, IntegrityError):
        # Unique constraints settle check-then-insert races
        return error_response(
            "Resource already exists",
            status.HTTP_409_CONFLICT,
            "DUPLICATE",
        )

    return error_response(
        "An unexpected database error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "DATABASE_ERROR",
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={"path": request.url.path},
        exc_info=True
    )

    message = "Internal server error"
    if get_settings().is_development:
        message = str(exc) or exc.__class__.__name__

    return error_response(message, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


def register_error_handlers(app):
    """Register all error handlers with the FastAPI app"""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
