"""
Bearer token authentication for FastAPI routes.

Every verification failure produces the same 401 body; the distinct cause
(missing header, bad signature, expiry, unknown user) only goes to the log.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from notelab.database import get_db
from notelab.dependencies.services import get_token_service
from notelab.error_handlers import AuthenticationError
from notelab.models import User
from notelab.services.token_service import (
    InvalidTokenError,
    TokenExpiredError,
    TokenService,
)

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme for JWT
bearer_scheme = HTTPBearer(auto_error=False)

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


class AuthDependencies:
    """Authentication dependencies for FastAPI"""

    @staticmethod
    async def get_current_user(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        db: Session = Depends(get_db),
        token_service: TokenService = Depends(get_token_service),
    ) -> User:
        """
        Resolve the user behind ``Authorization: Bearer <token>``.

        The decoded identity is also attached to ``request.state.identity``.

        Raises:
            AuthenticationError: 401 for a missing/malformed header or any
                verification failure
        """
        if not credentials or not credentials.credentials:
            logger.info(f"Missing or malformed Authorization header on {request.url.path}")
            raise AuthenticationError("Authorization header required", "UNAUTHORIZED")

        try:
            identity = token_service.verify(credentials.credentials)
        except TokenExpiredError:
            logger.info(f"Expired token presented on {request.url.path}")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE, "UNAUTHORIZED")
        except InvalidTokenError as e:
            logger.warning(f"Invalid token presented on {request.url.path}: {e}")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE, "UNAUTHORIZED")

        try:
            user_id = UUID(identity.id)
        except ValueError:
            logger.warning(f"Token subject is not a user id: {identity.id!r}")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE, "UNAUTHORIZED")

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning(f"Token subject {identity.id} no longer exists")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE, "UNAUTHORIZED")

        request.state.identity = identity
        return user


# Convenience alias
get_current_user = AuthDependencies.get_current_user
