"""
Authentication service.

Handles:
- Account registration with the registration password policy
- Credential checks, with transparent upgrade of legacy password digests
- Token + session issuance after register/login
- Profile updates
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from notelab.error_handlers import AuthenticationError, ConflictError, ValidationError
from notelab.models import User, UserSession
from notelab.schemas.auth_schemas import AuthResponse, UserResponse
from notelab.services.password_hasher import PasswordHasher
from notelab.services.session_service import SessionService
from notelab.services.token_service import TokenService
from notelab.utils.validators import (
    email_local_part,
    is_valid_email,
    is_valid_password,
    sanitize_string,
)

logger = logging.getLogger(__name__)

PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one letter and one number"
)


@dataclass
class AuthResult:
    """A freshly authenticated user with their token and session"""
    user: User
    token: str
    session: UserSession
    session_token: str

    def to_response(self) -> dict:
        return AuthResponse(
            user=UserResponse.model_validate(self.user),
            token=self.token,
            session_id=self.session.id,
            session_token=self.session_token,
            expires_at=self.session.expires_at,
        ).to_response()


class AuthService:
    """Registration, login and profile operations"""

    def __init__(
        self,
        db: Session,
        hasher: PasswordHasher,
        token_service: TokenService,
        session_expire_days: int = 7,
    ):
        self.db = db
        self.hasher = hasher
        self.token_service = token_service
        self.sessions = SessionService(db, expire_days=session_expire_days)

    def register(self, email: Optional[str], password: Optional[str], name: Optional[str] = None) -> AuthResult:
        """
        Create an account and sign it in.

        Raises:
            ValidationError: Missing fields, bad email or weak password
            ConflictError: Email already registered
        """
        if not email or not password:
            raise ValidationError("Email and password are required", "MISSING_FIELDS")

        email = email.strip()
        if not is_valid_email(email):
            raise ValidationError("Invalid email address", "INVALID_EMAIL")

        if not is_valid_password(password):
            raise ValidationError(PASSWORD_POLICY_MESSAGE, "INVALID_PASSWORD")

        # Fast path only; the unique constraint on users.email is the real guard
        if self.db.query(User.id).filter(User.email == email).first():
            raise ConflictError("An account with this email already exists", "DUPLICATE")

        display_name = sanitize_string(name, 100) or email_local_part(email)[:100]
        now = datetime.utcnow()
        user = User(
            email=email,
            password_hash=self.hasher.hash(password),
            name=display_name,
            created_at=now,
            updated_at=now,
            last_login_at=now,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered: {user.id}")
        return self._issue(user)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Check credentials.

        Returns:
            The user when the password matches, otherwise None
        """
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            logger.info("Login attempt for unknown email")
            self.hasher.dummy_verify(password)
            return None

        if not self.hasher.verify(password, user.password_hash):
            logger.info(f"Login failed for user {user.id}: wrong password")
            return None

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash(password)
            logger.info(f"Upgraded password digest for user {user.id} to {self.hasher.scheme}")

        return user

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Authenticate and sign in.

        Raises:
            ValidationError: Missing email or password
            AuthenticationError: Unknown email or wrong password (indistinguishable)
        """
        if not email or not password:
            raise ValidationError("Email and password are required", "MISSING_CREDENTIALS")

        user = self.authenticate(email.strip(), password)
        if not user:
            raise AuthenticationError("Email or password is incorrect", "INVALID_CREDENTIALS")

        user.last_login_at = datetime.utcnow()
        self.db.commit()

        return self._issue(user)

    def update_profile(self, user: User, name: Optional[str]) -> User:
        name = sanitize_string(name, 100)
        if not name:
            raise ValidationError("Name is required", "MISSING_NAME")

        user.name = name
        user.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user

    def _issue(self, user: User) -> AuthResult:
        session, session_token = self.sessions.create(user.id)
        token = self.token_service.issue(user.id, user.email, user.name)
        return AuthResult(user=user, token=token, session=session, session_token=session_token)
