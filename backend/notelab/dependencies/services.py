"""
Service providers for FastAPI dependency injection.

Each provider builds a service from the request's database session and the
application settings, so tests can swap any layer through
``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from notelab.config import Settings, get_settings
from notelab.database import get_db
from notelab.services.activity_service import ActivityService
from notelab.services.auth_service import AuthService
from notelab.services.email_service import EmailService, get_email_service
from notelab.services.kv_store import KeyValueStore, get_kv_store
from notelab.services.password_hasher import PasswordHasher, build_password_hasher
from notelab.services.password_reset_service import PasswordResetService
from notelab.services.session_service import SessionService
from notelab.services.token_service import TokenService, build_token_service


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return build_password_hasher(settings)


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return build_token_service(settings)


def get_session_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SessionService:
    return SessionService(db, expire_days=settings.session_expire_days)


def get_auth_service(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        db,
        hasher=hasher,
        token_service=token_service,
        session_expire_days=settings.session_expire_days,
    )


def get_password_reset_service(
    db: Session = Depends(get_db),
    store: KeyValueStore = Depends(get_kv_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
) -> PasswordResetService:
    return PasswordResetService(
        db,
        store=store,
        hasher=hasher,
        email_service=email_service,
        ttl_seconds=settings.password_reset_ttl_seconds,
    )


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    return ActivityService(db)
