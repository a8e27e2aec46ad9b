"""
Test Configuration and Fixtures

Runs against an in-memory SQLite database (one fresh schema per test) and an
in-process fake Redis, so no external services are needed.
"""

import os

# Must be set before notelab modules read their settings
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-notelab-unit-tests-only-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from unittest.mock import MagicMock

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notelab.config import Settings
from notelab.database import Base


TEST_PASSWORD = "Password123"


@pytest.fixture
def test_settings():
    """Settings with small auth limits so rate limit tests stay fast"""
    return Settings(
        environment="development",
        jwt_secret_key=os.environ["JWT_SECRET_KEY"],
        database_url="sqlite://",
        bcrypt_rounds=4,
        rate_limit_requests=1000,
        rate_limit_window_minutes=15,
        auth_rate_limit_requests=5,
        auth_rate_limit_window_minutes=15,
        frontend_url="https://notes.example.com",
    )


@pytest.fixture
def db_engine():
    """Fresh in-memory database per test"""
    import notelab.models  # noqa: F401  (registers models on Base)

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def kv_store():
    """Key-value store on top of fakeredis"""
    from notelab.services.kv_store import KeyValueStore

    return KeyValueStore(fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture
def email_service():
    """Email service mock; calls can be asserted on"""
    from notelab.services.email_service import EmailService

    return MagicMock(spec=EmailService)


@pytest.fixture
def hasher(test_settings):
    from notelab.services.password_hasher import build_password_hasher

    return build_password_hasher(test_settings)


@pytest.fixture
def token_service(test_settings):
    from notelab.services.token_service import build_token_service

    return build_token_service(test_settings)


@pytest.fixture
def test_user(db_session, hasher):
    """Create a user with a properly hashed password"""
    from notelab.models import User

    user = User(
        id=uuid.uuid4(),
        email="test@example.com",
        password_hash=hasher.hash(TEST_PASSWORD),
        name="Test User",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session, hasher):
    """A second account, for ownership checks"""
    from notelab.models import User

    user = User(
        id=uuid.uuid4(),
        email="other@example.com",
        password_hash=hasher.hash(TEST_PASSWORD),
        name="Other User",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def client(db_session, test_settings, kv_store, email_service):
    """Create a test client with database, settings and service overrides"""
    from fastapi.testclient import TestClient
    from notelab.config import get_settings
    from notelab.database import get_db
    from notelab.main import app
    from notelab.services.email_service import get_email_service
    from notelab.services.kv_store import get_kv_store

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_kv_store] = lambda: kv_store
    app.dependency_overrides[get_email_service] = lambda: email_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_token(token_service, test_user):
    """Bearer token for test_user"""
    return token_service.issue(test_user.id, test_user.email, test_user.name)


@pytest.fixture
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def other_headers(token_service, other_user):
    token = token_service.issue(other_user.id, other_user.email, other_user.name)
    return {"Authorization": f"Bearer {token}"}
