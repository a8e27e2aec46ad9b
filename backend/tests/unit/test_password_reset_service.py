"""Unit tests for the password reset token lifecycle"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from notelab.models import User, UserSession
from notelab.services.password_reset_service import (
    InvalidResetTokenError,
    PasswordResetError,
    PasswordResetService,
    ResetTokenExpiredError,
)
from notelab.services.session_service import SessionService

BASE_URL = "https://notes.example.com"


@pytest.fixture
def reset_service(db_session, kv_store, hasher, email_service):
    return PasswordResetService(
        db_session,
        store=kv_store,
        hasher=hasher,
        email_service=email_service,
        ttl_seconds=3600,
    )


class TestRequestReset:
    """Test token issuance"""

    def test_unknown_email_issues_nothing(self, reset_service, kv_store, email_service):
        assert reset_service.request_reset("nobody@example.com", BASE_URL) is None
        assert kv_store.client.keys("reset_*") == []
        email_service.send_password_reset.assert_not_called()

    def test_issues_token_with_ttl(self, reset_service, kv_store, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)

        assert token
        record = kv_store.get_json(f"reset_{token}")
        assert record["userId"] == str(test_user.id)
        assert record["email"] == test_user.email
        assert 3590 <= kv_store.client.ttl(f"reset_{token}") <= 3600

    def test_tokens_are_unique(self, reset_service, test_user):
        first = reset_service.request_reset(test_user.email, BASE_URL)
        second = reset_service.request_reset(test_user.email, BASE_URL)
        assert first != second

    def test_sends_reset_link(self, reset_service, email_service, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)

        email_service.send_password_reset.assert_called_once()
        to_address, name, url = email_service.send_password_reset.call_args.args
        assert to_address == test_user.email
        assert name == test_user.name
        assert url.startswith(f"{BASE_URL}/forgot-password.html?")
        assert f"token={token}" in url

    def test_email_failure_does_not_fail_request(self, reset_service, email_service, test_user):
        email_service.send_password_reset.side_effect = OSError("smtp down")

        assert reset_service.request_reset(test_user.email, BASE_URL)


class TestResetPassword:
    """Test token consumption"""

    def test_reset_changes_password(self, reset_service, hasher, db_session, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)

        user = reset_service.reset_password(token, "brand-new")

        db_session.refresh(test_user)
        assert user.id == test_user.id
        assert hasher.verify("brand-new", test_user.password_hash) is True

    def test_token_single_use(self, reset_service, kv_store, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)
        reset_service.reset_password(token, "brand-new")

        assert kv_store.get_json(f"reset_{token}") is None
        with pytest.raises(InvalidResetTokenError):
            reset_service.reset_password(token, "another-one")

    def test_unknown_token(self, reset_service):
        with pytest.raises(InvalidResetTokenError) as exc_info:
            reset_service.reset_password("does-not-exist", "brand-new")
        assert exc_info.value.code == "INVALID_RESET_TOKEN"

    def test_short_password_rejected(self, reset_service, kv_store, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)

        with pytest.raises(PasswordResetError) as exc_info:
            reset_service.reset_password(token, "12345")

        assert exc_info.value.code == "PASSWORD_TOO_SHORT"
        # Token survives a rejected attempt
        assert kv_store.get_json(f"reset_{token}") is not None

    def test_six_characters_is_enough(self, reset_service, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)
        assert reset_service.reset_password(token, "123456").id == test_user.id

    def test_expired_token_deleted(self, reset_service, kv_store, test_user):
        issued = datetime.utcnow() - timedelta(hours=2)
        token = reset_service.request_reset(test_user.email, BASE_URL, now=issued)

        with pytest.raises(ResetTokenExpiredError) as exc_info:
            reset_service.reset_password(token, "brand-new")

        assert exc_info.value.code == "RESET_TOKEN_EXPIRED"
        assert kv_store.get_json(f"reset_{token}") is None

    def test_deleted_user(self, reset_service, db_session, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)
        db_session.delete(test_user)
        db_session.commit()

        with pytest.raises(InvalidResetTokenError):
            reset_service.reset_password(token, "brand-new")

    def test_invalidates_sessions(self, reset_service, db_session, test_user):
        sessions = SessionService(db_session)
        sessions.create(test_user.id)
        sessions.create(test_user.id)
        token = reset_service.request_reset(test_user.email, BASE_URL)

        reset_service.reset_password(token, "brand-new")

        active = db_session.query(UserSession).filter(
            UserSession.user_id == test_user.id,
            UserSession.is_active == True,  # noqa: E712
        ).count()
        assert active == 0

    def test_sends_confirmation(self, reset_service, email_service, test_user):
        token = reset_service.request_reset(test_user.email, BASE_URL)
        reset_service.reset_password(token, "brand-new")

        email_service.send_password_reset_success.assert_called_once_with(test_user.email, test_user.name)

    def test_without_email_service(self, db_session, kv_store, hasher, test_user):
        service = PasswordResetService(db_session, store=kv_store, hasher=hasher)
        token = service.request_reset(test_user.email, BASE_URL)

        assert isinstance(service.reset_password(token, "brand-new"), User)


class TestBuildResetUrl:
    def test_encodes_query(self):
        url = PasswordResetService.build_reset_url("https://x.test/", "abc", "a+b@example.com")
        assert url == "https://x.test/forgot-password.html?token=abc&email=a%2Bb%40example.com"


class TestStoreErrors:
    def test_store_failure_propagates(self, db_session, hasher, test_user):
        import redis
        from notelab.services.kv_store import KeyValueStore

        client = MagicMock()
        client.setex.side_effect = redis.ConnectionError("down")
        service = PasswordResetService(db_session, store=KeyValueStore(client), hasher=hasher)

        with pytest.raises(redis.ConnectionError):
            service.request_reset(test_user.email, BASE_URL)

    def test_delete_failure_leaves_password_unchanged(
        self, reset_service, kv_store, hasher, db_session, test_user, monkeypatch
    ):
        import redis

        token = reset_service.request_reset(test_user.email, BASE_URL)
        old_hash = test_user.password_hash
        monkeypatch.setattr(kv_store.client, "delete", MagicMock(side_effect=redis.ConnectionError("down")))

        with pytest.raises(redis.ConnectionError):
            reset_service.reset_password(token, "BrandNew1")

        db_session.refresh(test_user)
        assert test_user.password_hash == old_hash
        assert not hasher.verify("BrandNew1", test_user.password_hash)

    def test_token_consumed_concurrently(self, reset_service, kv_store, db_session, test_user, monkeypatch):
        token = reset_service.request_reset(test_user.email, BASE_URL)
        old_hash = test_user.password_hash
        # Another request removed the token between the read and the delete
        monkeypatch.setattr(kv_store, "delete", lambda key: False)

        with pytest.raises(InvalidResetTokenError):
            reset_service.reset_password(token, "BrandNew1")

        db_session.refresh(test_user)
        assert test_user.password_hash == old_hash
