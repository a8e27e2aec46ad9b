"""Integration tests for authentication API routes."""
import uuid
from urllib.parse import parse_qs, urlparse

import pytest

from notelab.models import ActivityLog, UserSession

TEST_PASSWORD = "Password123"


def reset_token_from_email(email_service):
    """Pull the token out of the link handed to the (mocked) email service"""
    _, _, url = email_service.send_password_reset.call_args.args
    return parse_qs(urlparse(url).query)["token"][0]


@pytest.mark.integration
class TestRegister:
    """Test POST /api/auth/register"""

    def test_register_then_duplicate(self, client):
        """Registering the same email twice conflicts"""
        response = client.post(
            "/api/auth/register",
            json={"email": "alice@example.com", "password": "Passw0rd"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token"]
        assert body["data"]["user"]["email"] == "alice@example.com"
        assert body["data"]["user"]["name"] == "alice"
        assert "timestamp" in body

        response = client.post(
            "/api/auth/register",
            json={"email": "alice@example.com", "password": "Passw0rd"},
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] is True
        assert body["code"] == "DUPLICATE"

    def test_token_works_immediately(self, client):
        token = client.post(
            "/api/auth/register",
            json={"email": "bob@example.com", "password": "Passw0rd", "name": "Bob"},
        ).json()["data"]["token"]

        response = client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Bob"

    @pytest.mark.parametrize("payload,code", [
        ({"password": "Passw0rd"}, "MISSING_FIELDS"),
        ({"email": "x@example.com"}, "MISSING_FIELDS"),
        ({"email": "nope", "password": "Passw0rd"}, "INVALID_EMAIL"),
        ({"email": "x@example.com", "password": "password"}, "INVALID_PASSWORD"),
    ])
    def test_validation(self, client, payload, code):
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_logs_activity(self, client, db_session):
        client.post("/api/auth/register", json={"email": "log@example.com", "password": "Passw0rd"})
        actions = [entry.action for entry in db_session.query(ActivityLog).all()]
        assert "user_register" in actions


@pytest.mark.integration
class TestLogin:
    """Test POST /api/auth/login"""

    def test_login_valid_credentials(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["sessionToken"]
        assert data["user"]["id"] == str(test_user.id)

    def test_login_invalid_password(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "WrongPassword1"},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_login_unknown_email_same_response(self, client, test_user):
        wrong = client.post("/api/auth/login", json={"email": test_user.email, "password": "Nope12345"})
        unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Nope12345"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"]

    def test_login_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_CREDENTIALS"

    def test_failed_login_logged(self, client, db_session, test_user):
        client.post("/api/auth/login", json={"email": test_user.email, "password": "WrongPassword1"})
        actions = [entry.action for entry in db_session.query(ActivityLog).all()]
        assert actions == ["login_failed"]


@pytest.mark.integration
class TestRateLimit:
    """Auth endpoints are limited per client and path before credentials are checked"""

    def test_third_attempt_rejected(self, client, test_user, test_settings):
        test_settings.auth_rate_limit_requests = 2

        statuses = [
            client.post(
                "/api/auth/login",
                json={"email": test_user.email, "password": "WrongPassword1"},
            ).status_code
            for _ in range(2)
        ]
        assert statuses == [401, 401]

        # Correct credentials do not help once the window is exhausted
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"]
        assert int(response.headers["Retry-After"]) > 0

    def test_headers_on_success(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD},
        )
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_paths_limited_separately(self, client, test_settings):
        test_settings.auth_rate_limit_requests = 1

        client.post("/api/auth/login", json={})
        assert client.post("/api/auth/login", json={}).status_code == 429
        assert client.post("/api/auth/forgot-password", json={}).status_code == 400

    def test_spoofed_forwarding_headers_do_not_reset_limit(self, client, test_user, test_settings):
        test_settings.auth_rate_limit_requests = 2

        statuses = [
            client.post(
                "/api/auth/login",
                json={"email": test_user.email, "password": "WrongPassword1"},
                headers={
                    "X-Forwarded-For": f"203.0.113.{i}",
                    "X-Real-IP": f"198.51.100.{i}",
                    "CF-Connecting-IP": f"192.0.2.{i}",
                },
            ).status_code
            for i in range(1, 11)
        ]

        assert statuses[:2] == [401, 401]
        assert set(statuses[2:]) == {429}


@pytest.mark.integration
class TestRefresh:
    """Test POST /api/auth/refresh"""

    def test_missing_token(self, client):
        response = client.post("/api/auth/refresh", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_REFRESH_TOKEN"

    def test_not_implemented(self, client):
        response = client.post("/api/auth/refresh", json={"refreshToken": "anything"})
        assert response.status_code == 501
        assert response.json()["code"] == "NOT_IMPLEMENTED"


@pytest.mark.integration
class TestLogout:
    """Test POST /api/auth/logout"""

    def _login(self, client, user):
        return client.post(
            "/api/auth/login",
            json={"email": user.email, "password": TEST_PASSWORD},
        ).json()["data"]

    def test_logout_single_session(self, client, db_session, test_user):
        data = self._login(client, test_user)
        headers = {"Authorization": f"Bearer {data['token']}"}

        response = client.post("/api/auth/logout", json={"sessionToken": data["sessionToken"]}, headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["invalidated"] == 1
        session = db_session.query(UserSession).filter(UserSession.id == uuid.UUID(data["sessionId"])).one()
        assert session.is_active is False

    def test_logout_all_sessions(self, client, test_user):
        first = self._login(client, test_user)
        self._login(client, test_user)

        response = client.post(
            "/api/auth/logout",
            json={"allSessions": True},
            headers={"Authorization": f"Bearer {first['token']}"},
        )
        assert response.json()["data"]["invalidated"] == 2

    def test_bearer_token_still_valid_after_logout(self, client, test_user):
        data = self._login(client, test_user)
        headers = {"Authorization": f"Bearer {data['token']}"}
        client.post("/api/auth/logout", json={"allSessions": True}, headers=headers)

        assert client.get("/api/user/profile", headers=headers).status_code == 200

    def test_cannot_logout_someone_elses_session(self, client, test_user, other_headers):
        data = self._login(client, test_user)

        response = client.post(
            "/api/auth/logout",
            json={"sessionToken": data["sessionToken"]},
            headers=other_headers,
        )
        assert response.status_code == 404

    def test_requires_auth(self, client):
        response = client.post("/api/auth/logout", json={"allSessions": True})
        assert response.status_code == 401


@pytest.mark.integration
class TestPasswordReset:
    """Test the forgot-password / reset-password flow"""

    def test_full_flow(self, client, test_user, email_service):
        response = client.post("/api/auth/forgot-password", json={"email": test_user.email})
        assert response.status_code == 200

        token = reset_token_from_email(email_service)
        _, _, url = email_service.send_password_reset.call_args.args
        assert url.startswith("https://notes.example.com/forgot-password.html?")

        response = client.post("/api/auth/reset-password", json={"token": token, "password": "NewPass1"})
        assert response.status_code == 200
        email_service.send_password_reset_success.assert_called_once()

        new_login = client.post("/api/auth/login", json={"email": test_user.email, "password": "NewPass1"})
        old_login = client.post("/api/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})
        assert new_login.status_code == 200
        assert old_login.status_code == 401

    def test_same_response_for_unknown_email(self, client, test_user, email_service):
        known = client.post("/api/auth/forgot-password", json={"email": test_user.email})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json()["data"] == unknown.json()["data"]
        assert email_service.send_password_reset.call_count == 1

    @pytest.mark.parametrize("payload,code", [
        ({}, "MISSING_EMAIL"),
        ({"email": "not-an-email"}, "INVALID_EMAIL"),
    ])
    def test_forgot_validation(self, client, payload, code):
        response = client.post("/api/auth/forgot-password", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_token_is_single_use(self, client, test_user, email_service):
        client.post("/api/auth/forgot-password", json={"email": test_user.email})
        token = reset_token_from_email(email_service)

        client.post("/api/auth/reset-password", json={"token": token, "password": "NewPass1"})
        response = client.post("/api/auth/reset-password", json={"token": token, "password": "Other12"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_RESET_TOKEN"

    @pytest.mark.parametrize("payload,code", [
        ({"token": "abc"}, "MISSING_FIELDS"),
        ({"password": "NewPass1"}, "MISSING_FIELDS"),
        ({"token": "abc", "password": "12345"}, "PASSWORD_TOO_SHORT"),
        ({"token": "abc", "password": "123456"}, "INVALID_RESET_TOKEN"),
    ])
    def test_reset_validation(self, client, payload, code):
        response = client.post("/api/auth/reset-password", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_expired_token(self, client, test_user, kv_store):
        kv_store.put_json(
            "reset_stale",
            {"userId": str(test_user.id), "email": test_user.email, "expiresAt": "2000-01-01T00:00:00"},
            ttl_seconds=60,
        )

        response = client.post("/api/auth/reset-password", json={"token": "stale", "password": "NewPass1"})

        assert response.status_code == 400
        assert response.json()["code"] == "RESET_TOKEN_EXPIRED"
        assert kv_store.get_json("reset_stale") is None
