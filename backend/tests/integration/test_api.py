"""Integration tests for health, envelopes and HTTP hardening."""
import asyncio
from unittest.mock import patch

import pytest

from notelab.config import Settings


@pytest.mark.integration
class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"
        assert body["database"] == "connected"
        assert body["timestamp"].endswith("Z")

    def test_health_not_rate_limited(self, client, test_settings):
        test_settings.rate_limit_requests = 1
        statuses = {client.get("/api/health").status_code for _ in range(3)}
        assert statuses == {200}


@pytest.mark.integration
class TestErrorEnvelope:

    def test_unknown_route(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] is True
        assert body["code"] == "NOT_FOUND"
        assert "timestamp" in body

    def test_malformed_json(self, client, auth_headers):
        response = client.post(
            "/api/notes",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_request_too_large(self):
        from fastapi import FastAPI
        from fastapi.testclient import TestClient
        from notelab.middleware.security import RequestSizeLimitMiddleware

        app = FastAPI()
        app.add_middleware(RequestSizeLimitMiddleware, max_content_length=10)

        @app.post("/echo")
        async def echo():
            return {"ok": True}

        client = TestClient(app)
        assert client.post("/echo", content=b"x" * 10).status_code == 200

        response = client.post("/echo", content=b"x" * 11)
        assert response.status_code == 413
        assert response.json()["code"] == "PAYLOAD_TOO_LARGE"


@pytest.mark.integration
class TestSecurityHeaders:

    def test_headers_present(self, client):
        response = client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    def test_request_id_added(self, client):
        response = client.get("/api/health")
        assert len(response.headers["X-Request-ID"]) == 8


@pytest.mark.integration
class TestStartupChecks:
    """JWT secret validation in the application lifespan"""

    def _start(self, settings):
        from notelab import main

        async def run():
            async with main.lifespan(main.app):
                pass

        with patch.object(main, "get_settings", return_value=settings):
            asyncio.run(run())

    def test_placeholder_secret_refused_in_production(self):
        settings = Settings(
            environment="production",
            debug=False,
            jwt_secret_key="your-secret-key-change-in-production",
        )
        with pytest.raises(RuntimeError):
            self._start(settings)

    def test_placeholder_secret_warns_in_development(self):
        settings = Settings(
            environment="development",
            jwt_secret_key="your-secret-key-change-in-production",
        )
        self._start(settings)

    def test_real_secret_starts_in_production(self):
        settings = Settings(
            environment="production",
            debug=False,
            jwt_secret_key="kq3N0x9-randomly-generated-production-value",
        )
        self._start(settings)
