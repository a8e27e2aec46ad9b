"""Integration tests for note API routes."""
import uuid

import pytest


def create_note(client, headers, **fields):
    payload = {"title": "A note", "content": "Some content"}
    payload.update(fields)
    response = client.post("/api/notes", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["note"]


@pytest.mark.integration
class TestAuthentication:

    def test_missing_header(self, client):
        response = client.get("/api/notes")
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"
        assert response.json()["message"] == "Authorization header required"

    def test_garbage_token(self, client):
        response = client.get("/api/notes", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_expired_token_same_message(self, client, token_service, test_user):
        from datetime import datetime, timedelta

        expired = token_service.issue(
            test_user.id, test_user.email, test_user.name,
            now=datetime.utcnow() - timedelta(days=8),
        )
        response = client.get("/api/notes", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_token_for_deleted_user(self, client, token_service):
        token = token_service.issue(uuid.uuid4(), "gone@example.com", "Gone")
        response = client.get("/api/notes", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_rate_limit_runs_before_auth(self, client, test_settings):
        test_settings.rate_limit_requests = 1

        assert client.get("/api/notes").status_code == 401
        assert client.get("/api/notes").status_code == 429


@pytest.mark.integration
class TestCrud:

    def test_create_and_get(self, client, auth_headers):
        created = create_note(client, auth_headers, tags=["python"], type="code", metadata={"lang": "py"})

        assert created["type"] == "code"
        assert created["tags"] == ["python"]
        assert created["metadata"] == {"lang": "py"}

        response = client.get(f"/api/notes/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        note = response.json()["data"]["note"]
        assert note["title"] == "A note"
        assert note["categoryNames"] == []

    def test_create_requires_title(self, client, auth_headers):
        response = client.post("/api/notes", json={"content": "x"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_TITLE"

    def test_update_partial(self, client, auth_headers):
        created = create_note(client, auth_headers, tags=["a"])

        response = client.put(f"/api/notes/{created['id']}", json={"starred": True}, headers=auth_headers)

        assert response.status_code == 200
        note = response.json()["data"]["note"]
        assert note["starred"] is True
        assert note["content"] == "Some content"
        assert note["tags"] == ["a"]

    def test_update_empty_body(self, client, auth_headers):
        created = create_note(client, auth_headers)
        response = client.put(f"/api/notes/{created['id']}", json={}, headers=auth_headers)
        assert response.json()["code"] == "NO_UPDATES"

    def test_delete(self, client, auth_headers):
        created = create_note(client, auth_headers)

        assert client.delete(f"/api/notes/{created['id']}", headers=auth_headers).status_code == 200
        response = client.get(f"/api/notes/{created['id']}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "NOTE_NOT_FOUND"

    def test_invalid_id(self, client, auth_headers):
        response = client.get("/api/notes/not-a-uuid", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_NOTE_ID"

    def test_other_users_note_is_not_found(self, client, auth_headers, other_headers):
        created = create_note(client, other_headers)

        for method in ("get", "put", "delete"):
            kwargs = {"json": {"title": "x"}} if method == "put" else {}
            response = getattr(client, method)(f"/api/notes/{created['id']}", headers=auth_headers, **kwargs)
            assert response.status_code == 404


@pytest.mark.integration
class TestListAndSearch:

    def test_list(self, client, auth_headers, other_headers):
        create_note(client, auth_headers, title="First", tags=["work"])
        create_note(client, auth_headers, title="Second", starred=True)
        create_note(client, other_headers, title="Not mine")

        response = client.get("/api/notes", headers=auth_headers)
        data = response.json()["data"]
        assert {n["title"] for n in data["notes"]} == {"First", "Second"}
        assert data["pagination"]["total"] == 2
        assert "preview" in data["notes"][0]

        starred = client.get("/api/notes?starred=true", headers=auth_headers).json()["data"]
        assert [n["title"] for n in starred["notes"]] == ["Second"]

        tagged = client.get("/api/notes?tags=work", headers=auth_headers).json()["data"]
        assert [n["title"] for n in tagged["notes"]] == ["First"]

    def test_tag_filter_non_ascii(self, client, auth_headers):
        create_note(client, auth_headers, title="Paris", tags=["café", "voyage"])
        create_note(client, auth_headers, title="Home", tags=["cafe"])

        data = client.get("/api/notes", params={"tags": "café"}, headers=auth_headers).json()["data"]
        assert [n["title"] for n in data["notes"]] == ["Paris"]
        assert data["pagination"]["total"] == 1

        data = client.get("/api/notes", params={"tags": "日本,voyage"}, headers=auth_headers).json()["data"]
        assert data["pagination"]["total"] == 1

    def test_tag_filter_with_quote(self, client, auth_headers):
        create_note(client, auth_headers, title="Quoted", tags=['say "hi"'])

        data = client.get("/api/notes", params={"tags": 'say "hi"'}, headers=auth_headers).json()["data"]
        assert [n["title"] for n in data["notes"]] == ["Quoted"]

    def test_limit_capped(self, client, auth_headers):
        data = client.get("/api/notes?limit=1000", headers=auth_headers).json()["data"]
        assert data["pagination"]["limit"] == 100

    def test_invalid_sort(self, client, auth_headers):
        response = client.get("/api/notes?sort=secret", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SORT_FIELD"

    def test_search(self, client, auth_headers):
        create_note(client, auth_headers, title="Deploy checklist")
        create_note(client, auth_headers, title="Groceries")

        data = client.get("/api/notes/search?q=deploy", headers=auth_headers).json()["data"]
        assert data["total"] == 1
        assert data["results"][0]["title"] == "Deploy checklist"

    def test_search_requires_query(self, client, auth_headers):
        response = client.get("/api/notes/search", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_QUERY"


@pytest.mark.integration
class TestBulkAndStats:

    def test_bulk_update(self, client, auth_headers):
        first = create_note(client, auth_headers)
        second = create_note(client, auth_headers)

        response = client.post(
            "/api/notes/bulk-update",
            json={"noteIds": [first["id"], second["id"]], "updates": {"tags": ["bulk"]}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["affectedCount"] == 2
        note = client.get(f"/api/notes/{first['id']}", headers=auth_headers).json()["data"]["note"]
        assert note["tags"] == ["bulk"]

    def test_bulk_update_validation(self, client, auth_headers):
        response = client.post(
            "/api/notes/bulk-update",
            json={"noteIds": [], "updates": {"starred": True}},
            headers=auth_headers,
        )
        assert response.json()["code"] == "MISSING_NOTE_IDS"

    def test_stats(self, client, auth_headers):
        create_note(client, auth_headers, content="abc", tags=["x"], starred=True)
        create_note(client, auth_headers, content="de", tags=["x", "y"], type="plan")

        data = client.get("/api/notes/stats", headers=auth_headers).json()["data"]

        assert data["stats"]["totalNotes"] == 2
        assert data["stats"]["starredNotes"] == 1
        assert data["stats"]["planNotes"] == 1
        assert data["stats"]["totalCharacters"] == 5
        assert data["topTags"][0] == {"tag": "x", "count": 2}
