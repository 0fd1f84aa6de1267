"""
HTTP API tests.

Runs the real app against the per-test SQLite database through
FastAPI's TestClient.
"""

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from practicum.api.app import create_app
from practicum.auth.permissions import Role
from practicum.auth.tokens import UserTokenPayload


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services=services)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def login(client, make_user):
    """Factory: create a user and return auth headers for them."""

    def _login(email: str = "ana@example.com", role: str = "base", permissions: list[str] | None = None):
        asyncio.run(make_user(email=email, role=role, permissions=permissions))
        response = client.post("/user/auth", json={"email": email, "password": "correct-horse"})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def student_headers(client, make_student):
    asyncio.run(make_student())
    response = client.post("/api/student/auth", json={"email": "luis@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


# =============================================================================
# Health / Users
# =============================================================================


class TestUsers:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_login_and_check(self, client, login):
        headers = login()

        response = client.get("/user/auth", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "ana@example.com"
        assert "password_hash" not in body

    def test_wrong_password(self, client, login):
        login()

        response = client.post("/user/auth", json={"email": "ana@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "WrongCredentials", "message": "Wrong user or password"}

    def test_invite_flow(self, client, login, email):
        headers = login(email="admin@example.com", role="admin")

        response = client.post(
            "/user/invite",
            headers=headers,
            json={"name": "Eva", "email": "eva@example.com", "role": "member", "permissions": ["EDIT_VACANCY"]},
        )
        assert response.status_code == 204

        token = email.last_token("eva@example.com", "invite-user")
        created = client.post("/user/add", headers={"Authorization": f"Bearer {token}"}, json={"password": "eva-password"})
        assert created.status_code == 201
        assert created.json()["role"] == "member"

        again = client.post("/user/add", headers={"Authorization": f"Bearer {token}"}, json={"password": "eva-password"})
        assert again.status_code == 409
        assert again.json()["error"] == "AccountConflict"

    def test_invite_requires_permission(self, client, login):
        headers = login(role="member")

        response = client.post("/user/invite", headers=headers, json={"name": "Eva", "email": "eva@example.com"})

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_password_recovery(self, client, login, email):
        login()

        response = client.post("/user/recover-password", json={"email": "ana@example.com"})
        assert response.status_code == 204
        token = email.last_token("ana@example.com", "recover-user-password")

        response = client.post(
            "/user/password",
            headers={"Authorization": f"Bearer {token}"},
            json={"password": "brand-new-pass"},
        )
        assert response.status_code == 204

        response = client.post("/user/auth", json={"email": "ana@example.com", "password": "brand-new-pass"})
        assert response.status_code == 200

    def test_recovery_for_unknown_email_looks_the_same(self, client, email):
        response = client.post("/user/recover-password", json={"email": "nobody@example.com"})

        assert response.status_code == 204
        assert email.sent == []


# =============================================================================
# Auth rejections over HTTP
# =============================================================================


class TestRejections:
    def test_missing_token(self, client):
        response = client.get("/cycles")

        assert response.status_code == 401
        assert response.json()["error"] == "MissingToken"

    def test_malformed_token(self, client):
        response = client.get("/cycles", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidToken"

    def test_expired_token(self, client, services, make_user):
        user = asyncio.run(make_user())
        token = services.tokens.sign(
            UserTokenPayload(
                id=user.id,
                name=user.name,
                email=user.email,
                role=Role.BASE,
                permissions=[],
                created_at=user.created_at,
                updated_at=user.updated_at,
            ),
            ttl=timedelta(0),
        )

        response = client.get("/user/auth", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "TokenExpired"
        assert body["expired_at"]
        assert body["message"].startswith("Authorization token expired at")

    def test_student_token_on_staff_route(self, client, student_headers):
        response = client.get("/cycles", headers=student_headers)

        assert response.status_code == 401
        assert response.json()["error"] == "InvalidScope"

    def test_staff_token_on_student_route(self, client, login):
        response = client.get("/api/student/me", headers=login())

        assert response.status_code == 401
        assert response.json()["error"] == "InvalidScope"


# =============================================================================
# Cycles
# =============================================================================


class TestCycles:
    def test_base_user_can_list_but_not_create(self, client, login):
        headers = login(role="base")

        assert client.get("/cycles", headers=headers).status_code == 200

        response = client.post("/cycles", headers=headers, json={"slug": "2024A"})
        assert response.status_code == 403

    def test_create_update_and_list(self, client, login):
        headers = login(role="admin")

        first = client.post("/cycles", headers=headers, json={"slug": "2024A", "is_current": True})
        assert first.status_code == 201
        assert first.json()["is_current"] is True

        second = client.post("/cycles", headers=headers, json={"slug": "2024B"})
        cycle_id = second.json()["id"]

        response = client.patch(f"/cycles/{cycle_id}", headers=headers, json={"is_current": True})
        assert response.status_code == 200
        assert response.json()["is_current"] is True

        listing = client.get("/cycles", headers=headers).json()
        assert listing["total"] == 2
        assert [c["slug"] for c in listing["records"] if c["is_current"]] == ["2024B"]

    def test_search_by_slug(self, client, login):
        headers = login(role="admin")
        for slug in ("2024A", "2024B", "2025A"):
            client.post("/cycles", headers=headers, json={"slug": slug})

        response = client.get("/cycles", headers=headers, params={"search": "2024"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert sorted(c["slug"] for c in body["records"]) == ["2024A", "2024B"]

    def test_conflict_and_not_found(self, client, login):
        headers = login(role="admin")
        client.post("/cycles", headers=headers, json={"slug": "2024A"})

        duplicate = client.post("/cycles", headers=headers, json={"slug": "2024A"})
        assert duplicate.status_code == 409
        assert duplicate.json() == {"error": "CycleConflict", "message": "Conflict"}

        missing = client.patch("/cycles/999", headers=headers, json={"slug": "2024Z"})
        assert missing.status_code == 404
        assert missing.json()["message"] == "Cycle not found"


# =============================================================================
# Students
# =============================================================================


class TestStudents:
    def test_me(self, client, student_headers):
        response = client.get("/api/student/me", headers=student_headers)

        assert response.status_code == 200
        assert response.json()["code"] == "A0001"
        assert "password_hash" not in response.json()

    def test_no_current_cycle(self, client, student_headers):
        response = client.get("/api/student/cycles/current", headers=student_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "NotFound", "message": "No current cycle found"}

    def test_current_cycle(self, client, login, student_headers):
        admin = login(email="admin@example.com", role="admin")
        client.post("/cycles", headers=admin, json={"slug": "2025A", "is_current": True})

        response = client.get("/api/student/cycles/current", headers=student_headers)
        assert response.status_code == 200
        assert response.json()["slug"] == "2025A"

    def test_student_invite(self, client, login, email):
        headers = login(role="member")

        response = client.post("/students/invite", headers=headers, json={"email": "new@example.com"})
        assert response.status_code == 204

        token = email.last_token("new@example.com", "invite-student")
        response = client.post(
            "/students/add",
            headers={"Authorization": f"Bearer {token}"},
            json={
                "name": "Nora",
                "code": "A0099",
                "career_id": 2,
                "telephone": "5550099",
                "password": "nora-password",
            },
        )
        assert response.status_code == 201
        assert response.json()["email"] == "new@example.com"

    def test_student_invite_rejects_session_token(self, client, login):
        headers = login(role="admin")

        response = client.post(
            "/students/add",
            headers=headers,
            json={
                "name": "Nora",
                "code": "A0099",
                "career_id": 2,
                "telephone": "5550099",
                "password": "nora-password",
            },
        )

        assert response.status_code == 403
        assert response.json()["error"] == "InvalidScope"
