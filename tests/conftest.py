"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path, a service container
wired to it with a cheap hash work factor, and an email service that
records messages instead of sending them.
"""

from __future__ import annotations

from typing import Any

import pytest

from practicum.config import Settings
from practicum.integrations.email import EmailService
from practicum.services.container import build_services
from practicum.storage import create_sqlite_storage


class RecordingEmailService(EmailService):
    """Keeps every message in memory."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.sent: list[dict[str, Any]] = []

    async def send(self, to: str, template: str, data: dict[str, Any] | None = None) -> bool:
        self.sent.append({"to": to, "template": template, "data": data or {}})
        return True

    def last_token(self, to: str, template: str) -> str:
        """The token carried by the most recent matching email's link."""
        for message in reversed(self.sent):
            if message["to"] == to and message["template"] == template:
                return message["data"]["url"].split("token=", 1)[1]
        raise AssertionError(f"No '{template}' email sent to {to}")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    """Test settings: isolated database, fixed secret, fast hashing."""
    return Settings(
        _env_file=None,
        environment="test",
        database_path=str(tmp_path / "practicum.db"),
        jwt_secret_key="test-secret",
        password_hash_iterations=1_000,
        aws_access_key_id="",
        aws_secret_access_key="",
        sentry_dsn="",
    )


@pytest.fixture
def storage(settings):
    return create_sqlite_storage(settings.database_path)


@pytest.fixture
def email(settings):
    return RecordingEmailService(settings)


@pytest.fixture
def services(settings, storage, email):
    return build_services(settings, storage=storage, email=email)


@pytest.fixture
def make_user(services):
    """Factory: create a staff user with a known password."""

    async def _make(
        email: str = "ana@example.com",
        password: str = "correct-horse",
        role: str | None = "base",
        permissions: list[str] | None = None,
        name: str = "Ana",
    ):
        return await services.storage.users.create(
            name=name,
            email=email,
            password_hash=await services.hasher.hash(password),
            role=role,
            permissions=permissions or [],
        )

    return _make


@pytest.fixture
def make_student(services):
    """Factory: create a student with a known password."""

    async def _make(
        email: str = "luis@example.com",
        password: str = "correct-horse",
        code: str = "A0001",
        telephone: str = "5550001",
        career_id: int = 1,
        name: str = "Luis",
    ):
        return await services.storage.students.create(
            name=name,
            code=code,
            password_hash=await services.hasher.hash(password),
            career_id=career_id,
            email=email,
            telephone=telephone,
        )

    return _make
