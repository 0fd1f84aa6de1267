"""
Logins for staff users and students.

A successful login returns a signed session token. Unknown accounts and
wrong passwords get the same error, and both pay for one hash compare so
response times do not tell them apart.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from practicum.auth.passwords import CredentialHasher
from practicum.auth.permissions import PermissionResolver, parse_role
from practicum.auth.tokens import StudentTokenPayload, TokenService, UserTokenPayload
from practicum.core.errors import WrongCredentialsError
from practicum.core.models import Student, User
from practicum.storage.base import StudentStore, UserStore

logger = logging.getLogger(__name__)


class _DummyCompare:
    """Runs a compare against a throwaway hash when no account matched."""

    def __init__(self, hasher: CredentialHasher):
        self.hasher = hasher
        self._hash: str | None = None

    async def __call__(self, password: str) -> None:
        if self._hash is None:
            self._hash = await self.hasher.hash(secrets.token_hex(16))
        await self.hasher.compare(password, self._hash)


def user_session_payload(user: User, resolver: PermissionResolver) -> UserTokenPayload:
    """Session claims for a user, with the permissions resolved right now."""
    return UserTokenPayload(
        id=user.id,
        name=user.name,
        email=user.email,
        role=parse_role(user.role),
        permissions=sorted(resolver.effective_permissions(user), key=lambda p: p.value),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def student_session_payload(student: Student) -> StudentTokenPayload:
    return StudentTokenPayload(
        id=student.id,
        name=student.name,
        code=student.code,
        career_id=student.career_id,
        email=student.email,
        telephone=student.telephone,
        created_at=student.created_at,
        updated_at=student.updated_at,
    )


class UserAccounts:
    """Staff logins."""

    def __init__(
        self,
        users: UserStore,
        hasher: CredentialHasher,
        tokens: TokenService,
        resolver: PermissionResolver,
        session_ttl: timedelta,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.resolver = resolver
        self.session_ttl = session_ttl
        self._miss = _DummyCompare(hasher)

    async def login(self, email: str, password: str) -> str:
        user = await self.users.get_by_email(email)
        if user is None:
            await self._miss(password)
        if user is None or not await self.hasher.compare(password, user.password_hash):
            logger.info("User login failed for %s", email)
            raise WrongCredentialsError()

        logger.info("User logged in: id=%s", user.id)
        return self.tokens.sign(user_session_payload(user, self.resolver), ttl=self.session_ttl)


class StudentAccounts:
    """Student logins."""

    def __init__(
        self,
        students: StudentStore,
        hasher: CredentialHasher,
        tokens: TokenService,
        session_ttl: timedelta,
    ):
        self.students = students
        self.hasher = hasher
        self.tokens = tokens
        self.session_ttl = session_ttl
        self._miss = _DummyCompare(hasher)

    async def login(self, email: str, password: str) -> str:
        student = await self.students.get_by_email(email)
        if student is None:
            await self._miss(password)
        if student is None or not await self.hasher.compare(password, student.password_hash):
            logger.info("Student login failed for %s", email)
            raise WrongCredentialsError()

        logger.info("Student logged in: id=%s", student.id)
        return self.tokens.sign(student_session_payload(student), ttl=self.session_ttl)
