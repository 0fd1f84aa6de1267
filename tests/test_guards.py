"""
Tests for the user and student guards.

A guard either returns the freshly loaded principal or raises exactly one
rejection, decided by the first check that fails.
"""

from datetime import timedelta

import pytest

from practicum.auth.permissions import Permission, Role
from practicum.auth.tokens import (
    RecoverUserPasswordPayload,
    StudentTokenPayload,
    UserTokenPayload,
)
from practicum.core.errors import (
    ForbiddenError,
    InvalidScopeError,
    InvalidTokenError,
    MissingTokenError,
    TokenExpiredRejection,
    UnauthorizedError,
)
from practicum.core.utils import utc_now


def bearer(token: str) -> str:
    return f"Bearer {token}"


# =============================================================================
# Header / Token
# =============================================================================


class TestTokenChecks:
    @pytest.mark.asyncio
    async def test_missing_header(self, services):
        with pytest.raises(MissingTokenError) as exc_info:
            await services.user_guard.authenticate(None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_header_without_token(self, services):
        with pytest.raises(InvalidTokenError):
            await services.user_guard.authenticate("Bearer")

    @pytest.mark.asyncio
    async def test_garbage_token(self, services):
        with pytest.raises(InvalidTokenError) as exc_info:
            await services.user_guard.authenticate("Bearer not.a.token")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_expired_token_exposes_expiry(self, services, make_user):
        user = await make_user()
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

        with pytest.raises(TokenExpiredRejection) as exc_info:
            await services.user_guard.authenticate(bearer(token))

        body = exc_info.value.to_dict()
        assert body["error"] == "TokenExpired"
        assert body["expired_at"] is not None
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_prefix_is_not_checked(self, services, make_user):
        await make_user()
        token = await services.user_accounts.login("ana@example.com", "correct-horse")

        ctx = await services.user_guard.authenticate(f"Token {token}")

        assert ctx.user.email == "ana@example.com"


# =============================================================================
# Scope isolation
# =============================================================================


class TestScopes:
    @pytest.mark.asyncio
    async def test_student_token_rejected_by_user_guard(self, services, make_student):
        await make_student()
        token = await services.student_accounts.login("luis@example.com", "correct-horse")

        with pytest.raises(InvalidScopeError):
            await services.user_guard.authenticate(bearer(token))

    @pytest.mark.asyncio
    async def test_user_token_rejected_by_student_guard(self, services, make_user):
        await make_user()
        token = await services.user_accounts.login("ana@example.com", "correct-horse")

        with pytest.raises(InvalidScopeError):
            await services.student_guard.authenticate(bearer(token))

    @pytest.mark.asyncio
    async def test_recovery_token_is_not_a_session(self, services, make_user):
        user = await make_user()
        token = services.tokens.sign(RecoverUserPasswordPayload(id=user.id))

        with pytest.raises(InvalidScopeError):
            await services.user_guard.authenticate(bearer(token))

    @pytest.mark.asyncio
    async def test_student_session(self, services, make_student):
        student = await make_student()
        token = await services.student_accounts.login("luis@example.com", "correct-horse")

        ctx = await services.student_guard.authenticate(bearer(token))

        assert ctx.student.id == student.id


# =============================================================================
# Principal and permissions
# =============================================================================


class TestPrincipal:
    @pytest.mark.asyncio
    async def test_deleted_user(self, services):
        now = utc_now()
        token = services.tokens.sign(UserTokenPayload(
            id=999,
            name="Ghost",
            email="ghost@example.com",
            role=Role.ADMIN,
            permissions=list(Permission),
            created_at=now,
            updated_at=now,
        ))

        with pytest.raises(UnauthorizedError):
            await services.user_guard.authenticate(bearer(token), [Permission.VIEW_CYCLE])

    @pytest.mark.asyncio
    async def test_deleted_student(self, services):
        now = utc_now()
        token = services.tokens.sign(StudentTokenPayload(
            id=999,
            name="Ghost",
            code="X",
            career_id=1,
            email="ghost@example.com",
            telephone="0",
            created_at=now,
            updated_at=now,
        ))

        with pytest.raises(UnauthorizedError):
            await services.student_guard.authenticate(bearer(token))

    @pytest.mark.asyncio
    async def test_grant_takes_effect_without_new_token(self, services, make_user):
        user = await make_user(role="base")
        token = await services.user_accounts.login("ana@example.com", "correct-horse")

        with pytest.raises(ForbiddenError) as exc_info:
            await services.user_guard.authenticate(bearer(token), [Permission.EDIT_VACANCY])
        assert exc_info.value.status_code == 403
        assert "EDIT_VACANCY" in exc_info.value.message

        await services.storage.users.set_permissions(user.id, ["EDIT_VACANCY"])

        ctx = await services.user_guard.authenticate(bearer(token), [Permission.EDIT_VACANCY])
        assert ctx.can(Permission.EDIT_VACANCY)

    @pytest.mark.asyncio
    async def test_set_permissions_replaces_grants(self, services, make_user):
        user = await make_user(permissions=["EDIT_VACANCY"])

        updated = await services.storage.users.set_permissions(user.id, ["INVITE_USER"])

        assert updated.permissions == ["INVITE_USER"]
        assert await services.storage.users.set_permissions(999, []) is None

    @pytest.mark.asyncio
    async def test_token_snapshot_is_not_trusted(self, services, make_user):
        user = await make_user(role="base")
        forged = services.tokens.sign(UserTokenPayload(
            id=user.id,
            name=user.name,
            email=user.email,
            role=Role.ADMIN,
            permissions=list(Permission),
            created_at=user.created_at,
            updated_at=user.updated_at,
        ))

        with pytest.raises(ForbiddenError):
            await services.user_guard.authenticate(bearer(forged), [Permission.EDIT_CYCLE])

    @pytest.mark.asyncio
    async def test_all_required_permissions_are_checked(self, services, make_user):
        await make_user(role="member")
        token = await services.user_accounts.login("ana@example.com", "correct-horse")

        ctx = await services.user_guard.authenticate(
            bearer(token),
            [Permission.VIEW_CYCLE, Permission.EDIT_STUDENT],
        )
        assert ctx.user.role == "member"

        with pytest.raises(ForbiddenError):
            await services.user_guard.authenticate(
                bearer(token),
                [Permission.VIEW_CYCLE, Permission.EDIT_CYCLE],
            )
