"""
Authentication guards.

Every protected request walks the same steps, and the first failing step
decides the rejection:

    header present -> token extracted -> token verified -> scope matches
        -> principal loaded -> (users) permissions present -> authorized

Guards keep no state between requests: every call re-verifies the token
and reloads the principal, so a role change or a deleted account takes
effect on the very next request.
"""

from __future__ import annotations

import logging
from typing import Iterable

from practicum.auth.context import AuthContext, StudentContext
from practicum.auth.permissions import Permission, PermissionResolver
from practicum.auth.tokens import (
    Scope,
    TokenExpiredError,
    TokenInvalidError,
    TokenNotYetValidError,
    TokenPayload,
    TokenService,
)
from practicum.core.errors import (
    AppError,
    ForbiddenError,
    InvalidScopeError,
    InvalidTokenError,
    MissingTokenError,
    TokenExpiredRejection,
    UnauthorizedError,
)
from practicum.storage.base import StudentStore, UserStore

logger = logging.getLogger(__name__)


# =============================================================================
# Shared steps
# =============================================================================


def extract_bearer(authorization: str | None, strict: bool = False) -> str:
    """
    Pull the token out of an Authorization header.

    Loose mode takes the second whitespace-separated part whatever the
    first one says. Strict mode insists on the literal `Bearer ` prefix.
    """
    if not authorization:
        raise MissingTokenError()

    if strict:
        if not authorization.startswith("Bearer "):
            raise InvalidTokenError()
        token = authorization[len("Bearer "):].strip()
        if not token:
            raise InvalidTokenError()
        return token

    parts = authorization.split()
    if len(parts) < 2:
        raise InvalidTokenError(status_code=400)
    return parts[1]


def verify_token(tokens: TokenService, token: str) -> TokenPayload:
    """Verify a token, turning every failure into a caller-facing rejection."""
    try:
        payload = tokens.verify(token)
    except TokenExpiredError as e:
        raise TokenExpiredRejection(e.expired_at) from None
    except TokenNotYetValidError:
        raise InvalidTokenError("Token not yet valid") from None
    except TokenInvalidError:
        raise InvalidTokenError("Invalid authorization token", status_code=400) from None

    if payload is None:
        raise InvalidTokenError()
    return payload


def _reject(error: AppError, guard: str) -> AppError:
    logger.info("%s guard rejected request: %s", guard, error.kind)
    return error


# =============================================================================
# Guards
# =============================================================================


class UserGuard:
    """
    Admits staff users holding a `user` token.

    Usage:
        ctx = await guard.authenticate(request.headers.get("authorization"),
                                       [Permission.EDIT_CYCLE])
    """

    def __init__(self, tokens: TokenService, users: UserStore, resolver: PermissionResolver):
        self.tokens = tokens
        self.users = users
        self.resolver = resolver

    async def authenticate(
        self,
        authorization: str | None,
        required: Iterable[Permission] = (),
    ) -> AuthContext:
        try:
            token = extract_bearer(authorization)
            payload = verify_token(self.tokens, token)
        except AppError as e:
            raise _reject(e, "user") from None

        if payload.scope != Scope.USER.value:
            raise _reject(InvalidScopeError(), "user")

        user = await self.users.get_by_id(payload.id)
        if user is None:
            raise _reject(UnauthorizedError(), "user")

        # The token's permission snapshot may be hours old; use the row
        ctx = AuthContext(user=user, permissions=self.resolver.effective_permissions(user))
        required = list(required)
        if not ctx.can_all(*required):
            logger.info("user guard rejected user %s: %s", user.id, ForbiddenError.kind)
            ctx.require(*required)

        return ctx


class StudentGuard:
    """Admits students holding a `student` token."""

    def __init__(self, tokens: TokenService, students: StudentStore):
        self.tokens = tokens
        self.students = students

    async def authenticate(self, authorization: str | None) -> StudentContext:
        try:
            token = extract_bearer(authorization)
            payload = verify_token(self.tokens, token)
        except AppError as e:
            raise _reject(e, "student") from None

        if payload.scope != Scope.STUDENT.value:
            raise _reject(InvalidScopeError(), "student")

        student = await self.students.get_by_id(payload.id)
        if student is None:
            raise _reject(UnauthorizedError(), "student")

        return StudentContext(student=student)
