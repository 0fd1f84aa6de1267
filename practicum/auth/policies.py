"""
Policies - the clean interface for route authorization.

Just use: `ctx: AuthContext = Depends(require(Permission.VIEW_CYCLE))`

Design:
- `require()` returns a FastAPI dependency that resolves to AuthContext
- It reads the Authorization header and hands it to the user guard
- Rejections are AppErrors, rendered by the app's exception handler
- On success the principal is also attached to `request.state`
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from fastapi import Request

from practicum.auth.context import AuthContext, StudentContext
from practicum.auth.permissions import Permission
from practicum.integrations.sentry import set_user

if TYPE_CHECKING:
    from practicum.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """The service container built at startup."""
    return request.app.state.services


# =============================================================================
# Main Interface - the require() functions
# =============================================================================


def require(*permissions: Permission) -> Callable:
    """
    Require a staff user holding every listed permission.

    Usage:
        @router.post("/cycles")
        async def create_cycle(
            data: CycleCreate,
            ctx: AuthContext = Depends(require(Permission.EDIT_CYCLE)),
        ):
            ...
    """

    async def dependency(request: Request) -> AuthContext:
        services = get_services(request)
        ctx = await services.user_guard.authenticate(
            request.headers.get("authorization"),
            permissions,
        )
        request.state.user = ctx.user
        set_user(f"user:{ctx.user.id}")
        return ctx

    return dependency


def require_auth() -> Callable:
    """Just require an authenticated staff user, no specific permission."""
    return require()


def require_student() -> Callable:
    """Require a student session."""

    async def dependency(request: Request) -> StudentContext:
        services = get_services(request)
        ctx = await services.student_guard.authenticate(request.headers.get("authorization"))
        request.state.student = ctx.student
        set_user(f"student:{ctx.student.id}")
        return ctx

    return dependency
