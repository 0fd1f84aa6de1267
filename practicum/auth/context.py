"""
Auth context - the "who can do what" for each request.

This is the lightweight object a staff route receives once the user
guard has let the request through. It holds the freshly loaded user and
the permissions resolved from it, never the token's snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from practicum.auth.permissions import Permission
from practicum.core.errors import ForbiddenError
from practicum.core.models import Student, User


@dataclass
class AuthContext:
    """
    Authorization context for a staff request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require(Permission.VIEW_CYCLE))):
            if ctx.can(Permission.EDIT_CYCLE):
                # do something
    """

    user: User
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    @property
    def user_id(self) -> int:
        return self.user.id

    def can(self, permission: Permission | str) -> bool:
        """
        Check if the user has a permission.

        Unknown tags are never granted.
        """
        if isinstance(permission, str):
            try:
                permission = Permission(permission)
            except ValueError:
                return False
        return permission in self.permissions

    def can_all(self, *permissions: Permission | str) -> bool:
        return all(self.can(p) for p in permissions)

    def require(self, *permissions: Permission | str) -> None:
        """Raise Forbidden unless every permission is present."""
        missing = [str(getattr(p, "value", p)) for p in permissions if not self.can(p)]
        if missing:
            raise ForbiddenError(f"Missing permissions: {', '.join(missing)}")


@dataclass
class StudentContext:
    """Authorization context for a student request. Students have one scope."""

    student: Student

    @property
    def student_id(self) -> int:
        return self.student.id
