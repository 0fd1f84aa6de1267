"""
Permissions, roles, and the role table.

This defines WHAT staff users can do, not HOW we check it.
The actual checking happens in guards.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from practicum.core.models import User


class Role(str, Enum):
    """Platform-wide staff role."""

    ADMIN = "admin"      # Everything
    MEMBER = "member"    # Day-to-day staff, edits most records
    BASE = "base"        # Read-only


class Permission(str, Enum):
    """
    Fine-grained permissions.

    These are the actual tags routes require. A user's permissions are
    derived from their role defaults plus explicit grants.
    """

    VIEW_STUDENT = "VIEW_STUDENT"
    EDIT_STUDENT = "EDIT_STUDENT"

    VIEW_VACANCY = "VIEW_VACANCY"
    EDIT_VACANCY = "EDIT_VACANCY"

    VIEW_CATEGORY = "VIEW_CATEGORY"
    EDIT_CATEGORY = "EDIT_CATEGORY"

    VIEW_CYCLE = "VIEW_CYCLE"
    EDIT_CYCLE = "EDIT_CYCLE"

    VIEW_DEPARTMENT = "VIEW_DEPARTMENT"
    EDIT_DEPARTMENT = "EDIT_DEPARTMENT"

    VIEW_CAREER = "VIEW_CAREER"
    EDIT_CAREER = "EDIT_CAREER"

    INVITE_USER = "INVITE_USER"


DEFAULT_ROLE = Role.BASE


class UnknownRoleError(ValueError):
    """A stored role is not in the role table. This is a data bug."""


class UnknownPermissionError(ValueError):
    """A stored permission grant is not a known tag. This is a data bug."""


# =============================================================================
# Role Table
# =============================================================================


_VIEW_ALL = frozenset(p for p in Permission if p.value.startswith("VIEW_"))


@dataclass(frozen=True)
class RoleTable:
    """
    Immutable role -> default permissions mapping.

    Built once at startup and handed to the resolver; every instance of
    the deployment must use the same table.
    """

    defaults: Mapping[Role, frozenset[Permission]]

    @classmethod
    def build(cls, defaults: Mapping[Role, Iterable[Permission]]) -> RoleTable:
        missing = set(Role) - set(defaults)
        if missing:
            raise ValueError(f"Role table has no entry for: {sorted(r.value for r in missing)}")
        return cls(MappingProxyType({role: frozenset(perms) for role, perms in defaults.items()}))

    def for_role(self, role: Role) -> frozenset[Permission]:
        return self.defaults[role]


DEFAULT_ROLE_TABLE = RoleTable.build({
    Role.BASE: _VIEW_ALL,
    Role.MEMBER: _VIEW_ALL | {
        Permission.EDIT_STUDENT,
        Permission.EDIT_CATEGORY,
        Permission.EDIT_CAREER,
        Permission.EDIT_DEPARTMENT,
    },
    Role.ADMIN: frozenset(Permission),
})


# =============================================================================
# Resolver
# =============================================================================


def parse_role(value: str | Role | None) -> Role:
    """Parse a stored role, defaulting to the lowest-privilege one."""
    if value is None:
        return DEFAULT_ROLE
    try:
        return Role(value)
    except ValueError:
        raise UnknownRoleError(f"Unknown role: {value!r}") from None


def parse_permissions(values: Iterable[str | Permission]) -> frozenset[Permission]:
    try:
        return frozenset(Permission(v) for v in values)
    except ValueError as e:
        raise UnknownPermissionError(str(e)) from None


class PermissionResolver:
    """Computes effective permissions: role defaults ∪ explicit grants."""

    def __init__(self, table: RoleTable = DEFAULT_ROLE_TABLE):
        self.table = table

    def resolve(
        self,
        role: str | Role | None,
        grants: Iterable[str | Permission] = (),
    ) -> frozenset[Permission]:
        return self.table.for_role(parse_role(role)) | parse_permissions(grants)

    def effective_permissions(self, user: User) -> frozenset[Permission]:
        return self.resolve(user.role, user.permissions)
