"""
Authentication and authorization.

Design principles:
1. One FastAPI dependency per route: require(...) or require_student()
2. Permissions = role defaults + explicit grants, re-read on every request
3. Tokens are scoped; a token is only ever accepted for its own scope
4. Stateless: nothing about a session lives on the server
"""

from practicum.auth.context import AuthContext, StudentContext
from practicum.auth.permissions import (
    DEFAULT_ROLE,
    DEFAULT_ROLE_TABLE,
    Permission,
    PermissionResolver,
    Role,
    RoleTable,
    UnknownPermissionError,
    UnknownRoleError,
)
from practicum.auth.passwords import CredentialHasher, CredentialHasherError
from practicum.auth.tokens import (
    PAYLOAD_TYPES,
    Scope,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenNotYetValidError,
    TokenService,
)
from practicum.auth.guards import StudentGuard, UserGuard
from practicum.auth.policies import require, require_auth, require_student

__all__ = [
    # Main interface
    "require",
    "require_auth",
    "require_student",
    "AuthContext",
    "StudentContext",
    # Permissions
    "Permission",
    "Role",
    "RoleTable",
    "PermissionResolver",
    "DEFAULT_ROLE",
    "DEFAULT_ROLE_TABLE",
    "UnknownRoleError",
    "UnknownPermissionError",
    # Credentials and tokens
    "CredentialHasher",
    "CredentialHasherError",
    "TokenService",
    "Scope",
    "PAYLOAD_TYPES",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenNotYetValidError",
    # Guards
    "UserGuard",
    "StudentGuard",
]
