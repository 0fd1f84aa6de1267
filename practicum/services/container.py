"""
Service container.

Everything the API needs is constructed once at startup and handed
around explicitly. Routes reach it through `request.app.state.services`.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from pydantic import BaseModel

from practicum.auth.accounts import StudentAccounts, UserAccounts
from practicum.auth.flows import InviteFlow, RecoveryFlow
from practicum.auth.guards import StudentGuard, UserGuard
from practicum.auth.passwords import CredentialHasher
from practicum.auth.permissions import DEFAULT_ROLE_TABLE, PermissionResolver, RoleTable
from practicum.auth.tokens import TokenService
from practicum.config import DEV_JWT_SECRET, Settings
from practicum.integrations.email import EmailService
from practicum.services.cycles import CycleManager
from practicum.storage import StorageProvider, create_sqlite_storage

logger = logging.getLogger(__name__)


class ServiceContainer(BaseModel):
    """All constructed services for one running app."""

    model_config = {"arbitrary_types_allowed": True}

    settings: Settings
    storage: StorageProvider
    hasher: CredentialHasher
    tokens: TokenService
    resolver: PermissionResolver
    email: EmailService
    user_guard: UserGuard
    student_guard: StudentGuard
    user_accounts: UserAccounts
    student_accounts: StudentAccounts
    recovery: RecoveryFlow
    invites: InviteFlow
    cycles: CycleManager


def build_services(
    settings: Settings,
    storage: StorageProvider | None = None,
    email: EmailService | None = None,
    role_table: RoleTable = DEFAULT_ROLE_TABLE,
) -> ServiceContainer:
    """
    Wire every service from settings.

    `storage` and `email` can be passed in to swap the backends (tests).
    Refuses to start in production with an unset or development JWT secret.
    """
    if settings.is_production and settings.jwt_secret_key in ("", DEV_JWT_SECRET):
        raise ValueError("JWT_SECRET_KEY must be set in production")

    if storage is None:
        storage = create_sqlite_storage(
            settings.database_path,
            busy_timeout=settings.database_busy_timeout,
        )
    if email is None:
        email = EmailService(settings)

    hasher = CredentialHasher(iterations=settings.password_hash_iterations)
    tokens = TokenService(settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    resolver = PermissionResolver(role_table)
    session_ttl = timedelta(hours=settings.session_token_ttl_hours)

    services = ServiceContainer(
        settings=settings,
        storage=storage,
        hasher=hasher,
        tokens=tokens,
        resolver=resolver,
        email=email,
        user_guard=UserGuard(tokens, storage.users, resolver),
        student_guard=StudentGuard(tokens, storage.students),
        user_accounts=UserAccounts(storage.users, hasher, tokens, resolver, session_ttl),
        student_accounts=StudentAccounts(storage.students, hasher, tokens, session_ttl),
        recovery=RecoveryFlow(
            storage.users,
            storage.students,
            hasher,
            tokens,
            email,
            ttl=timedelta(minutes=settings.recovery_token_ttl_minutes),
        ),
        invites=InviteFlow(
            storage.users,
            storage.students,
            hasher,
            tokens,
            email,
            ttl=timedelta(hours=settings.invite_token_ttl_hours),
        ),
        cycles=CycleManager(storage.cycles, storage.transactions),
    )
    logger.info("Services ready (%s)", settings.environment)
    return services
