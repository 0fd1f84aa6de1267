"""
Storage abstraction layer.

All persistence goes through these interfaces. Services only see the
interfaces; the SQLite implementation lives in `sqlite.py`.

Transactions: stores never open their own transaction. A caller that
needs several statements to commit atomically wraps them in
`TransactionManager.transaction()`, and every store call made inside that
block runs on the same transaction-scoped connection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncContextManager, Any

from pydantic import BaseModel

from practicum.core.models import Cycle, Student, User


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """Base class for storage failures."""


class UniqueViolationError(StorageError):
    """A write hit a unique constraint."""

    def __init__(self, constraint: str):
        self.constraint = constraint
        super().__init__(f"Unique constraint failed: {constraint}")


# =============================================================================
# Storage Interfaces
# =============================================================================


class TransactionManager(ABC):
    """Opens units of work."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        """
        Run the enclosed block as one transaction.

        Commits on normal exit, rolls back on any exception. Nested calls
        join the outer transaction.
        """
        pass


class UserStore(ABC):
    """Staff accounts."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User | None:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None:
        pass

    @abstractmethod
    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str,
        permissions: list[str],
    ) -> User:
        """Insert a user. Raises UniqueViolationError on a taken email."""
        pass

    @abstractmethod
    async def set_password(self, user_id: int, password_hash: str) -> User | None:
        """Replace the password hash. Touches no other field except updated_at."""
        pass

    @abstractmethod
    async def set_permissions(self, user_id: int, permissions: list[str]) -> User | None:
        """
        Replace the explicit permission grants.

        No route calls this; grants after the invite are an operator task
        (shell or migration) and tests use it to change grants mid-session.
        Guards reload the user, so the change applies to live tokens.
        """
        pass


class StudentStore(ABC):
    """Student accounts."""

    @abstractmethod
    async def get_by_id(self, student_id: int) -> Student | None:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Student | None:
        pass

    @abstractmethod
    async def create(
        self,
        name: str,
        code: str,
        password_hash: str,
        career_id: int,
        email: str,
        telephone: str,
    ) -> Student:
        """Insert a student. Raises UniqueViolationError on code/email/telephone."""
        pass

    @abstractmethod
    async def set_password(self, student_id: int, password_hash: str) -> Student | None:
        """Replace the password hash. Touches no other field except updated_at."""
        pass


class CycleStore(ABC):
    """
    Raw cycle rows.

    This interface does not protect the current-cycle invariant on its
    own; go through `practicum.services.cycles.CycleManager` for writes.
    """

    @abstractmethod
    async def get_by_id(self, cycle_id: int) -> Cycle | None:
        pass

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Cycle | None:
        pass

    @abstractmethod
    async def get_current(self) -> Cycle | None:
        pass

    @abstractmethod
    async def find_and_count(
        self,
        limit: int = 50,
        offset: int = 0,
        search: str | None = None,
    ) -> tuple[int, list[Cycle]]:
        """Return (total, page) ordered newest first, optionally filtered by slug substring."""
        pass

    @abstractmethod
    async def insert(self, slug: str) -> Cycle:
        """Insert a non-current cycle. Raises UniqueViolationError on a taken slug."""
        pass

    @abstractmethod
    async def update_slug(self, cycle_id: int, slug: str) -> Cycle | None:
        pass

    @abstractmethod
    async def clear_current(self) -> int:
        """Un-set every current row. Returns the number of rows touched."""
        pass

    @abstractmethod
    async def set_current_flag(self, cycle_id: int, is_current: bool) -> Cycle | None:
        """Write the flag on one row and bump updated_at."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive the pieces they need and use the interfaces without
    knowing the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    transactions: TransactionManager
    users: UserStore
    students: StudentStore
    cycles: CycleStore
