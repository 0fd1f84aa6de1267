"""
Storage abstractions.

- UserStore / StudentStore → principal lookups and account writes
- CycleStore → raw cycle rows (writes go through CycleManager)
- TransactionManager → units of work sharing one connection
"""

from practicum.storage.base import (
    TransactionManager,
    UserStore,
    StudentStore,
    CycleStore,
    StorageProvider,
    StorageError,
    UniqueViolationError,
)
from practicum.storage.sqlite import Database, create_sqlite_storage

__all__ = [
    "TransactionManager",
    "UserStore",
    "StudentStore",
    "CycleStore",
    "StorageProvider",
    "StorageError",
    "UniqueViolationError",
    "Database",
    "create_sqlite_storage",
]
