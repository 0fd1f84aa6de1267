"""
Core module - data models, errors and shared utilities.

This module contains:
- models: User, Student and Cycle records
- errors: the caller-facing error taxonomy
- utils: shared utility functions
"""

from practicum.core.models import (
    User,
    Student,
    Cycle,
)

from practicum.core.errors import (
    AppError,
    MissingTokenError,
    InvalidTokenError,
    TokenExpiredRejection,
    InvalidScopeError,
    UnauthorizedError,
    ForbiddenError,
    WrongCredentialsError,
    NotFoundError,
    CycleNotFoundError,
    CycleConflictError,
    AccountConflictError,
)

from practicum.core.utils import (
    utc_now,
)

__all__ = [
    # Models
    "User",
    "Student",
    "Cycle",
    # Errors
    "AppError",
    "MissingTokenError",
    "InvalidTokenError",
    "TokenExpiredRejection",
    "InvalidScopeError",
    "UnauthorizedError",
    "ForbiddenError",
    "WrongCredentialsError",
    "NotFoundError",
    "CycleNotFoundError",
    "CycleConflictError",
    "AccountConflictError",
    # Utils
    "utc_now",
]
