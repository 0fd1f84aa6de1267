"""
Application errors.

Every rejection the API can produce is an `AppError` with a stable
machine-readable `kind`, a human-readable message and an HTTP status.
Infrastructure faults (database down, hasher failure) are not part of
this hierarchy and propagate unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class AppError(Exception):
    """Base class for caller-facing errors."""

    kind: str = "Error"
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


# =============================================================================
# Authentication / Authorization
# =============================================================================


class MissingTokenError(AppError):
    kind = "MissingToken"
    status_code = 401
    default_message = "Missing authorization token"


class InvalidTokenError(AppError):
    kind = "InvalidToken"
    status_code = 401
    default_message = "Invalid token"


class TokenExpiredRejection(AppError):
    """Token expired. Carries the expiry instant so clients can show it."""

    kind = "TokenExpired"
    status_code = 401

    def __init__(self, expired_at: datetime | None):
        self.expired_at = expired_at
        if expired_at is not None:
            message = f"Authorization token expired at {expired_at.isoformat()}"
        else:
            message = "Authorization token expired"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["expired_at"] = self.expired_at.isoformat() if self.expired_at else None
        return data


class InvalidScopeError(AppError):
    kind = "InvalidScope"
    status_code = 401
    default_message = "Invalid token scope"


class UnauthorizedError(AppError):
    """The token was valid but the account behind it no longer exists."""

    kind = "Unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    kind = "Forbidden"
    status_code = 403
    default_message = "Forbidden"


class WrongCredentialsError(AppError):
    kind = "WrongCredentials"
    status_code = 401
    default_message = "Wrong user or password"


# =============================================================================
# Resources
# =============================================================================


class NotFoundError(AppError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class CycleNotFoundError(NotFoundError):
    default_message = "Cycle not found"


class CycleConflictError(AppError):
    kind = "CycleConflict"
    status_code = 409
    default_message = "Conflict"


class AccountConflictError(AppError):
    kind = "AccountConflict"
    status_code = 409
    default_message = "An account with these details already exists"
