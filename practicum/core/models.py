"""
Core data models for the practicum backend.

These are the rows the storage layer hands back. Password hashes live on
the records so credential checks can run against them; response models
in the API layer strip them.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# =============================================================================
# Principals
# =============================================================================


class User(BaseModel):
    """
    A staff account.

    `role` and `permissions` are kept as raw strings: they are validated
    when permissions are resolved, so a corrupted row fails loudly there
    instead of being silently coerced here.
    """

    id: int
    name: str
    email: str  # login identifier, unique
    password_hash: str = Field(repr=False)
    role: str | None = None
    permissions: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Student(BaseModel):
    """A student account. Students carry a single implicit scope."""

    id: int
    name: str
    code: str
    password_hash: str = Field(repr=False)
    career_id: int
    email: str
    telephone: str
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Cycles
# =============================================================================


class Cycle(BaseModel):
    """An internship cycle, e.g. "2025A". At most one is current."""

    id: int
    slug: str
    is_current: bool = False
    created_at: datetime
    updated_at: datetime
