# =============================================================================
# Cycle Routes
# =============================================================================
#
#   GET   /cycles        - List cycles, newest first, ?search= on slug (VIEW_CYCLE)
#   POST  /cycles        - Create a cycle, optionally as current (EDIT_CYCLE)
#   PATCH /cycles/{id}   - Rename a cycle and/or change its current flag (EDIT_CYCLE)
#
# =============================================================================

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from practicum.auth.context import AuthContext
from practicum.auth.permissions import Permission
from practicum.auth.policies import get_services, require
from practicum.core.models import Cycle

router = APIRouter(prefix="/cycles", tags=["cycles"])


# =============================================================================
# Request/Response Models
# =============================================================================

class CycleCreate(BaseModel):
    slug: str = Field(min_length=1, max_length=32)
    is_current: bool = False


class CycleUpdate(BaseModel):
    slug: str | None = Field(default=None, min_length=1, max_length=32)
    is_current: bool | None = None


class CycleResponse(BaseModel):
    id: int
    slug: str
    is_current: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_cycle(cls, cycle: Cycle) -> CycleResponse:
        return cls.model_validate(cycle.model_dump())


class CycleListResponse(BaseModel):
    total: int
    records: list[CycleResponse]


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=CycleListResponse)
async def list_cycles(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    search: str | None = Query(default=None, description="Slug substring"),
    ctx: AuthContext = Depends(require(Permission.VIEW_CYCLE)),
):
    total, cycles = await get_services(request).cycles.find_and_count(
        limit=limit,
        offset=offset,
        search=search,
    )
    return CycleListResponse(total=total, records=[CycleResponse.from_cycle(c) for c in cycles])


@router.post("", response_model=CycleResponse, status_code=201)
async def create_cycle(
    data: CycleCreate,
    request: Request,
    ctx: AuthContext = Depends(require(Permission.EDIT_CYCLE)),
):
    """
    Create a cycle.

    With `is_current` the new cycle replaces the current one atomically.
    """
    cycle = await get_services(request).cycles.create(data.slug, is_current=data.is_current)
    return CycleResponse.from_cycle(cycle)


@router.patch("/{cycle_id}", response_model=CycleResponse)
async def update_cycle(
    cycle_id: int,
    data: CycleUpdate,
    request: Request,
    ctx: AuthContext = Depends(require(Permission.EDIT_CYCLE)),
):
    cycle = await get_services(request).cycles.update(
        cycle_id,
        slug=data.slug,
        is_current=data.is_current,
    )
    return CycleResponse.from_cycle(cycle)
