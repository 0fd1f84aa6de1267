# =============================================================================
# Student API Routes
# =============================================================================
#
#   POST /api/student/auth              - Log in, get a student session token
#   POST /api/student/recover-password  - Request a password reset email
#   POST /api/student/password          - Redeem a recovery token
#   GET  /api/student/me                - The authenticated student
#   GET  /api/student/cycles/current    - The current cycle (404 if none)
#
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request, Response

from practicum.api.cycles import CycleResponse
from practicum.auth.context import StudentContext
from practicum.auth.policies import get_services, require_student
from practicum.auth.routes import (
    LoginRequest,
    PasswordRequest,
    RecoverPasswordRequest,
    StudentResponse,
    TokenResponse,
)
from practicum.core.errors import NotFoundError

router = APIRouter(prefix="/api/student", tags=["student"])


@router.post("/auth", response_model=TokenResponse)
async def login(data: LoginRequest, request: Request):
    token = await get_services(request).student_accounts.login(data.email, data.password)
    return TokenResponse(token=token)


@router.post("/recover-password", status_code=204)
async def recover_password(data: RecoverPasswordRequest, request: Request):
    """Request a password reset email. Unknown addresses get the same answer."""
    await get_services(request).recovery.issue_student_recovery(data.email)
    return Response(status_code=204)


@router.post("/password", status_code=204)
async def set_password(
    data: PasswordRequest,
    request: Request,
    authorization: str | None = Header(default=None),
):
    await get_services(request).recovery.redeem_student_recovery(authorization, data.password)
    return Response(status_code=204)


@router.get("/me", response_model=StudentResponse)
async def me(ctx: StudentContext = Depends(require_student())):
    return StudentResponse.from_student(ctx.student)


@router.get("/cycles/current", response_model=CycleResponse)
async def current_cycle(
    request: Request,
    ctx: StudentContext = Depends(require_student()),
):
    """The cycle students currently apply in."""
    cycle = await get_services(request).cycles.find_current()
    if cycle is None:
        raise NotFoundError("No current cycle found")
    return CycleResponse.from_cycle(cycle)
