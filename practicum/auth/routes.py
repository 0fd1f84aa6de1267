# =============================================================================
# Auth API Routes
# =============================================================================
#
# Staff users:
#   POST /user/auth              - Log in, get a session token
#   GET  /user/auth              - Check a session token, get the user
#   POST /user/invite            - Invite a staff user (INVITE_USER)
#   POST /user/add               - Redeem a user invite
#   POST /user/recover-password  - Request a password reset email
#   POST /user/password          - Redeem a recovery token
#
# Students (staff side):
#   POST /students/invite        - Invite a student (EDIT_STUDENT)
#   POST /students/add           - Redeem a student invite
#
# Redemption endpoints take the emailed token as `Authorization: Bearer ...`.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request, Response
from pydantic import BaseModel, EmailStr, Field

from practicum.auth.context import AuthContext
from practicum.auth.permissions import Permission, Role
from practicum.auth.policies import get_services, require, require_auth
from practicum.core.models import Student, User

router = APIRouter(tags=["auth"])


# =============================================================================
# Request/Response Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str


class InviteUserRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role = Role.BASE
    permissions: list[Permission] = Field(default_factory=list)


class InviteStudentRequest(BaseModel):
    email: EmailStr


class RecoverPasswordRequest(BaseModel):
    email: EmailStr


class PasswordRequest(BaseModel):
    password: str = Field(min_length=8)


class AddStudentRequest(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    career_id: int
    telephone: str = Field(min_length=1)
    password: str = Field(min_length=8)


class UserResponse(BaseModel):
    """Public user data (no password hash)."""
    id: int
    name: str
    email: str
    role: str | None
    permissions: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls.model_validate(user.model_dump(exclude={"password_hash"}))


class StudentResponse(BaseModel):
    """Public student data (no password hash)."""
    id: int
    name: str
    code: str
    career_id: int
    email: str
    telephone: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_student(cls, student: Student) -> StudentResponse:
        return cls.model_validate(student.model_dump(exclude={"password_hash"}))


# =============================================================================
# Users
# =============================================================================

@router.post("/user/auth", response_model=TokenResponse)
async def login(data: LoginRequest, request: Request):
    """Authenticate and get a session token."""
    token = await get_services(request).user_accounts.login(data.email, data.password)
    return TokenResponse(token=token)


@router.get("/user/auth", response_model=UserResponse)
async def check(ctx: AuthContext = Depends(require_auth())):
    """Verify the session token and return the user behind it."""
    return UserResponse.from_user(ctx.user)


@router.post("/user/invite", status_code=204)
async def invite_user(
    data: InviteUserRequest,
    request: Request,
    ctx: AuthContext = Depends(require(Permission.INVITE_USER)),
):
    """Email an invitation to a new staff user."""
    await get_services(request).invites.issue_user_invite(
        name=data.name,
        email=data.email,
        role=data.role,
        permissions=data.permissions,
    )
    return Response(status_code=204)


@router.post("/user/add", response_model=UserResponse, status_code=201)
async def add_user(
    data: PasswordRequest,
    request: Request,
    authorization: str | None = Header(default=None),
):
    """Create the invited user with the chosen password."""
    user = await get_services(request).invites.redeem_user_invite(authorization, data.password)
    return UserResponse.from_user(user)


@router.post("/user/recover-password", status_code=204)
async def recover_user_password(data: RecoverPasswordRequest, request: Request):
    """
    Request a password reset email.

    Always succeeds so the endpoint can't be used to probe for accounts.
    """
    await get_services(request).recovery.issue_user_recovery(data.email)
    return Response(status_code=204)


@router.post("/user/password", status_code=204)
async def set_user_password(
    data: PasswordRequest,
    request: Request,
    authorization: str | None = Header(default=None),
):
    """Set a new password using a recovery token."""
    await get_services(request).recovery.redeem_user_recovery(authorization, data.password)
    return Response(status_code=204)


# =============================================================================
# Student invitations
# =============================================================================

@router.post("/students/invite", status_code=204)
async def invite_student(
    data: InviteStudentRequest,
    request: Request,
    ctx: AuthContext = Depends(require(Permission.EDIT_STUDENT)),
):
    """Email a registration link to a new student."""
    await get_services(request).invites.issue_student_invite(data.email)
    return Response(status_code=204)


@router.post("/students/add", response_model=StudentResponse, status_code=201)
async def add_student(
    data: AddStudentRequest,
    request: Request,
    authorization: str | None = Header(default=None),
):
    """Complete a student registration from an invitation."""
    student = await get_services(request).invites.redeem_student_invite(
        authorization,
        name=data.name,
        code=data.code,
        career_id=data.career_id,
        telephone=data.telephone,
        password=data.password,
    )
    return StudentResponse.from_student(student)
