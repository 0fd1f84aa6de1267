# =============================================================================
# JWT Token Service
# =============================================================================
#
# This module provides:
#   - Token scopes (closed set)
#   - Payload variants, one per scope (discriminated on the `scope` claim)
#   - Token signing and verification
#
# Tokens are self-contained: nothing is persisted server-side.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Literal, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
import jwt

from practicum.auth.permissions import Permission, Role
from practicum.core.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class Scope(str, Enum):
    """What a token may be used for."""

    USER = "user"
    INVITE_USER = "invite-user"
    INVITE_STUDENT = "invite-student"
    STUDENT = "student"
    RECOVER_STUDENT_PASSWORD = "recover-student-password"
    RECOVER_USER_PASSWORD = "recover-user-password"


# =============================================================================
# Payloads
# =============================================================================


class _Payload(BaseModel):
    # Registered claims (iat, nbf, exp) are dropped on the way back in
    model_config = ConfigDict(extra="ignore", frozen=True)


class UserTokenPayload(_Payload):
    """Staff session. `permissions` is a snapshot, never trusted for authz."""
    scope: Literal["user"] = "user"
    id: int
    name: str
    email: str
    role: Role
    permissions: list[Permission]
    created_at: datetime
    updated_at: datetime


class StudentTokenPayload(_Payload):
    """Student session."""
    scope: Literal["student"] = "student"
    id: int
    name: str
    code: str
    career_id: int
    email: str
    telephone: str
    created_at: datetime
    updated_at: datetime


class RecoverUserPasswordPayload(_Payload):
    scope: Literal["recover-user-password"] = "recover-user-password"
    id: int


class RecoverStudentPasswordPayload(_Payload):
    scope: Literal["recover-student-password"] = "recover-student-password"
    id: int


class InviteUserPayload(_Payload):
    """Account data for a user that does not exist yet."""
    scope: Literal["invite-user"] = "invite-user"
    name: str
    email: str
    role: Role
    permissions: list[Permission]


class InviteStudentPayload(_Payload):
    scope: Literal["invite-student"] = "invite-student"
    email: str


TokenPayload = Annotated[
    Union[
        UserTokenPayload,
        StudentTokenPayload,
        RecoverUserPasswordPayload,
        RecoverStudentPasswordPayload,
        InviteUserPayload,
        InviteStudentPayload,
    ],
    Field(discriminator="scope"),
]

# Every scope must have exactly one payload class
PAYLOAD_TYPES: dict[Scope, type[_Payload]] = {
    Scope.USER: UserTokenPayload,
    Scope.STUDENT: StudentTokenPayload,
    Scope.RECOVER_USER_PASSWORD: RecoverUserPasswordPayload,
    Scope.RECOVER_STUDENT_PASSWORD: RecoverStudentPasswordPayload,
    Scope.INVITE_USER: InviteUserPayload,
    Scope.INVITE_STUDENT: InviteStudentPayload,
}

_payload_adapter: TypeAdapter[TokenPayload] = TypeAdapter(TokenPayload)


# =============================================================================
# Errors
# =============================================================================


class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""

    def __init__(self, expired_at: datetime | None):
        self.expired_at = expired_at
        super().__init__(f"Token expired at {expired_at}")


class TokenInvalidError(TokenError):
    """Token is malformed or its signature does not match."""
    pass


class TokenNotYetValidError(TokenError):
    """Token is used before its not-before time."""
    pass


# =============================================================================
# Service
# =============================================================================


class TokenService:
    """
    Signs and verifies scoped tokens with one process-wide secret.

    Usage:
        tokens = TokenService(secret)
        token = tokens.sign(RecoverUserPasswordPayload(id=1), ttl=timedelta(hours=1))
        payload = tokens.verify(token)   # -> RecoverUserPasswordPayload
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm

    def sign(self, payload: _Payload, ttl: timedelta = DEFAULT_TTL) -> str:
        """Sign a payload. Expiry is `ttl` after issue; `ttl=0` is already expired."""
        issued_at = int(utc_now().timestamp())
        claims = payload.model_dump(mode="json")
        claims.update(
            iat=issued_at,
            nbf=issued_at,
            exp=issued_at + int(ttl.total_seconds()),
        )
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload | None:
        """
        Verify a token and return its payload.

        Returns None when the signature is fine but the claims match no
        known payload shape; callers must treat that as an invalid token.

        Raises:
            TokenExpiredError: current time is at or past expiry
            TokenNotYetValidError: current time is before not-before
            TokenInvalidError: malformed token or bad signature
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError(self._expiry_of(token)) from None
        except jwt.ImmatureSignatureError as e:
            raise TokenNotYetValidError(str(e)) from None
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from None

        try:
            return _payload_adapter.validate_python(claims)
        except ValidationError:
            logger.warning("Token with unrecognised payload (scope=%r)", claims.get("scope"))
            return None

    @staticmethod
    def _expiry_of(token: str) -> datetime | None:
        # Only reached after PyJWT has checked the signature
        claims = jwt.decode(token, options={"verify_signature": False})
        exp = claims.get("exp")
        if exp is None:
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)
