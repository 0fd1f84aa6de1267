"""
Password recovery and account invitation.

Both flows hand out a single-scope token by email and later accept it
back on a redemption endpoint:

    issue_*    -> token signed -> emailed as a link
    redeem_*   -> strict "Bearer " header -> verified -> exact scope
               -> account updated (recovery) or created (invite)

Redemption tokens are self-contained and not tracked server-side, so a
recovery token keeps working until it expires, even after it was used.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable

from practicum.auth.guards import extract_bearer, verify_token
from practicum.auth.passwords import CredentialHasher
from practicum.auth.permissions import Permission, Role, parse_permissions, parse_role
from practicum.auth.tokens import (
    InviteStudentPayload,
    InviteUserPayload,
    RecoverStudentPasswordPayload,
    RecoverUserPasswordPayload,
    Scope,
    TokenPayload,
    TokenService,
)
from practicum.core.errors import AccountConflictError, InvalidScopeError, UnauthorizedError
from practicum.core.models import Student, User
from practicum.integrations.email import EmailService
from practicum.storage.base import StudentStore, UniqueViolationError, UserStore

logger = logging.getLogger(__name__)


def redeemable(tokens: TokenService, authorization: str | None, scope: Scope) -> TokenPayload:
    """
    Verify a redemption header for exactly one scope.

    Stricter than the session guards: the `Bearer ` prefix is mandatory
    and a token of any other scope is refused outright.
    """
    payload = verify_token(tokens, extract_bearer(authorization, strict=True))
    if payload.scope != scope.value:
        logger.info("Refused %s token on a %s redemption", payload.scope, scope.value)
        raise InvalidScopeError("Invalid token", status_code=403)
    return payload


# =============================================================================
# Password Recovery
# =============================================================================


class RecoveryFlow:
    """Password recovery for users and students."""

    def __init__(
        self,
        users: UserStore,
        students: StudentStore,
        hasher: CredentialHasher,
        tokens: TokenService,
        email: EmailService,
        ttl: timedelta,
    ):
        self.users = users
        self.students = students
        self.hasher = hasher
        self.tokens = tokens
        self.email = email
        self.ttl = ttl

    async def issue_user_recovery(self, email: str) -> None:
        """Email a recovery link. Unknown addresses are ignored silently."""
        user = await self.users.get_by_email(email)
        if user is None:
            logger.info("Recovery requested for unknown user email")
            return

        token = self.tokens.sign(RecoverUserPasswordPayload(id=user.id), ttl=self.ttl)
        await self.email.send_user_recovery(user.email, token)
        logger.info("Recovery issued for user %s", user.id)

    async def issue_student_recovery(self, email: str) -> None:
        student = await self.students.get_by_email(email)
        if student is None:
            logger.info("Recovery requested for unknown student email")
            return

        token = self.tokens.sign(RecoverStudentPasswordPayload(id=student.id), ttl=self.ttl)
        await self.email.send_student_recovery(student.email, token)
        logger.info("Recovery issued for student %s", student.id)

    async def redeem_user_recovery(self, authorization: str | None, password: str) -> User:
        """Set a new password. Nothing but the password hash changes."""
        payload = redeemable(self.tokens, authorization, Scope.RECOVER_USER_PASSWORD)
        if await self.users.get_by_id(payload.id) is None:
            raise UnauthorizedError()

        user = await self.users.set_password(payload.id, await self.hasher.hash(password))
        logger.info("Password changed for user %s", payload.id)
        return user

    async def redeem_student_recovery(self, authorization: str | None, password: str) -> Student:
        payload = redeemable(self.tokens, authorization, Scope.RECOVER_STUDENT_PASSWORD)
        if await self.students.get_by_id(payload.id) is None:
            raise UnauthorizedError()

        student = await self.students.set_password(payload.id, await self.hasher.hash(password))
        logger.info("Password changed for student %s", payload.id)
        return student


# =============================================================================
# Invitations
# =============================================================================


class InviteFlow:
    """Invitations for new staff users and students."""

    def __init__(
        self,
        users: UserStore,
        students: StudentStore,
        hasher: CredentialHasher,
        tokens: TokenService,
        email: EmailService,
        ttl: timedelta,
    ):
        self.users = users
        self.students = students
        self.hasher = hasher
        self.tokens = tokens
        self.email = email
        self.ttl = ttl

    async def issue_user_invite(
        self,
        name: str,
        email: str,
        role: Role | str | None = None,
        permissions: Iterable[Permission | str] = (),
    ) -> str:
        """Sign an invitation carrying the future account and email it."""
        if await self.users.get_by_email(email) is not None:
            raise AccountConflictError("A user with this email already exists")

        payload = InviteUserPayload(
            name=name,
            email=email,
            role=parse_role(role),
            permissions=sorted(parse_permissions(permissions), key=lambda p: p.value),
        )
        token = self.tokens.sign(payload, ttl=self.ttl)
        await self.email.send_user_invite(email, name, token)
        logger.info("User invited: email=%s role=%s", email, payload.role.value)
        return token

    async def issue_student_invite(self, email: str) -> str:
        if await self.students.get_by_email(email) is not None:
            raise AccountConflictError("A student with this email already exists")

        token = self.tokens.sign(InviteStudentPayload(email=email), ttl=self.ttl)
        await self.email.send_student_invite(email, token)
        logger.info("Student invited: email=%s", email)
        return token

    async def redeem_user_invite(self, authorization: str | None, password: str) -> User:
        """Create the invited user. Redeeming twice hits the unique email."""
        payload = redeemable(self.tokens, authorization, Scope.INVITE_USER)
        try:
            return await self.users.create(
                name=payload.name,
                email=payload.email,
                password_hash=await self.hasher.hash(password),
                role=payload.role.value,
                permissions=[p.value for p in payload.permissions],
            )
        except UniqueViolationError as e:
            logger.info("User invite redeemed twice for %s", payload.email)
            raise AccountConflictError() from e

    async def redeem_student_invite(
        self,
        authorization: str | None,
        name: str,
        code: str,
        career_id: int,
        telephone: str,
        password: str,
    ) -> Student:
        payload = redeemable(self.tokens, authorization, Scope.INVITE_STUDENT)
        try:
            return await self.students.create(
                name=name,
                code=code,
                password_hash=await self.hasher.hash(password),
                career_id=career_id,
                email=payload.email,
                telephone=telephone,
            )
        except UniqueViolationError as e:
            logger.info("Student registration conflicted on %s", e.constraint)
            raise AccountConflictError() from e
