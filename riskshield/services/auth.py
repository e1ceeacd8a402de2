"""Sign-up, login, cookie sessions, password reset and invitation acceptance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from riskshield.core.security import (
    hash_password,
    is_valid_email,
    new_one_time_token,
    new_session_token,
    password_problems,
    verify_password,
)
from riskshield.domain.company import Company
from riskshield.domain.mixins import as_utc, new_id, utcnow
from riskshield.domain.user import PasswordResetToken, User
from riskshield.repositories.account import AccountRepository
from riskshield.services.abn import clean_abn, is_valid_abn_format
from riskshield.services.audit import AuditService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class SignedIn:
    user: User
    token: str
    expires_at: datetime


def forwarding_email_for(entity_id: str) -> str:
    return f"coc-{entity_id[:8]}@{settings.forwarding_email_domain}"


def _check_password(password: str) -> None:
    problems = password_problems(password)
    if problems:
        raise BadRequestError(problems[0])


class AuthService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._accounts = AccountRepository(session)

    async def _start_session(self, user: User) -> SignedIn:
        token = new_session_token()
        expires_at = utcnow() + timedelta(hours=settings.session_ttl_hours)
        await self._accounts.create_session(user.id, token, expires_at)
        return SignedIn(user=user, token=token, expires_at=expires_at)

    # ------------------------------------------------------------------
    # Sign-up / login / logout
    # ------------------------------------------------------------------

    async def signup(self, *, email: str, password: str, name: str, company_name: str, abn: str) -> SignedIn:
        email = (email or "").strip().lower()
        if not email or not password or not (name or "").strip() or not (company_name or "").strip() or not abn:
            raise BadRequestError("Email, password, name, company name and ABN are required")
        if not is_valid_email(email):
            raise BadRequestError("Invalid email format")
        _check_password(password)
        abn = clean_abn(abn)
        if not is_valid_abn_format(abn):
            raise BadRequestError("ABN must be exactly 11 digits")

        if await self._accounts.get_user_by_email(email, include_deleted=True):
            raise ConflictError("An account with this email already exists")
        if await self._accounts.get_company_by_abn(abn):
            raise ConflictError("A company with this ABN is already registered")

        company_id = new_id()
        company = await self._accounts.add(
            Company(
                id=company_id,
                name=company_name.strip(),
                abn=abn,
                forwarding_email=forwarding_email_for(company_id),
            )
        )

        user = await self._accounts.add(
            User(
                company_id=company.id,
                email=email,
                password_hash=hash_password(password),
                name=name.strip(),
                role="admin",
                invitation_status="accepted",
            )
        )

        audit = AuditService(self._session, company.id)
        await audit.record("create", "company", company.id, user_id=user.id, details={"name": company.name})
        await audit.record("signup", "user", user.id, user_id=user.id, details={"email": email, "role": "admin"})

        logger.info("New company signed up: %s (%s)", company.name, company.id)
        return await self._start_session(user)

    async def login(self, email: str, password: str) -> SignedIn:
        if not email or not password:
            raise BadRequestError("Email and password are required")
        user = await self._accounts.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if user.invitation_status == "pending":
            raise UnauthorizedError("Please accept your invitation before signing in")

        user.last_login_at = utcnow()
        await self._session.flush()
        await AuditService(self._session, user.company_id).record(
            "login", "user", user.id, user_id=user.id, details={"email": user.email}
        )
        return await self._start_session(user)

    async def logout(self, token: str | None) -> None:
        if token:
            await self._accounts.delete_session(token)

    async def user_for_token(self, token: str | None) -> User:
        """Resolve the auth cookie to a user; expired sessions are deleted."""
        if not token:
            raise UnauthorizedError("Not authenticated")
        row = await self._accounts.get_session(token)
        if row is None:
            raise UnauthorizedError("Invalid session")
        if as_utc(row.expires_at) <= utcnow():
            await self._accounts.delete_session(token)
            # Persist the purge; the failing request rolls back everything else
            await self._session.commit()
            raise UnauthorizedError("Session expired")
        user = await self._accounts.get_user(row.user_id)
        if user is None:
            raise UnauthorizedError("Invalid session")
        return user

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        """Issue a reset token if the account exists; callers always report success."""
        if not email or not is_valid_email(email.strip()):
            raise BadRequestError("A valid email is required")
        user = await self._accounts.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        await self._accounts.invalidate_reset_tokens(user.id)
        token = new_one_time_token()
        await self._accounts.add(
            PasswordResetToken(
                user_id=user.id,
                token=token,
                expires_at=utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes),
            )
        )
        if settings.is_development:
            logger.info("Password reset link: %s/reset-password?token=%s", settings.app_url, token)

    async def _usable_reset_token(self, token: str) -> PasswordResetToken:
        if not token:
            raise BadRequestError("Reset token is required")
        row = await self._accounts.get_reset_token(token)
        if row is None:
            raise BadRequestError("Invalid reset token")
        if row.used:
            raise BadRequestError("This reset link has already been used")
        if as_utc(row.expires_at) <= utcnow():
            raise BadRequestError("This reset link has expired")
        return row

    async def validate_reset_token(self, token: str) -> str:
        row = await self._usable_reset_token(token)
        user = await self._accounts.get_user(row.user_id)
        if user is None:
            raise BadRequestError("Invalid reset token")
        return user.email

    async def reset_password(self, token: str, password: str) -> None:
        row = await self._usable_reset_token(token)
        _check_password(password)
        user = await self._accounts.get_user(row.user_id)
        if user is None:
            raise BadRequestError("Invalid reset token")

        row.used = True
        user.password_hash = hash_password(password)
        await self._accounts.delete_user_sessions(user.id)
        await self._session.flush()
        await AuditService(self._session, user.company_id).record(
            "password_reset", "user", user.id, user_id=user.id
        )

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def accept_invite(self, token: str, password: str, name: str | None = None) -> SignedIn:
        if not token:
            raise BadRequestError("Invitation token is required")
        user = await self._accounts.get_user_by_invitation(token)
        if user is None or user.invitation_status != "pending":
            raise BadRequestError("Invalid invitation")
        if user.invitation_expires_at and as_utc(user.invitation_expires_at) <= utcnow():
            raise BadRequestError("This invitation has expired")
        _check_password(password)

        user.password_hash = hash_password(password)
        if name and name.strip():
            user.name = name.strip()
        user.invitation_status = "accepted"
        user.invitation_token = None
        user.invitation_expires_at = None
        user.last_login_at = utcnow()
        await self._session.flush()
        await AuditService(self._session, user.company_id).record(
            "accept_invite", "user", user.id, user_id=user.id
        )
        return await self._start_session(user)
