"""Team management: listing, inviting, updating and removing company users."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, ConflictError, NotFoundError
from riskshield.core.security import is_valid_email, new_one_time_token
from riskshield.domain.mixins import utcnow
from riskshield.domain.user import COMPANY_ROLES, User
from riskshield.repositories.account import AccountRepository
from riskshield.repositories.user import UserRepository
from riskshield.schemas.user import InviteRequest, UserPreferencesUpdate, UserUpdate
from riskshield.services import preferences
from riskshield.services.audit import AuditService

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession, actor: User):
        self._session = session
        self._actor = actor
        self._repo = UserRepository(session, actor.company_id)
        self._accounts = AccountRepository(session)
        self._audit = AuditService(session, actor.company_id)

    async def list_users(self) -> list[User]:
        return await self._repo.find_all(order_by="name")

    async def get_user(self, user_id: str) -> User:
        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def invite(self, data: InviteRequest) -> User:
        email = data.email.strip().lower()
        if not email or not data.name.strip() or not data.role:
            raise BadRequestError("Email, name and role are required")
        if not is_valid_email(email):
            raise BadRequestError("Invalid email format")
        if data.role not in COMPANY_ROLES:
            raise BadRequestError(f"Invalid role. Must be one of: {', '.join(COMPANY_ROLES)}")
        if await self._accounts.get_user_by_email(email, include_deleted=True):
            raise ConflictError("A user with this email already exists")

        token = new_one_time_token()
        user = await self._repo.create(
            email=email,
            name=data.name.strip(),
            role=data.role,
            invitation_status="pending",
            invitation_token=token,
            invitation_expires_at=utcnow() + timedelta(days=settings.invitation_ttl_days),
        )
        await self._audit.record(
            "invite", "user", user.id, user_id=self._actor.id, details={"email": email, "role": data.role}
        )
        logger.info("Invitation link for %s: %s/invite?token=%s", email, settings.app_url, token)
        return user

    async def update(self, user_id: str, data: UserUpdate) -> User:
        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "role" in changes:
            if changes["role"] not in COMPANY_ROLES:
                raise BadRequestError(f"Invalid role. Must be one of: {', '.join(COMPANY_ROLES)}")
            if user.id == self._actor.id and changes["role"] != user.role:
                raise BadRequestError("You cannot change your own role")
        if "name" in changes and not changes["name"].strip():
            raise BadRequestError("Name cannot be empty")

        updated = await self._repo.update(user.id, **changes)
        await self._audit.record("update", "user", user.id, user_id=self._actor.id, details=changes)
        return updated  # type: ignore[return-value]

    async def remove(self, user_id: str) -> None:
        if user_id == self._actor.id:
            raise BadRequestError("You cannot delete your own account")
        user = await self.get_user(user_id)
        await self._repo.soft_delete(user.id)
        await self._accounts.delete_user_sessions(user.id)
        await self._audit.record("delete", "user", user.id, user_id=self._actor.id, details={"email": user.email})

    # ------------------------------------------------------------------
    # Own preferences
    # ------------------------------------------------------------------

    def preferences(self) -> dict:
        return preferences.merged(self._actor.notification_preferences)

    async def update_preferences(self, data: UserPreferencesUpdate) -> dict:
        changes = data.model_dump(exclude_none=True)
        if "email_digest" in changes and changes["email_digest"] not in preferences.DIGEST_OPTIONS:
            raise BadRequestError(f"Invalid email digest. Must be one of: {', '.join(preferences.DIGEST_OPTIONS)}")
        current = self.preferences()
        for key, value in changes.items():
            if isinstance(value, dict):
                current[key].update(value)
            else:
                current[key] = value
        await self._repo.update(self._actor.id, notification_preferences=current)
        await self._audit.record("update_preferences", "user", self._actor.id, user_id=self._actor.id, details=changes)
        return current
