"""Cross-tenant lookups needed before a company is known (sign-up, login, sessions)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.domain.company import Company
from riskshield.domain.user import PasswordResetToken, User, UserSession


class AccountRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    async def get_company(self, company_id: str) -> Company | None:
        return await self._session.get(Company, company_id)

    async def get_company_by_abn(self, abn: str) -> Company | None:
        result = await self._session.execute(select(Company).where(Company.abn == abn))
        return result.scalars().first()

    async def get_company_by_stripe_customer(self, customer_id: str) -> Company | None:
        result = await self._session.execute(
            select(Company).where(Company.stripe_customer_id == customer_id)
        )
        return result.scalars().first()

    async def add(self, instance):
        self._session.add(instance)
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        result = await self._session.execute(
            select(User).where(User.id == user_id).where(User.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def get_user_by_email(self, email: str, *, include_deleted: bool = False) -> User | None:
        q = select(User).where(User.email == email.lower().strip())
        if not include_deleted:
            q = q.where(User.deleted_at.is_(None))
        return (await self._session.execute(q)).scalars().first()

    async def get_user_by_invitation(self, token: str) -> User | None:
        result = await self._session.execute(
            select(User).where(User.invitation_token == token).where(User.deleted_at.is_(None))
        )
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, user_id: str, token: str, expires_at: datetime) -> UserSession:
        return await self.add(UserSession(user_id=user_id, token=token, expires_at=expires_at))

    async def get_session(self, token: str) -> UserSession | None:
        result = await self._session.execute(select(UserSession).where(UserSession.token == token))
        return result.scalars().first()

    async def delete_session(self, token: str) -> None:
        await self._session.execute(delete(UserSession).where(UserSession.token == token))

    async def delete_user_sessions(self, user_id: str) -> None:
        await self._session.execute(delete(UserSession).where(UserSession.user_id == user_id))

    # ------------------------------------------------------------------
    # Password reset tokens
    # ------------------------------------------------------------------

    async def invalidate_reset_tokens(self, user_id: str) -> None:
        await self._session.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.user_id == user_id)
            .where(PasswordResetToken.used.is_(False))
            .values(used=True)
        )

    async def get_reset_token(self, token: str) -> PasswordResetToken | None:
        result = await self._session.execute(
            select(PasswordResetToken).where(PasswordResetToken.token == token)
        )
        return result.scalars().first()
