from __future__ import annotations

from sqlalchemy import delete, func, select, update

from riskshield.domain.notification import Notification
from riskshield.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def feed(
        self, user_id: str, *, limit: int, offset: int, unread_only: bool = False
    ) -> list[Notification]:
        q = self._base_query().where(Notification.user_id == user_id)
        if unread_only:
            q = q.where(Notification.read.is_(False))
        q = q.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        return await self._scalars(q)

    async def count(self, user_id: str, *, unread_only: bool = False) -> int:
        q = (
            select(func.count(Notification.id))
            .where(Notification.company_id == self._company_id)
            .where(Notification.user_id == user_id)
        )
        if unread_only:
            q = q.where(Notification.read.is_(False))
        return int((await self._session.execute(q)).scalar_one())

    async def mark_read(self, user_id: str, ids: list[str] | None = None) -> int:
        stmt = (
            update(Notification)
            .where(Notification.company_id == self._company_id)
            .where(Notification.user_id == user_id)
            .where(Notification.read.is_(False))
        )
        if ids is not None:
            stmt = stmt.where(Notification.id.in_(ids))
        result = await self._session.execute(stmt.values(read=True))
        return result.rowcount

    async def clear(self, user_id: str) -> int:
        result = await self._session.execute(
            delete(Notification)
            .where(Notification.company_id == self._company_id)
            .where(Notification.user_id == user_id)
        )
        return result.rowcount
