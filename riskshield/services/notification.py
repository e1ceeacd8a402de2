"""In-app notifications."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ForbiddenError
from riskshield.domain.notification import NOTIFICATION_TYPES, Notification
from riskshield.repositories.notification import NotificationRepository
from riskshield.repositories.user import UserRepository
from riskshield.services import preferences

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._repo = NotificationRepository(session, company_id)
        self._users = UserRepository(session, company_id)

    async def feed(self, user_id: str, *, limit: int, offset: int, unread_only: bool) -> dict:
        items = await self._repo.feed(user_id, limit=limit, offset=offset, unread_only=unread_only)
        return {
            "notifications": items,
            "unread_count": await self._repo.count(user_id, unread_only=True),
            "total_count": await self._repo.count(user_id),
        }

    async def create(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        *,
        link: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise BadRequestError(f"Invalid notification type '{type}'")
        target = await self._users.get_by_id(user_id)
        if target is None:
            # Unknown ids and users of other companies look the same from here
            raise ForbiddenError("Cannot create notifications for users outside your company")
        return await self._repo.create(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
            entity_type=entity_type,
            entity_id=entity_id,
        )

    async def notify_many(
        self,
        user_ids: Iterable[str],
        type: str,
        title: str,
        message: str,
        **kwargs,
    ) -> int:
        count = 0
        for uid in dict.fromkeys(user_ids):
            target = await self._users.get_by_id(uid)
            if target is not None and not preferences.wants_in_app(target.notification_preferences, type):
                continue
            await self._repo.create(user_id=uid, type=type, title=title, message=message, **kwargs)
            count += 1
        logger.debug("Sent %s notification to %d users", type, count)
        return count

    async def mark_read(self, user_id: str, ids: list[str] | None, mark_all: bool) -> int:
        if mark_all:
            return await self._repo.mark_read(user_id)
        if not ids:
            raise BadRequestError("Provide notificationIds or markAllRead")
        return await self._repo.mark_read(user_id, ids)

    async def clear(self, user_id: str) -> int:
        return await self._repo.clear(user_id)
