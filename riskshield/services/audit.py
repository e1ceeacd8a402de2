"""Audit trail writer and reader."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.request_context import get_request_info
from riskshield.domain.audit import AuditLog
from riskshield.repositories.audit import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._repo = AuditLogRepository(session, company_id)

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str | None = None,
        *,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        info = get_request_info()
        logger.debug("audit %s %s/%s by %s", action, entity_type, entity_id, user_id)
        return await self._repo.create(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=info.ip_address,
            user_agent=(info.user_agent or "")[:512] or None,
        )

    async def search(
        self,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        action: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        return await self._repo.list(
            offset=offset,
            limit=limit,
            order_by="created_at",
            order="desc",
            filters={"entity_type": entity_type, "entity_id": entity_id, "action": action},
        )
