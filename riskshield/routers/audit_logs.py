from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.pagination import WindowParams
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, require_roles
from riskshield.schemas.audit import AuditLogOut, AuditLogPage
from riskshield.services.audit import AuditService

router = APIRouter(prefix="/audit-logs", tags=["Audit logs"])


@router.get("", response_model=AuditLogPage)
async def search_audit_logs(
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    entity_id: Optional[str] = Query(default=None, alias="entityId"),
    action: Optional[str] = Query(default=None),
    window: WindowParams = Depends(),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    logs, total = await AuditService(session, user.company_id).search(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=window.limit,
        offset=window.offset,
    )
    return AuditLogPage(
        logs=[AuditLogOut.model_validate(log) for log in logs],
        total=total,
        limit=window.limit,
        offset=window.offset,
    )
