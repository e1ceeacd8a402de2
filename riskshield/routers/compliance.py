from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user
from riskshield.schemas.compliance import ComplianceHistory
from riskshield.services.compliance import ComplianceService

router = APIRouter(tags=["Compliance"])


@router.get("/compliance-history", response_model=ComplianceHistory)
async def compliance_history(
    days: int = Query(default=30, ge=1, le=365),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Daily compliance trend; synthesizes backfill when fewer than seven snapshots exist."""
    history = await ComplianceService(session, user.company_id).history(days)
    return ComplianceHistory.model_validate(history)
