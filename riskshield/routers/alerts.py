"""Stop-work risks and critical alerts."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.alert import CriticalAlertRequest, CriticalAlertResult, StopWorkRisk, StopWorkRisks
from riskshield.services.alerts import AlertService

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("/critical", response_model=StopWorkRisks)
async def list_stop_work_risks(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    risks = await AlertService(session, user).stop_work_risks()
    return StopWorkRisks(stop_work_risks=[StopWorkRisk.model_validate(r) for r in risks], count=len(risks))


@router.post("/critical", response_model=CriticalAlertResult)
async def send_critical_alert(
    body: CriticalAlertRequest,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    result = await AlertService(session, user).send_critical_alert(body.subcontractor_id, body.project_id)
    return CriticalAlertResult.model_validate(result)
