"""Outbound communications and follow-ups, editable email templates and expiration tracking."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.communication import (
    CommunicationOut,
    EmailTemplateOut,
    EmailTemplateUpdate,
    ExpirationReport,
    FollowUpPreview,
    FollowUpRequest,
    FollowUpResult,
    ReminderRequest,
    ReminderResult,
)
from riskshield.services.communication import CommunicationService

router = APIRouter(tags=["Communications"])


# ------------------------------------------------------------------
# Communication history
# ------------------------------------------------------------------

@router.get("/communications", response_model=DataResponse[list[CommunicationOut]])
async def list_communications(
    subcontractor_id: Optional[str] = Query(default=None, alias="subcontractorId"),
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    comm_type: Optional[str] = Query(default=None, alias="type"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    items = await CommunicationService(session, user.company_id, user.id).list_communications(
        subcontractor_id=subcontractor_id, project_id=project_id, comm_type=comm_type
    )
    return {"data": [CommunicationOut.model_validate(c) for c in items]}


@router.post("/communications/{communication_id}/resend", response_model=DataResponse[CommunicationOut])
async def resend_communication(
    communication_id: str,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    comm = await CommunicationService(session, user.company_id, user.id).resend(communication_id)
    return {"data": CommunicationOut.model_validate(comm)}


@router.post("/communications/trigger-followups", response_model=FollowUpResult)
async def trigger_followups(
    body: FollowUpRequest = FollowUpRequest(),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    result = await CommunicationService(session, user.company_id, user.id).trigger_follow_ups(
        body.min_days_waiting, body.max_followups
    )
    return FollowUpResult.model_validate(result)


@router.get("/communications/trigger-followups", response_model=DataResponse[FollowUpPreview])
async def preview_followups(
    min_days: int = Query(default=2, ge=0, alias="minDays"),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    preview = await CommunicationService(session, user.company_id, user.id).follow_up_preview(min_days)
    return {"data": FollowUpPreview.model_validate(preview)}


# ------------------------------------------------------------------
# Email templates
# ------------------------------------------------------------------

@router.get("/email-templates", response_model=DataResponse[list[EmailTemplateOut]])
async def list_email_templates(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    templates = await CommunicationService(session, user.company_id, user.id).list_templates()
    return {"data": [EmailTemplateOut.model_validate(t) for t in templates]}


@router.put("/email-templates/{template_type}", response_model=DataResponse[EmailTemplateOut])
async def save_email_template(
    template_type: str,
    body: EmailTemplateUpdate,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    template = await CommunicationService(session, user.company_id, user.id).save_template(template_type, body)
    out = EmailTemplateOut.model_validate(template).model_copy(update={"is_custom": True, "is_default": False})
    return {"data": out}


# ------------------------------------------------------------------
# Expirations
# ------------------------------------------------------------------

@router.get("/expirations", response_model=DataResponse[ExpirationReport])
async def list_expirations(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    report = await CommunicationService(session, user.company_id, user.id).expirations(
        start_date=start_date, end_date=end_date, project_id=project_id
    )
    return {"data": ExpirationReport.model_validate(report)}


@router.post("/expirations/remind", response_model=ReminderResult)
async def send_expiration_reminders(
    body: ReminderRequest,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    result = await CommunicationService(session, user.company_id, user.id).send_expiration_reminders(
        body.verification_ids
    )
    return ReminderResult(sent=result["sent"], skipped=result["skipped"])
