"""Manual review queue.

Endpoints:
  GET  /reviews                     — verifications awaiting a reviewer, oldest first
  GET  /reviews/{id}                — verification with its document, subcontractor, project and requirements
  POST /reviews/{id}/approve        — mark compliant and send the confirmation
  POST /reviews/{id}/reject         — mark non-compliant and send the deficiency notice
  POST /reviews/{id}/request-copy   — ask the broker for a legible certificate
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.communication import CommunicationOut
from riskshield.schemas.document import VerificationOut
from riskshield.schemas.review import ApproveRequest, RejectRequest, RequestCopyRequest, ReviewDetail, ReviewItem
from riskshield.services.review import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("", response_model=DataResponse[list[ReviewItem]])
async def review_queue(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    items = await ReviewService(session, user).queue()
    return {"data": [ReviewItem.model_validate(i) for i in items]}


@router.get("/{verification_id}", response_model=DataResponse[ReviewDetail])
async def review_detail(
    verification_id: str, user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)
):
    detail = await ReviewService(session, user).detail(verification_id)
    return {"data": ReviewDetail.model_validate(detail)}


@router.post("/{verification_id}/approve", response_model=DataResponse[VerificationOut])
async def approve_review(
    verification_id: str,
    body: ApproveRequest = ApproveRequest(),
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    verification = await ReviewService(session, user).approve(verification_id, body.notes)
    return {"data": VerificationOut.model_validate(verification)}


@router.post("/{verification_id}/reject", response_model=DataResponse[VerificationOut])
async def reject_review(
    verification_id: str,
    body: RejectRequest,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    verification = await ReviewService(session, user).reject(
        verification_id, body.reason, [d.model_dump() for d in body.deficiencies]
    )
    return {"data": VerificationOut.model_validate(verification)}


@router.post("/{verification_id}/request-copy", response_model=DataResponse[CommunicationOut])
async def request_clearer_copy(
    verification_id: str,
    body: RequestCopyRequest = RequestCopyRequest(),
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    comm = await ReviewService(session, user).request_clearer_copy(verification_id, body.message)
    return {"data": CommunicationOut.model_validate(comm)}
