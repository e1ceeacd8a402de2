from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.compliance_exception import ExceptionAction, ExceptionCreate, ExceptionOut, ExceptionResult
from riskshield.services.compliance_exception import ExceptionService

router = APIRouter(prefix="/exceptions", tags=["Exceptions"])


@router.get("", response_model=DataResponse[list[ExceptionOut]])
async def list_exceptions(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    exceptions = await ExceptionService(session, user).list_exceptions(status_filter)
    return {"data": [ExceptionOut.model_validate(e) for e in exceptions]}


@router.post("", response_model=ExceptionResult, status_code=status.HTTP_201_CREATED)
async def create_exception(
    body: ExceptionCreate,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    """Risk managers and admins are auto-approved; project managers' requests wait for approval."""
    exception = await ExceptionService(session, user).create_exception(body)
    message = (
        "Exception created and activated"
        if exception.status == "active"
        else "Exception submitted for approval"
    )
    return ExceptionResult(message=message, exception=ExceptionOut.model_validate(exception))


@router.put("/{exception_id}", response_model=ExceptionResult)
async def review_exception(
    exception_id: str,
    body: ExceptionAction,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    exception = await ExceptionService(session, user).review(exception_id, body.action)
    return ExceptionResult(
        message=f"Exception {'approved' if body.action == 'approve' else 'rejected'}",
        exception=ExceptionOut.model_validate(exception),
    )
