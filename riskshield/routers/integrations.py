"""Integration connections: status, OAuth connect / callback and Procore company selection.

The OAuth callbacks are browser navigations, so they always answer with a
redirect back to the frontend integrations page carrying ``success``,
``action`` or ``error`` in the query string.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import AppException
from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, get_current_user, require_roles
from riskshield.schemas.integration import (
    ConnectionStatus,
    ConnectOut,
    IntegrationsStatus,
    ProcoreCompanyOut,
    SelectCompanyRequest,
)
from riskshield.services.integrations import IntegrationService, settings_redirect
from riskshield.services.microsoft import MicrosoftService
from riskshield.services.procore_sync import ProcoreService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])

_ERROR_CODE = re.compile(r"^[a-z_]+$")


def _callback_error(exc: AppException) -> str:
    """Short error codes pass through to the frontend; anything else is reported generically."""
    return exc.message if _ERROR_CODE.match(exc.message) else "callback_failed"


async def _finish_callback(session: AsyncSession, complete, code: Optional[str], state: Optional[str],
                           error: Optional[str]) -> RedirectResponse:
    if error:
        return RedirectResponse(settings_redirect(error="oauth_denied"), status_code=status.HTTP_302_FOUND)
    if not code or not state:
        return RedirectResponse(settings_redirect(error="invalid_callback"), status_code=status.HTTP_302_FOUND)
    try:
        outcome = await complete(code, state)
    except AppException as exc:
        logger.warning("OAuth callback failed: %s", exc.message)
        # Keep the consumed state and any partial writes out of the database
        await session.rollback()
        return RedirectResponse(settings_redirect(error=_callback_error(exc)), status_code=status.HTTP_302_FOUND)

    query = {"action": outcome} if outcome == "procore_select_company" else {"success": outcome}
    return RedirectResponse(settings_redirect(**query), status_code=status.HTTP_302_FOUND)


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------

@router.get("/status", response_model=DataResponse[IntegrationsStatus])
async def integrations_status(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    rows = await IntegrationService(session, user).status()
    return {"data": IntegrationsStatus(integrations=[ConnectionStatus.model_validate(r) for r in rows])}


@router.delete("/{provider}", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    provider: str,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    await IntegrationService(session, user).disconnect(provider)


# ------------------------------------------------------------------
# Procore
# ------------------------------------------------------------------

@router.get("/procore/connect", response_model=DataResponse[ConnectOut])
async def procore_connect(
    redirect: bool = Query(default=False, description="Answer with a 302 instead of JSON"),
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    url = await ProcoreService(session, user).connect_url()
    if redirect:
        return RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    return {"data": ConnectOut(redirect_url=url)}


@router.get("/procore/callback", include_in_schema=False)
async def procore_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    service = ProcoreService(session, user)
    return await _finish_callback(session, service.complete_oauth, code, state, error)


@router.get("/procore/companies", response_model=DataResponse[list[ProcoreCompanyOut]])
async def procore_companies(
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    companies = await ProcoreService(session, user).list_companies()
    return {"data": [ProcoreCompanyOut.model_validate(c) for c in companies]}


@router.post("/procore/select-company", response_model=DataResponse[ConnectionStatus])
async def procore_select_company(
    body: SelectCompanyRequest,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    await ProcoreService(session, user).select_company(body.company_id)
    rows = await IntegrationService(session, user).status()
    return {"data": ConnectionStatus.model_validate(next(r for r in rows if r["provider"] == "procore"))}


# ------------------------------------------------------------------
# Microsoft 365
# ------------------------------------------------------------------

@router.get("/microsoft/connect", response_model=DataResponse[ConnectOut])
async def microsoft_connect(
    redirect: bool = Query(default=False, description="Answer with a 302 instead of JSON"),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    url = await MicrosoftService(session, user).connect_url()
    if redirect:
        return RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    return {"data": ConnectOut(redirect_url=url)}


@router.get("/microsoft/callback", include_in_schema=False)
async def microsoft_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    service = MicrosoftService(session, user)
    return await _finish_callback(session, service.complete_oauth, code, state, error)
