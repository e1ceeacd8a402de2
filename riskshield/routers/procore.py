"""Procore data endpoints: browse remote projects / vendors, import them, push compliance back."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, require_roles
from riskshield.schemas.integration import (
    ProjectSyncRequest,
    PushComplianceRequest,
    PushComplianceResult,
    PushHistoryItem,
    RemoteProjectListing,
    RemoteVendorListing,
    SyncBatchResult,
    VendorSyncRequest,
)
from riskshield.services.procore_sync import ProcoreService

router = APIRouter(prefix="/procore", tags=["Procore"])


@router.get("/projects", response_model=DataResponse[RemoteProjectListing])
async def remote_projects(
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1, le=300, alias="perPage"),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    listing = await ProcoreService(session, user).remote_projects(page, per_page)
    return {"data": RemoteProjectListing.model_validate(listing)}


@router.post("/projects", response_model=DataResponse[SyncBatchResult])
async def sync_projects(
    body: ProjectSyncRequest,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    """Import the selected Procore projects; existing mappings are updated unless ``updateExisting`` is false."""
    batch = await ProcoreService(session, user).sync_projects(body)
    return {"data": SyncBatchResult.model_validate(batch)}


@router.get("/vendors", response_model=DataResponse[RemoteVendorListing])
async def remote_vendors(
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1, le=300, alias="perPage"),
    is_active: Optional[bool] = Query(default=True, alias="isActive"),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    listing = await ProcoreService(session, user).remote_vendors(page, per_page, is_active)
    return {"data": RemoteVendorListing.model_validate(listing)}


@router.post("/vendors", response_model=DataResponse[SyncBatchResult])
async def sync_vendors(
    body: VendorSyncRequest,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    """Import vendors as subcontractors, matching existing records by ABN."""
    batch = await ProcoreService(session, user).sync_vendors(body)
    return {"data": SyncBatchResult.model_validate(batch)}


@router.post("/push-compliance", response_model=DataResponse[PushComplianceResult])
async def push_compliance(
    body: PushComplianceRequest,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    result = await ProcoreService(session, user).push_compliance(body.subcontractor_id)
    return {"data": PushComplianceResult.model_validate(result)}


@router.get("/push-compliance", response_model=DataResponse[list[PushHistoryItem]])
async def push_history(
    subcontractor_id: str = Query(default="", alias="subcontractorId"),
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    rows = await ProcoreService(session, user).push_history(subcontractor_id)
    return {"data": [PushHistoryItem.model_validate(r) for r in rows]}
