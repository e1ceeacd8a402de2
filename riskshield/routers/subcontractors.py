"""Subcontractor CRUD and bulk import."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.pagination import PaginationParams
from riskshield.core.response import DataResponse, ListResponse, paginated
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.subcontractor import (
    ImportRequest,
    ImportResult,
    SubcontractorCreate,
    SubcontractorDetail,
    SubcontractorOut,
    SubcontractorUpdate,
)
from riskshield.services.subcontractor import SubcontractorService

router = APIRouter(prefix="/subcontractors", tags=["Subcontractors"])


@router.get("", response_model=ListResponse[SubcontractorOut])
async def list_subcontractors(
    search: Optional[str] = Query(default=None, description="Match name, trading name, ABN or email"),
    trade: Optional[str] = Query(default=None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    items, total = await SubcontractorService(session, user).list_subcontractors(
        pagination, search=search, trade=trade
    )
    return paginated(
        [SubcontractorOut.model_validate(s) for s in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[SubcontractorOut], status_code=status.HTTP_201_CREATED)
async def create_subcontractor(
    body: SubcontractorCreate,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    sub = await SubcontractorService(session, user).create_subcontractor(body)
    return {"data": SubcontractorOut.model_validate(sub)}


@router.post("/import", response_model=ImportResult)
async def import_subcontractors(
    body: ImportRequest,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    """Bulk create from a parsed spreadsheet; ABN duplicates are merged only when listed in ``mergeIds``."""
    return await SubcontractorService(session, user).bulk_import(body)


@router.get("/{subcontractor_id}", response_model=DataResponse[SubcontractorDetail])
async def get_subcontractor(
    subcontractor_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    detail = await SubcontractorService(session, user).get_detail(subcontractor_id)
    base = SubcontractorOut.model_validate(detail["subcontractor"]).model_dump()
    out = SubcontractorDetail(
        **base,
        projects=detail["projects"],
        latest_verification_status=detail["latest_verification_status"],
    )
    return {"data": out}


@router.put("/{subcontractor_id}", response_model=DataResponse[SubcontractorOut])
async def update_subcontractor(
    subcontractor_id: str,
    body: SubcontractorUpdate,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    sub = await SubcontractorService(session, user).update_subcontractor(subcontractor_id, body)
    return {"data": SubcontractorOut.model_validate(sub)}


@router.delete("/{subcontractor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subcontractor(
    subcontractor_id: str,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    await SubcontractorService(session, user).delete_subcontractor(subcontractor_id)
