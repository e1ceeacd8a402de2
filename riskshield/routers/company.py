from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user, require_roles
from riskshield.schemas.company import CompanyOut, CompanyUpdate
from riskshield.services.company import CompanyService

router = APIRouter(prefix="/company", tags=["Company"])


@router.get("", response_model=DataResponse[CompanyOut])
async def get_company(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    company = await CompanyService(session, user).get()
    return {"data": CompanyOut.model_validate(company)}


@router.put("", response_model=DataResponse[CompanyOut])
async def update_company(
    body: CompanyUpdate,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    company = await CompanyService(session, user).update(body)
    return {"data": CompanyOut.model_validate(company)}
