from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, get_current_user, require_roles
from riskshield.schemas.template import TemplateCreate, TemplateOut
from riskshield.services.templates import RequirementTemplateService

router = APIRouter(prefix="/requirement-templates", tags=["Requirement templates"])


@router.get("", response_model=DataResponse[list[TemplateOut]])
async def list_templates(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    """Built-in templates first, then the company's own."""
    templates = await RequirementTemplateService(session, user).list_templates()
    return {"data": [TemplateOut.model_validate(t) for t in templates]}


@router.post("", response_model=DataResponse[TemplateOut], status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    template = await RequirementTemplateService(session, user).create_template(body)
    return {"data": TemplateOut.model_validate(template)}


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    await RequirementTemplateService(session, user).delete_template(template_id)
