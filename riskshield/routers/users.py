from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, require_roles
from riskshield.schemas.user import InviteRequest, TeamMemberOut, UserUpdate
from riskshield.services.user import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=DataResponse[list[TeamMemberOut]])
async def list_users(user: User = Depends(require_roles(*MANAGERS)), session: AsyncSession = Depends(get_db)):
    users = await UserService(session, user).list_users()
    return {"data": [TeamMemberOut.model_validate(u) for u in users]}


@router.post("/invite", response_model=DataResponse[TeamMemberOut], status_code=status.HTTP_201_CREATED)
async def invite_user(
    body: InviteRequest,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    invited = await UserService(session, user).invite(body)
    return {"data": TeamMemberOut.model_validate(invited)}


@router.put("/{user_id}", response_model=DataResponse[TeamMemberOut])
async def update_user(
    user_id: str,
    body: UserUpdate,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    updated = await UserService(session, user).update(user_id, body)
    return {"data": TeamMemberOut.model_validate(updated)}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    await UserService(session, user).remove(user_id)
