"""The signed-in user's own notification preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user
from riskshield.schemas.user import UserPreferences, UserPreferencesUpdate
from riskshield.services.user import UserService

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("/preferences", response_model=DataResponse[UserPreferences])
async def get_preferences(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    return {"data": UserPreferences.model_validate(UserService(session, user).preferences())}


@router.put("/preferences", response_model=DataResponse[UserPreferences])
async def update_preferences(
    body: UserPreferencesUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    saved = await UserService(session, user).update_preferences(body)
    return {"data": UserPreferences.model_validate(saved)}
