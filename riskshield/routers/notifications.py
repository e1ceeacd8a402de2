from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.pagination import WindowParams
from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user
from riskshield.schemas.notification import (
    NotificationCreate,
    NotificationFeed,
    NotificationMarkRead,
    NotificationOut,
    NotificationUpdateResult,
)
from riskshield.services.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationFeed)
async def get_notifications(
    unread: bool = Query(default=False, description="Only unread notifications"),
    window: WindowParams = Depends(),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    feed = await NotificationService(session, user.company_id).feed(
        user.id, limit=window.limit, offset=window.offset, unread_only=unread
    )
    return NotificationFeed.model_validate(feed)


@router.post("", response_model=DataResponse[NotificationOut], status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(session, user.company_id).create(
        body.user_id,
        body.type,
        body.title,
        body.message,
        link=body.link,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
    )
    return {"data": NotificationOut.model_validate(notification)}


@router.patch("", response_model=NotificationUpdateResult)
async def mark_notifications_read(
    body: NotificationMarkRead,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    updated = await NotificationService(session, user.company_id).mark_read(
        user.id, body.notification_ids, body.mark_all_read
    )
    return NotificationUpdateResult(updated=updated)


@router.delete("", response_model=NotificationUpdateResult)
async def clear_notifications(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    removed = await NotificationService(session, user.company_id).clear(user.id)
    return NotificationUpdateResult(updated=removed)
