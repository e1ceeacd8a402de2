
from datetime import datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class NotificationOut(CamelModel):
    id: str
    type: str
    title: str
    message: str
    link: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    read: bool
    created_at: datetime

class NotificationFeed(CamelModel):
    notifications: list[NotificationOut]
    unread_count: int
    total_count: int

class NotificationCreate(CamelModel):
    user_id: str = ""
    type: str = "system"
    title: str = Field(default="", max_length=255)
    message: str = ""
    link: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None

class NotificationMarkRead(CamelModel):
    notification_ids: list[str] | None = None
    mark_all_read: bool = False

class NotificationUpdateResult(CamelModel):
    success: bool = True
    updated: int
