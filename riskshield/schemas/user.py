
from datetime import datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class InviteRequest(CamelModel):
    email: str = ""
    name: str = ""
    role: str = ""

class UserUpdate(CamelModel):
    name: str | None = None
    role: str | None = None
    phone: str | None = None

class TeamMemberOut(CamelModel):
    id: str
    email: str
    name: str
    role: str
    phone: str | None = None
    invitation_status: str
    last_login_at: datetime | None = None
    created_at: datetime

class NotificationToggles(CamelModel):
    coc_received: bool = True
    coc_verified: bool = True
    coc_failed: bool = True
    expiration_warning: bool = True
    stop_work_risk: bool = True
    communication_sent: bool = True
    exception_updates: bool = True

class UserPreferences(CamelModel):
    email_digest: str = "immediate"
    email_notifications: NotificationToggles = NotificationToggles()
    in_app_notifications: NotificationToggles = NotificationToggles()
    expiration_warning_days: int = 30

class NotificationTogglesUpdate(CamelModel):
    coc_received: bool | None = None
    coc_verified: bool | None = None
    coc_failed: bool | None = None
    expiration_warning: bool | None = None
    stop_work_risk: bool | None = None
    communication_sent: bool | None = None
    exception_updates: bool | None = None

class UserPreferencesUpdate(CamelModel):
    email_digest: str | None = None
    email_notifications: NotificationTogglesUpdate | None = None
    in_app_notifications: NotificationTogglesUpdate | None = None
    expiration_warning_days: int | None = Field(default=None, ge=1, le=365)
