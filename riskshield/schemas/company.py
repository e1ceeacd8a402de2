
from datetime import datetime

from riskshield.schemas.common import CamelModel

class CompanyOut(CamelModel):
    id: str
    name: str
    abn: str
    logo_url: str | None = None
    primary_color: str | None = None
    forwarding_email: str | None = None
    subscription_tier: str
    subscription_status: str
    trial_ends_at: datetime | None = None
    created_at: datetime

class CompanyUpdate(CamelModel):
    name: str | None = None
    abn: str | None = None
    logo_url: str | None = None
    primary_color: str | None = None
