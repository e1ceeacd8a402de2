
from datetime import datetime

from riskshield.schemas.common import CamelModel

class CheckoutRequest(CamelModel):
    tier: str = ""

class CheckoutOut(CamelModel):
    checkout_url: str
    session_id: str | None = None
    simulated: bool = False

class PortalOut(CamelModel):
    portal_url: str

class SubscriptionOut(CamelModel):
    tier: str
    status: str
    trial_ends_at: datetime | None = None
    current_period_end: datetime | None = None
    has_billing_account: bool

class WebhookAck(CamelModel):
    received: bool = True
