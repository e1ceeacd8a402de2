
from datetime import date, datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class CommunicationOut(CamelModel):
    id: str
    subcontractor_id: str
    project_id: str | None = None
    verification_id: str | None = None
    type: str
    channel: str
    recipient_email: str | None = None
    subject: str | None = None
    body: str | None = None
    status: str
    sent_at: datetime | None = None
    created_at: datetime

class EmailTemplateOut(CamelModel):
    id: str | None = None
    type: str
    name: str | None = None
    subject: str | None = None
    body: str | None = None
    is_default: bool = False
    is_custom: bool = False

class EmailTemplateUpdate(CamelModel):
    name: str | None = None
    subject: str = ""
    body: str = ""

# ---------------------------------------------------------------------------
# Expirations
# ---------------------------------------------------------------------------

class ExpirationOut(CamelModel):
    verification_id: str
    document_id: str
    subcontractor_id: str
    subcontractor_name: str
    project_id: str
    project_name: str
    expiry_date: date
    days_until_expiry: int
    status: str

class ExpirationSummary(CamelModel):
    total: int
    expired: int
    expiring_soon: int
    valid: int

class ExpirationReport(CamelModel):
    expirations: list[ExpirationOut]
    summary: ExpirationSummary

class ReminderRequest(CamelModel):
    verification_ids: list[str] = Field(default_factory=list)

class ReminderResult(CamelModel):
    success: bool = True
    sent: int
    skipped: int

# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------

class FollowUpRequest(CamelModel):
    min_days_waiting: int = Field(default=2, ge=0)
    max_followups: int = Field(default=10, ge=1, le=100)

class FollowUpSent(CamelModel):
    communication_id: str
    subcontractor_name: str
    project_name: str
    recipient_email: str | None = None
    days_waiting: int

class FollowUpResult(CamelModel):
    success: bool = True
    message: str
    followups_sent: list[FollowUpSent]
    pending_responses_found: int

class FollowUpCandidate(CamelModel):
    communication_id: str
    subcontractor_name: str
    project_name: str
    recipient_email: str | None = None
    days_waiting: int
    last_sent_at: datetime | None = None
    days_until_followup: int | None = None

class FollowUpPreviewSummary(CamelModel):
    would_send: int
    not_yet_due: int
    total: int

class FollowUpPreview(CamelModel):
    would_get_followup: list[FollowUpCandidate]
    not_yet_due: list[FollowUpCandidate]
    summary: FollowUpPreviewSummary
