
from datetime import datetime

from riskshield.schemas.common import CamelModel

class ExceptionCreate(CamelModel):
    project_subcontractor_id: str = ""
    verification_id: str | None = None
    issue_summary: str = ""
    reason: str = ""
    risk_level: str | None = None
    expiration_type: str | None = None
    expires_at: datetime | None = None
    password: str | None = None

class ExceptionAction(CamelModel):
    action: str = ""

class ExceptionOut(CamelModel):
    id: str
    project_subcontractor_id: str
    verification_id: str | None = None
    issue_summary: str
    reason: str
    risk_level: str
    expiration_type: str
    expires_at: datetime | None = None
    status: str
    created_by_user_id: str
    approved_by_user_id: str | None = None
    approved_at: datetime | None = None
    created_at: datetime

class ExceptionResult(CamelModel):
    success: bool = True
    message: str
    exception: ExceptionOut
