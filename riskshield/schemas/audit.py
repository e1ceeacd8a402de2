
from datetime import datetime
from typing import Any

from riskshield.schemas.common import CamelModel

class AuditLogOut(CamelModel):
    id: str
    user_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    created_at: datetime

class AuditLogPage(CamelModel):
    logs: list[AuditLogOut]
    total: int
    limit: int
    offset: int
