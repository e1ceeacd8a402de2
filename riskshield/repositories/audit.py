from riskshield.domain.audit import AuditLog
from riskshield.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    model = AuditLog
