from riskshield.domain.compliance_exception import ComplianceException
from riskshield.repositories.base import BaseRepository


class ExceptionRepository(BaseRepository[ComplianceException]):
    model = ComplianceException
