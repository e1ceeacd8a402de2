
from riskshield.schemas.common import CamelModel

class HistoryPoint(CamelModel):
    date: str
    total: int
    compliant: int
    non_compliant: int
    pending: int
    exception: int
    compliance_rate: int

class ComplianceHistory(CamelModel):
    history: list[HistoryPoint]
    days: int
    generated: bool
