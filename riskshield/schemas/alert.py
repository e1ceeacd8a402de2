"""Stop-work risk and critical alert schemas."""


from datetime import date

from riskshield.schemas.common import CamelModel

class StopWorkRisk(CamelModel):
    subcontractor_id: str
    subcontractor_name: str
    subcontractor_abn: str | None = None
    project_id: str
    project_name: str
    on_site_date: date | None = None
    status: str
    issue: str

class StopWorkRisks(CamelModel):
    stop_work_risks: list[StopWorkRisk]
    count: int

class CriticalAlertRequest(CamelModel):
    subcontractor_id: str | None = None
    project_id: str | None = None

class CriticalAlertResult(CamelModel):
    success: bool = True
    message: str
    issue: str
    recipients: list[str]
