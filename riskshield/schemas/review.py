"""Manual review queue schemas."""


from datetime import datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel
from riskshield.schemas.document import Deficiency, DocumentOut, VerificationOut
from riskshield.schemas.project import ProjectOut, RequirementOut
from riskshield.schemas.subcontractor import SubcontractorOut

class ReviewItem(CamelModel):
    id: str
    document_id: str
    file_name: str | None = None
    subcontractor_id: str
    subcontractor_name: str | None = None
    project_id: str
    project_name: str
    confidence_score: float | None = None
    deficiency_count: int = 0
    created_at: datetime

class ReviewDetail(CamelModel):
    verification: VerificationOut
    document: DocumentOut
    subcontractor: SubcontractorOut
    project: ProjectOut
    requirements: list[RequirementOut]

class ApproveRequest(CamelModel):
    notes: str | None = None

class RejectRequest(CamelModel):
    reason: str | None = None
    deficiencies: list[Deficiency] = Field(default_factory=list)

class RequestCopyRequest(CamelModel):
    message: str | None = None
