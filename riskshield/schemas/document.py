"""Certificate of Currency document and verification schemas."""


from datetime import datetime
from typing import Any

from pydantic import field_validator

from riskshield.schemas.common import CamelModel

class VerificationCheck(CamelModel):
    check_type: str
    description: str
    status: str
    details: str

class Deficiency(CamelModel):
    type: str
    severity: str
    description: str
    required_value: str | None = None
    actual_value: str | None = None

class VerificationOut(CamelModel):
    id: str
    coc_document_id: str
    project_id: str
    status: str
    confidence_score: float | None = None
    extracted_data: dict[str, Any] | None = None
    checks: list[VerificationCheck] = []
    deficiencies: list[Deficiency] = []
    verified_by_user_id: str | None = None
    verified_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("checks", "deficiencies", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        # Rows written before processing carry NULL here
        return [] if value is None else value

class DocumentOut(CamelModel):
    id: str
    subcontractor_id: str
    project_id: str
    file_name: str | None = None
    file_size: int | None = None
    content_type: str | None = None
    source: str
    processing_status: str
    processing_error: str | None = None
    processed_at: datetime | None = None
    created_at: datetime

class DocumentWithVerification(DocumentOut):
    subcontractor_name: str | None = None
    project_name: str | None = None
    verification: VerificationOut | None = None

class VerifyRequest(CamelModel):
    action: str = ""
    notes: str | None = None
