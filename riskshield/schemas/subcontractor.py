"""Subcontractor Pydantic schemas (request DTOs, response models and bulk import)."""


from datetime import date, datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class SubcontractorBase(CamelModel):
    trading_name: str | None = None
    acn: str | None = None
    address: str | None = None
    trade: str | None = None
    employee_count: int | None = None
    workers_comp_state: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    broker_name: str | None = None
    broker_email: str | None = None
    broker_phone: str | None = None
    notes: str | None = None

class SubcontractorCreate(SubcontractorBase):
    name: str = ""
    abn: str = ""

class SubcontractorUpdate(SubcontractorBase):
    name: str | None = None
    abn: str | None = None

class SubcontractorOut(SubcontractorBase):
    id: str
    company_id: str
    name: str
    abn: str | None = None
    portal_access: bool = False
    created_at: datetime
    updated_at: datetime

class SubcontractorAssignment(CamelModel):
    project_id: str
    project_name: str
    project_status: str
    status: str
    on_site_date: date | None = None

class SubcontractorDetail(SubcontractorOut):
    projects: list[SubcontractorAssignment] = []
    latest_verification_status: str | None = None

# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------

class ImportRow(CamelModel):
    name: str | None = None
    abn: str | None = None
    trading_name: str | None = None
    trade: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    broker_name: str | None = None
    broker_email: str | None = None
    broker_phone: str | None = None

class ImportRequest(CamelModel):
    subcontractors: list[ImportRow] = Field(default_factory=list)
    merge_ids: list[str] = Field(default_factory=list)

class ImportDuplicate(CamelModel):
    row_num: int
    import_data: ImportRow
    existing_id: str
    existing_name: str
    cleaned_abn: str

class ImportResult(CamelModel):
    success: bool
    created: int
    merged: int
    total: int
    errors: list[str] | None = None
    duplicates: list[ImportDuplicate] | None = None
