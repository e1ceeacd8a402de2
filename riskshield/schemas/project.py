"""Project, insurance requirement and assignment schemas."""


from datetime import date, datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class ProjectCreate(CamelModel):
    name: str = ""
    address: str | None = None
    state: str | None = None
    entity_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    estimated_value: int | None = None
    project_manager_id: str | None = None

class ProjectUpdate(CamelModel):
    name: str | None = None
    address: str | None = None
    state: str | None = None
    entity_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    estimated_value: int | None = None
    project_manager_id: str | None = None
    status: str | None = None
    # Optimistic concurrency: the updatedAt the client last saw
    updated_at: datetime | None = None

class ProjectOut(CamelModel):
    id: str
    company_id: str
    name: str
    address: str | None = None
    state: str | None = None
    entity_type: str
    start_date: date | None = None
    end_date: date | None = None
    estimated_value: int | None = None
    project_manager_id: str | None = None
    forwarding_email: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime

class ProjectListItem(ProjectOut):
    project_manager_name: str | None = None
    subcontractor_count: int = 0
    compliant_count: int = 0

class RequirementIn(CamelModel):
    coverage_type: str = ""
    minimum_limit: int | None = Field(default=None, ge=0)
    limit_type: str = "per_occurrence"
    maximum_excess: int | None = Field(default=None, ge=0)
    principal_indemnity_required: bool = False
    cross_liability_required: bool = False
    waiver_of_subrogation_required: bool = False
    principal_naming_required: str | None = None
    other_requirements: str | None = None

class RequirementUpdate(CamelModel):
    minimum_limit: int | None = Field(default=None, ge=0)
    limit_type: str | None = None
    maximum_excess: int | None = Field(default=None, ge=0)
    principal_indemnity_required: bool | None = None
    cross_liability_required: bool | None = None
    waiver_of_subrogation_required: bool | None = None
    principal_naming_required: str | None = None
    other_requirements: str | None = None

class RequirementOut(RequirementIn):
    id: str
    project_id: str
    created_at: datetime
    updated_at: datetime

class ApplyTemplateRequest(CamelModel):
    template_id: str = ""

class AssignmentCreate(CamelModel):
    subcontractor_id: str = ""
    on_site_date: date | None = None

class AssignmentOut(CamelModel):
    id: str
    project_id: str
    subcontractor_id: str
    subcontractor_name: str | None = None
    subcontractor_abn: str | None = None
    status: str
    on_site_date: date | None = None
    created_at: datetime

class ProjectDetail(ProjectOut):
    project_manager_name: str | None = None
    requirements: list[RequirementOut] = []
    subcontractors: list[AssignmentOut] = []
