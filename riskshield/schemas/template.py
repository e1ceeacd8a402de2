
from datetime import datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel
from riskshield.schemas.project import RequirementIn

class TemplateCreate(CamelModel):
    name: str = ""
    type: str = "custom"
    requirements: list[RequirementIn] = Field(default_factory=list)

class TemplateOut(CamelModel):
    id: str
    company_id: str | None = None
    name: str
    type: str
    requirements: list[RequirementIn]
    is_default: bool
    created_at: datetime
