"""Insurance requirement templates: built-in defaults plus company-defined sets."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from riskshield.domain.project import COVERAGE_TYPES
from riskshield.domain.template import TEMPLATE_TYPES, RequirementTemplate
from riskshield.domain.user import User
from riskshield.repositories.template import RequirementTemplateRepository
from riskshield.schemas.template import TemplateCreate
from riskshield.services.audit import AuditService

logger = logging.getLogger(__name__)


def _req(coverage_type: str, minimum_limit: int | None = None, maximum_excess: int | None = None, **flags) -> dict:
    return {
        "coverage_type": coverage_type,
        "minimum_limit": minimum_limit,
        "limit_type": "per_occurrence",
        "maximum_excess": maximum_excess,
        "principal_indemnity_required": flags.get("principal_indemnity", False),
        "cross_liability_required": flags.get("cross_liability", False),
        "waiver_of_subrogation_required": False,
        "principal_naming_required": None,
        "other_requirements": None,
    }


DEFAULT_TEMPLATES: list[dict] = [
    {
        "name": "Commercial Construction",
        "type": "commercial",
        "requirements": [
            _req("public_liability", 20_000_000, 10_000, principal_indemnity=True, cross_liability=True),
            _req("professional_indemnity", 5_000_000, 5_000),
            _req("workers_comp"),
        ],
    },
    {
        "name": "Residential Construction",
        "type": "residential",
        "requirements": [
            _req("public_liability", 10_000_000, 5_000, principal_indemnity=True),
            _req("workers_comp"),
        ],
    },
    {
        "name": "Civil Infrastructure",
        "type": "civil",
        "requirements": [
            _req("public_liability", 50_000_000, 20_000, principal_indemnity=True, cross_liability=True),
            _req("professional_indemnity", 10_000_000, 10_000),
            _req("workers_comp"),
            _req("motor_vehicle", 30_000_000, 5_000),
        ],
    },
    {
        "name": "Commercial Fitout",
        "type": "fitout",
        "requirements": [
            _req("public_liability", 10_000_000, 5_000, principal_indemnity=True),
            _req("workers_comp"),
        ],
    },
]


class RequirementTemplateService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._repo = RequirementTemplateRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)

    async def _ensure_defaults(self) -> None:
        if await self._repo.has_defaults():
            return
        for template in DEFAULT_TEMPLATES:
            await self._repo.add_default(**template)
        logger.info("Seeded %d default requirement templates", len(DEFAULT_TEMPLATES))

    async def list_templates(self) -> list[RequirementTemplate]:
        await self._ensure_defaults()
        return await self._repo.list()

    async def get_template(self, template_id: str) -> RequirementTemplate:
        await self._ensure_defaults()
        template = await self._repo.get(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    async def create_template(self, data: TemplateCreate) -> RequirementTemplate:
        name = data.name.strip()
        if not name:
            raise BadRequestError("Template name is required")
        if not data.requirements:
            raise BadRequestError("At least one requirement is required")
        if data.type not in TEMPLATE_TYPES:
            raise BadRequestError(f"Invalid template type. Must be one of: {', '.join(TEMPLATE_TYPES)}")
        for req in data.requirements:
            if req.coverage_type not in COVERAGE_TYPES:
                raise BadRequestError(f"Invalid coverage type: {req.coverage_type}")

        template = await self._repo.create(
            name=name,
            type=data.type,
            requirements=[r.model_dump() for r in data.requirements],
            is_default=False,
        )
        await self._audit.record(
            "create", "requirement_template", template.id, user_id=self._actor.id, details={"name": name}
        )
        return template

    async def delete_template(self, template_id: str) -> None:
        template = await self.get_template(template_id)
        if template.company_id is None:
            raise ForbiddenError("Default templates cannot be deleted")
        await self._repo.soft_delete(template)
        await self._audit.record(
            "delete", "requirement_template", template.id, user_id=self._actor.id, details={"name": template.name}
        )
