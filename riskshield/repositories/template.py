from __future__ import annotations

from sqlalchemy import or_, select

from riskshield.domain.mixins import utcnow
from riskshield.domain.template import RequirementTemplate


class RequirementTemplateRepository:
    """Templates visible to a company: its own plus the shared defaults."""

    def __init__(self, session, company_id: str):
        self._session = session
        self._company_id = company_id

    def _visible(self):
        return (
            select(RequirementTemplate)
            .where(or_(RequirementTemplate.company_id == self._company_id, RequirementTemplate.company_id.is_(None)))
            .where(RequirementTemplate.deleted_at.is_(None))
        )

    async def list(self) -> list[RequirementTemplate]:
        q = self._visible().order_by(RequirementTemplate.is_default.desc(), RequirementTemplate.name)
        return list((await self._session.execute(q)).scalars().all())

    async def get(self, template_id: str) -> RequirementTemplate | None:
        q = self._visible().where(RequirementTemplate.id == template_id)
        return (await self._session.execute(q)).scalars().first()

    async def create(self, **fields) -> RequirementTemplate:
        template = RequirementTemplate(company_id=self._company_id, **fields)
        self._session.add(template)
        await self._session.flush()
        await self._session.refresh(template)
        return template

    async def has_defaults(self) -> bool:
        q = select(RequirementTemplate.id).where(RequirementTemplate.company_id.is_(None)).limit(1)
        return (await self._session.execute(q)).first() is not None

    async def add_default(self, **fields) -> RequirementTemplate:
        template = RequirementTemplate(company_id=None, is_default=True, **fields)
        self._session.add(template)
        await self._session.flush()
        return template

    async def soft_delete(self, template: RequirementTemplate) -> None:
        template.deleted_at = utcnow()
        await self._session.flush()
