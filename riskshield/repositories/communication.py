from __future__ import annotations

from sqlalchemy import select

from riskshield.domain.communication import Communication, EmailTemplate
from riskshield.repositories.base import BaseRepository


class CommunicationRepository(BaseRepository[Communication]):
    model = Communication

    async def awaiting_response(self, types: tuple[str, ...], statuses: tuple[str, ...]) -> list[Communication]:
        """Delivered messages tied to a verification, newest first."""
        q = (
            self._base_query()
            .where(Communication.type.in_(types))
            .where(Communication.status.in_(statuses))
            .where(Communication.verification_id.is_not(None))
            .where(Communication.sent_at.is_not(None))
            .order_by(Communication.sent_at.desc())
        )
        return await self._scalars(q)


class EmailTemplateRepository:
    """Company templates fall back to the system default (``company_id IS NULL``) of the same type."""

    def __init__(self, session, company_id: str):
        self._session = session
        self._company_id = company_id

    async def for_type(self, template_type: str) -> EmailTemplate | None:
        own = await self._session.execute(
            select(EmailTemplate)
            .where(EmailTemplate.company_id == self._company_id)
            .where(EmailTemplate.type == template_type)
            .where(EmailTemplate.deleted_at.is_(None))
            .limit(1)
        )
        template = own.scalars().first()
        if template is not None:
            return template
        default = await self._session.execute(
            select(EmailTemplate)
            .where(EmailTemplate.company_id.is_(None))
            .where(EmailTemplate.type == template_type)
            .where(EmailTemplate.is_default.is_(True))
            .limit(1)
        )
        return default.scalars().first()

    async def company_templates(self) -> list[EmailTemplate]:
        result = await self._session.execute(
            select(EmailTemplate)
            .where(EmailTemplate.company_id == self._company_id)
            .where(EmailTemplate.deleted_at.is_(None))
            .order_by(EmailTemplate.type)
        )
        return list(result.scalars().all())

    async def upsert(self, template_type: str, **fields) -> EmailTemplate:
        result = await self._session.execute(
            select(EmailTemplate)
            .where(EmailTemplate.company_id == self._company_id)
            .where(EmailTemplate.type == template_type)
            .limit(1)
        )
        template = result.scalars().first()
        if template is None:
            template = EmailTemplate(company_id=self._company_id, type=template_type)
            self._session.add(template)
        for key, value in fields.items():
            setattr(template, key, value)
        template.deleted_at = None
        await self._session.flush()
        await self._session.refresh(template)
        return template
