from __future__ import annotations

from datetime import datetime

from riskshield.domain.document import CocDocument, Verification
from riskshield.domain.mixins import as_utc
from riskshield.repositories.base import BaseRepository


class DocumentRepository(BaseRepository[CocDocument]):
    model = CocDocument

    async def received_since(self, subcontractor_id: str, project_id: str, since: datetime) -> bool:
        """Whether a certificate for this pair arrived after *since*."""
        documents = await self.find_all(subcontractor_id=subcontractor_id, project_id=project_id)
        return any(as_utc(d.created_at) > since for d in documents)


class VerificationRepository(BaseRepository[Verification]):
    model = Verification

    async def for_document(self, document_id: str) -> Verification | None:
        rows = await self.find_all(order_by="created_at", order="desc", coc_document_id=document_id)
        return rows[0] if rows else None

    async def latest_for_subcontractor(self, subcontractor_id: str) -> Verification | None:
        q = (
            self._base_query()
            .join(CocDocument, CocDocument.id == Verification.coc_document_id)
            .where(CocDocument.subcontractor_id == subcontractor_id)
            .order_by(Verification.created_at.desc())
            .limit(1)
        )
        return (await self._session.execute(q)).scalars().first()

    def _with_documents_query(self):
        return (
            self._base_query()
            .add_columns(CocDocument)
            .join(CocDocument, CocDocument.id == Verification.coc_document_id)
            .where(CocDocument.deleted_at.is_(None))
        )

    async def with_documents(self, statuses: tuple[str, ...]) -> list[tuple[Verification, CocDocument]]:
        q = self._with_documents_query().where(Verification.status.in_(statuses)).order_by(Verification.created_at.desc())
        return [(v, d) for v, d in (await self._session.execute(q)).all()]

    async def for_project(self, project_id: str) -> list[tuple[Verification, CocDocument]]:
        q = (
            self._with_documents_query()
            .where(Verification.project_id == project_id)
            .order_by(Verification.created_at.desc())
        )
        return [(v, d) for v, d in (await self._session.execute(q)).all()]
