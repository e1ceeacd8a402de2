from sqlalchemy import or_, select

from riskshield.domain.subcontractor import Subcontractor
from riskshield.repositories.base import BaseRepository


class SubcontractorRepository(BaseRepository[Subcontractor]):
    model = Subcontractor

    async def find_by_abn(self, abn: str, *, include_deleted: bool = False) -> Subcontractor | None:
        q = (
            select(Subcontractor)
            .where(Subcontractor.company_id == self._company_id)
            .where(Subcontractor.abn == abn)
        )
        if not include_deleted:
            q = q.where(Subcontractor.deleted_at.is_(None))
        return (await self._session.execute(q)).scalars().first()

    def search_condition(self, term: str):
        like = f"%{term.strip()}%"
        return or_(
            Subcontractor.name.ilike(like),
            Subcontractor.trading_name.ilike(like),
            Subcontractor.abn.ilike(like),
            Subcontractor.contact_email.ilike(like),
        )
