from __future__ import annotations

from datetime import date

from riskshield.domain.snapshot import ComplianceSnapshot
from riskshield.repositories.base import BaseRepository


class SnapshotRepository(BaseRepository[ComplianceSnapshot]):
    model = ComplianceSnapshot

    async def for_date(self, day: date) -> ComplianceSnapshot | None:
        return await self.find_one(snapshot_date=day)

    async def since(self, start: date) -> list[ComplianceSnapshot]:
        q = (
            self._base_query()
            .where(ComplianceSnapshot.snapshot_date >= start)
            .order_by(ComplianceSnapshot.snapshot_date.asc())
        )
        return await self._scalars(q)

    async def dates_since(self, start: date) -> set[date]:
        return {s.snapshot_date for s in await self.since(start)}
