from __future__ import annotations

from sqlalchemy import delete

from riskshield.domain.integration import OAuthConnection, OAuthState, ProcoreMapping, ProcoreSyncLog
from riskshield.repositories.base import BaseRepository


class OAuthConnectionRepository(BaseRepository[OAuthConnection]):
    model = OAuthConnection

    async def for_provider(self, provider: str) -> OAuthConnection | None:
        return await self.find_one(provider=provider)

    async def upsert(self, provider: str, **fields) -> OAuthConnection:
        existing = await self.for_provider(provider)
        if existing is None:
            return await self.create(provider=provider, **fields)
        return await self.update(existing.id, **fields)  # type: ignore[return-value]

    async def remove(self, provider: str) -> bool:
        result = await self._session.execute(
            delete(OAuthConnection)
            .where(OAuthConnection.company_id == self._company_id)
            .where(OAuthConnection.provider == provider)
        )
        return result.rowcount > 0


class OAuthStateRepository(BaseRepository[OAuthState]):
    model = OAuthState

    async def consume(self, state: str, provider: str) -> OAuthState | None:
        """Fetch and delete a state row so it can only be used once."""
        row = await self.find_one(state=state, provider=provider)
        if row is not None:
            await self._session.delete(row)
            await self._session.flush()
        return row


class ProcoreMappingRepository(BaseRepository[ProcoreMapping]):
    model = ProcoreMapping

    async def by_procore_id(
        self, procore_company_id: int, entity_type: str, procore_id: int
    ) -> ProcoreMapping | None:
        return await self.find_one(
            procore_company_id=procore_company_id,
            procore_entity_type=entity_type,
            procore_entity_id=procore_id,
        )

    async def by_shield_id(self, entity_type: str, shield_id: str) -> ProcoreMapping | None:
        return await self.find_one(shield_entity_type=entity_type, shield_entity_id=shield_id)

    async def procore_ids(self, procore_company_id: int, entity_type: str) -> dict[int, str]:
        rows = await self.find_all(procore_company_id=procore_company_id, procore_entity_type=entity_type)
        return {m.procore_entity_id: m.shield_entity_id for m in rows}


class SyncLogRepository(BaseRepository[ProcoreSyncLog]):
    model = ProcoreSyncLog
