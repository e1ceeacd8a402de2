"""Generic async repository with soft-delete, pagination, and tenant isolation."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.db.base import Base
from riskshield.domain.mixins import utcnow

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository. All queries are filtered by company_id.

    Soft-deletes: rows with `deleted_at IS NOT NULL` are excluded from all
    standard reads. Hard-delete is only exposed by repositories whose rows
    are disposable (notifications, sessions).
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession, company_id: str):
        self._session = session
        self._company_id = company_id

    @property
    def session(self) -> AsyncSession:
        return self._session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        """Return a SELECT filtered by company_id and excluding soft-deleted rows."""
        q = select(self.model).where(self.model.company_id == self._company_id)
        if hasattr(self.model, "deleted_at"):
            q = q.where(self.model.deleted_at.is_(None))
        return q

    async def _scalars(self, q) -> list[ModelT]:
        return list((await self._session.execute(q)).scalars().all())

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def find_one(self, **criteria: Any) -> ModelT | None:
        q = self._base_query()
        for col_name, value in criteria.items():
            q = q.where(getattr(self.model, col_name) == value)
        return (await self._session.execute(q.limit(1))).scalars().first()

    async def find_all(self, *, order_by: str = "created_at", order: str = "asc", **criteria: Any) -> list[ModelT]:
        q = self._base_query()
        for col_name, value in criteria.items():
            q = q.where(getattr(self.model, col_name) == value)
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        return await self._scalars(q)

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
        conditions: list[Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination, equality filters and extra SQL conditions."""
        q = self._base_query()

        # Apply simple equality filters
        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)
        for condition in conditions or []:
            q = q.where(condition)

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        q = q.offset(offset).limit(limit)

        return await self._scalars(q), total

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(company_id=self._company_id, **kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        kwargs.pop("company_id", None)
        if "updated_at" not in kwargs and hasattr(self.model, "updated_at"):
            kwargs["updated_at"] = utcnow()

        await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.company_id == self._company_id)
            .values(**kwargs)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        instance = await self.get_by_id(entity_id)
        if instance is not None:
            await self._session.refresh(instance)
        return instance

    async def soft_delete(self, entity_id: str) -> bool:
        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.company_id == self._company_id)
            .where(self.model.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount > 0
