"""Subcontractor service: CRUD plus spreadsheet bulk import."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ConflictError, NotFoundError
from riskshield.core.pagination import PaginationParams
from riskshield.domain.subcontractor import Subcontractor
from riskshield.domain.user import User
from riskshield.repositories.document import VerificationRepository
from riskshield.repositories.project import AssignmentRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.schemas.subcontractor import (
    ImportRequest,
    ImportRow,
    SubcontractorCreate,
    SubcontractorUpdate,
)
from riskshield.services.abn import clean_abn, is_valid_abn_format, validate_abn, validate_abn_checksum
from riskshield.services.audit import AuditService

logger = logging.getLogger(__name__)

_EMAIL_FIELDS = ("contact_email", "broker_email")


def _normalise(fields: dict[str, Any]) -> dict[str, Any]:
    """Trim strings, blank -> None, lower-case email addresses."""
    out: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, str):
            value = value.strip() or None
            if value and key in _EMAIL_FIELDS:
                value = value.lower()
        out[key] = value
    return out


class SubcontractorService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._repo = SubcontractorRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._verifications = VerificationRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_subcontractors(
        self, pagination: PaginationParams, *, search: str | None = None, trade: str | None = None
    ) -> tuple[list[Subcontractor], int]:
        conditions = [self._repo.search_condition(search)] if search and search.strip() else None
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"trade": trade} if trade else None,
            conditions=conditions,
        )

    async def get_subcontractor(self, subcontractor_id: str) -> Subcontractor:
        sub = await self._repo.get_by_id(subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", subcontractor_id)
        return sub

    async def get_detail(self, subcontractor_id: str) -> dict[str, Any]:
        sub = await self.get_subcontractor(subcontractor_id)
        assignments = await self._assignments.for_subcontractor(sub.id)
        latest = await self._verifications.latest_for_subcontractor(sub.id)
        return {
            "subcontractor": sub,
            "projects": [
                {
                    "project_id": a.project_id,
                    "project_name": a.project.name,
                    "project_status": a.project.status,
                    "status": a.status,
                    "on_site_date": a.on_site_date,
                }
                for a in assignments
            ],
            "latest_verification_status": latest.status if latest else None,
        }

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create_subcontractor(self, data: SubcontractorCreate) -> Subcontractor:
        if not data.name.strip():
            raise BadRequestError("Company name is required")
        abn, error = validate_abn(data.abn)
        if error:
            raise BadRequestError(error)

        fields = _normalise(data.model_dump(exclude={"abn"}))
        existing = await self._repo.find_by_abn(abn, include_deleted=True)
        if existing is not None and existing.deleted_at is None:
            raise ConflictError(f"A subcontractor with ABN {abn} already exists ({existing.name})")

        if existing is not None:
            # Re-adding a previously removed subcontractor restores the row
            sub = await self._repo.update(existing.id, deleted_at=None, **fields)
        else:
            sub = await self._repo.create(abn=abn, **fields)

        await self._audit.record(
            "create", "subcontractor", sub.id, user_id=self._actor.id, details={"name": sub.name, "abn": abn}
        )
        return sub

    async def update_subcontractor(self, subcontractor_id: str, data: SubcontractorUpdate) -> Subcontractor:
        sub = await self.get_subcontractor(subcontractor_id)
        changes = _normalise(data.model_dump(exclude_unset=True))
        if "name" in changes and not changes["name"]:
            raise BadRequestError("Company name is required")
        if "abn" in changes:
            abn, error = validate_abn(changes["abn"])
            if error:
                raise BadRequestError(error)
            other = await self._repo.find_by_abn(abn, include_deleted=True)
            if other is not None and other.id != sub.id:
                raise ConflictError(f"A subcontractor with ABN {abn} already exists ({other.name})")
            changes["abn"] = abn

        updated = await self._repo.update(sub.id, **changes)
        await self._audit.record(
            "update", "subcontractor", sub.id, user_id=self._actor.id, details={"fields": sorted(changes)}
        )
        return updated  # type: ignore[return-value]

    async def delete_subcontractor(self, subcontractor_id: str) -> None:
        sub = await self.get_subcontractor(subcontractor_id)
        await self._repo.soft_delete(sub.id)
        await self._audit.record("delete", "subcontractor", sub.id, user_id=self._actor.id, details={"name": sub.name})

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------

    async def _merge(self, existing: Subcontractor, row: ImportRow) -> None:
        """Incoming non-empty values overwrite; blanks keep what is stored."""
        incoming = _normalise(row.model_dump(exclude={"abn"}))
        changes = {k: v for k, v in incoming.items() if v is not None}
        if changes:
            await self._repo.update(existing.id, **changes)

    async def bulk_import(self, request: ImportRequest) -> dict[str, Any]:
        rows = request.subcontractors
        if not rows:
            raise BadRequestError("No subcontractors provided for import")
        merge_ids = set(request.merge_ids)

        created: list[str] = []
        merged: list[str] = []
        errors: list[str] = []
        duplicates: list[dict[str, Any]] = []

        for index, row in enumerate(rows):
            row_num = index + 1
            name = (row.name or "").strip()
            if not name:
                errors.append(f"Row {row_num}: Company name is required")
                continue
            if not (row.abn or "").strip():
                errors.append(f"Row {row_num}: ABN is required")
                continue

            abn = clean_abn(row.abn)
            if not is_valid_abn_format(abn):
                errors.append(f"Row {row_num} ({name}): ABN must be exactly 11 digits")
                continue
            if not validate_abn_checksum(abn):
                errors.append(f"Row {row_num} ({name}): Invalid ABN checksum")
                continue

            existing = await self._repo.find_by_abn(abn)
            if existing is not None:
                if existing.id in merge_ids:
                    await self._merge(existing, row)
                    merged.append(existing.id)
                else:
                    duplicates.append(
                        {
                            "row_num": row_num,
                            "import_data": row,
                            "existing_id": existing.id,
                            "existing_name": existing.name,
                            "cleaned_abn": abn,
                        }
                    )
                continue

            revived = await self._repo.find_by_abn(abn, include_deleted=True)
            fields = _normalise(row.model_dump(exclude={"abn"}))
            if revived is not None:
                await self._repo.update(revived.id, deleted_at=None, **fields)
                created.append(revived.id)
            else:
                sub = await self._repo.create(abn=abn, **fields)
                created.append(sub.id)

        if created or merged:
            await self._audit.record(
                "bulk_import",
                "subcontractor",
                (created or merged)[0],
                user_id=self._actor.id,
                details={
                    "created": len(created),
                    "merged": len(merged),
                    "total": len(rows),
                    "errors": len(errors),
                    "duplicates": len(duplicates),
                },
            )
        logger.info(
            "Bulk import company=%s created=%d merged=%d errors=%d duplicates=%d",
            self._actor.company_id, len(created), len(merged), len(errors), len(duplicates),
        )
        return {
            "success": True,
            "created": len(created),
            "merged": len(merged),
            "total": len(rows),
            "errors": errors or None,
            "duplicates": duplicates or None,
        }
