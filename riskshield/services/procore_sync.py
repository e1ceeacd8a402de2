"""Procore integration: OAuth connection, project/vendor import and compliance push-back."""

from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import AppException, BadRequestError, NotFoundError
from riskshield.domain.integration import OAuthConnection, ProcoreSyncLog
from riskshield.domain.mixins import new_id, utcnow
from riskshield.domain.project import AU_STATES, COVERAGE_TYPES
from riskshield.domain.user import User
from riskshield.repositories.audit import AuditLogRepository
from riskshield.repositories.document import VerificationRepository
from riskshield.repositories.integration import ProcoreMappingRepository, SyncLogRepository
from riskshield.repositories.project import AssignmentRepository, ProjectRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.schemas.integration import ProjectSyncRequest, VendorSyncRequest
from riskshield.services import procore_client
from riskshield.services.audit import AuditService
from riskshield.services.auth import forwarding_email_for
from riskshield.services.integrations import IntegrationService, callback_url
from riskshield.services.procore_client import ProcoreClient

logger = logging.getLogger(__name__)

PROVIDER = "procore"
NO_ABN_WARNING = "No ABN found - flagged for manual entry"

STATE_NAMES = {
    "NEW SOUTH WALES": "NSW",
    "VICTORIA": "VIC",
    "QUEENSLAND": "QLD",
    "WESTERN AUSTRALIA": "WA",
    "SOUTH AUSTRALIA": "SA",
    "TASMANIA": "TAS",
    "NORTHERN TERRITORY": "NT",
    "AUSTRALIAN CAPITAL TERRITORY": "ACT",
}

PROCORE_INSURANCE_TYPES = {
    "public_liability": "General Liability",
    "products_liability": "General Liability",
    "workers_comp": "Workers Compensation",
    "professional_indemnity": "Professional Liability",
    "motor_vehicle": "Auto Liability",
    "contract_works": "Builders Risk",
}


# ---------------------------------------------------------------------------
# Procore record -> RiskShield fields
# ---------------------------------------------------------------------------

def map_state(code: str | None) -> str | None:
    if not code:
        return None
    value = code.strip().upper()
    if value in AU_STATES:
        return value
    return STATE_NAMES.get(value)


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _join(*parts: Any) -> str | None:
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip()) or None


def map_procore_project(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": (record.get("name") or record.get("display_name") or f"Procore project {record.get('id')}")[:200],
        "address": _join(record.get("address"), record.get("city"), record.get("state_code"), record.get("zip")),
        "state": map_state(record.get("state_code")),
        "status": "active" if record.get("active", True) else "completed",
        "start_date": _parse_date(record.get("estimated_start_date") or record.get("actual_start_date")),
        "end_date": _parse_date(record.get("estimated_completion_date") or record.get("projected_finish_date")),
        "estimated_value": int(record["estimated_value"]) if record.get("estimated_value") else None,
    }


def extract_vendor_abn(record: dict[str, Any]) -> str | None:
    """ABN from the vendor's ``abn`` field, a custom field, or its tax id; only an 11-digit value counts."""
    custom = record.get("custom_fields") or {}
    candidates = [record.get("abn"), custom.get("abn"), custom.get("ABN"), record.get("tax_id")]
    for raw in candidates:
        if raw is None:
            continue
        digits = "".join(ch for ch in str(raw) if ch.isdigit())
        if len(digits) == 11:
            return digits
    return None


def map_procore_vendor(record: dict[str, Any]) -> dict[str, Any]:
    contact = record.get("primary_contact") or {}
    return {
        "name": record.get("name") or f"Procore vendor {record.get('id')}",
        "abn": extract_vendor_abn(record),
        "contact_name": contact.get("name"),
        "contact_email": ((record.get("email_address") or contact.get("email_address") or "").lower() or None),
        "contact_phone": record.get("business_phone") or contact.get("business_phone"),
        "address": _join(record.get("address"), record.get("city"), record.get("state_code"), record.get("zip")),
        "workers_comp_state": map_state(record.get("state_code")),
    }


# ---------------------------------------------------------------------------
# Compliance push helpers
# ---------------------------------------------------------------------------

def _failed(check: dict[str, Any]) -> bool:
    return check.get("status") in ("fail", "failed")


def determine_compliance_status(verification_status: str, checks: list[dict[str, Any]]) -> str:
    if verification_status == "pass":
        return "compliant"
    if verification_status in ("pending", "review"):
        return "pending"
    for check in checks:
        text = f"{check.get('check_type', '')} {check.get('name', '')} {check.get('details', '')}".lower()
        if _failed(check) and "expir" in text:
            return "expired"
    return "non_compliant"


def coverage_summary(checks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Status per coverage type (valid, expired, insufficient or missing); the first failing check wins."""
    summary: dict[str, str] = {}
    for check in checks:
        name = (check.get("check_type") or check.get("name") or "").lower().replace(" ", "_")
        coverage = next((c for c in COVERAGE_TYPES if c in name), None)
        if coverage is None:
            continue
        status = "valid"
        if _failed(check):
            message = (check.get("details") or "").lower()
            if "expir" in message:
                status = "expired"
            elif "insufficient" in message or "below" in message:
                status = "insufficient"
            else:
                status = "missing"
        if summary.get(coverage, "valid") == "valid":
            summary[coverage] = status
    return [{"type": coverage, "status": status} for coverage, status in summary.items()]


def insurance_inputs(vendor_id: int, summary: list[dict[str, Any]]) -> list[dict[str, Any]]:
    statuses = {"valid": "compliant", "expired": "expired", "insufficient": "non_compliant"}
    return [
        {
            "vendor_id": vendor_id,
            "insurance_type": PROCORE_INSURANCE_TYPES.get(item["type"], "General Liability"),
            "status": statuses.get(item["status"], "pending_review"),
            "additional_insured": True,
            "waiver_of_subrogation": True,
        }
        for item in summary
        if item["status"] != "missing"
    ]


def _batch(results: list[dict[str, Any]], started: float) -> dict[str, Any]:
    ops = [r["operation"] for r in results]
    return {
        "total": len(results),
        "created": ops.count("create"),
        "updated": ops.count("update"),
        "skipped": ops.count("skip"),
        "errors": ops.count("error"),
        "results": results,
        "duration_ms": int((time.monotonic() - started) * 1000),
    }


def _item(operation: str, procore_id: int, entity_type: str, message: str, shield_id: str | None = None,
          details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "success": operation != "error",
        "operation": operation,
        "procore_id": procore_id,
        "shield_id": shield_id,
        "entity_type": entity_type,
        "message": message,
        "details": details,
    }


class ProcoreService:
    def __init__(self, session: AsyncSession, actor: User, transport: httpx.AsyncBaseTransport | None = None):
        self._session = session
        self._actor = actor
        self._transport = transport
        self._integrations = IntegrationService(session, actor)
        self._mappings = ProcoreMappingRepository(session, actor.company_id)
        self._logs = SyncLogRepository(session, actor.company_id)
        self._projects = ProjectRepository(session, actor.company_id)
        self._subcontractors = SubcontractorRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._verifications = VerificationRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)
        self._audit_logs = AuditLogRepository(session, actor.company_id)

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    async def connect_url(self) -> str:
        state = await self._integrations.issue_state(PROVIDER)
        redirect_uri = callback_url(PROVIDER)
        if settings.procore_dev_mode:
            # No Procore app configured: short-circuit straight to our own callback.
            return f"{redirect_uri}?{httpx.QueryParams({'code': 'dev_mode_code', 'state': state})}"
        return procore_client.authorize_url(state, redirect_uri)

    async def complete_oauth(self, code: str | None, state: str | None) -> str:
        """Handle the OAuth callback; returns the query flag for the frontend redirect."""
        await self._integrations.consume_state(state, PROVIDER)
        if not code:
            raise BadRequestError("invalid_callback")
        tokens = await procore_client.exchange_code(code, callback_url(PROVIDER), self._transport)
        client = ProcoreClient(0, tokens["access_token"], tokens.get("refresh_token"), transport=self._transport)
        companies = await client.get_companies()
        if not companies:
            raise BadRequestError("no_companies")

        if len(companies) > 1:
            await self._integrations.store_connection(
                PROVIDER, tokens, procore_company_id=None, procore_company_name=None, pending_company_selection=True
            )
            logger.info("Procore tokens stored for company %s, pending company selection", self._actor.company_id)
            return "procore_select_company"

        company = companies[0]
        await self._integrations.store_connection(
            PROVIDER,
            tokens,
            procore_company_id=int(company["id"]),
            procore_company_name=company.get("name"),
            pending_company_selection=False,
        )
        logger.info("Procore connected to company %s (%s)", company.get("name"), company["id"])
        return "procore_connected"

    async def _raw_connection(self) -> OAuthConnection:
        connection = await self._integrations.connections.for_provider(PROVIDER)
        if connection is None:
            raise BadRequestError("Procore is not connected")
        return connection

    async def _connection(self) -> OAuthConnection:
        connection = await self._raw_connection()
        if connection.pending_company_selection or connection.procore_company_id is None:
            raise BadRequestError("Select a Procore company before syncing")
        return connection

    def _client(self, connection: OAuthConnection) -> ProcoreClient:
        async def persist(tokens: dict[str, Any]) -> None:
            await self._integrations.connections.update(
                connection.id,
                access_token=tokens["access_token"],
                refresh_token=tokens.get("refresh_token", connection.refresh_token),
                token_expires_at=utcnow() + timedelta(seconds=int(tokens.get("expires_in") or 7200)),
            )

        return ProcoreClient(
            connection.procore_company_id or 0,
            connection.access_token,
            connection.refresh_token,
            on_token_refresh=persist,
            transport=self._transport,
        )

    async def list_companies(self) -> list[dict[str, Any]]:
        connection = await self._raw_connection()
        companies = await self._client(connection).get_companies()
        return [
            {"id": int(c["id"]), "name": c.get("name") or "", "is_active": c.get("is_active", True)}
            for c in companies
        ]

    async def select_company(self, procore_company_id: int) -> OAuthConnection:
        if not procore_company_id:
            raise BadRequestError("companyId is required")
        connection = await self._raw_connection()
        company = next((c for c in await self.list_companies() if c["id"] == procore_company_id), None)
        if company is None:
            raise NotFoundError("Procore company", str(procore_company_id))
        updated = await self._integrations.connections.update(
            connection.id,
            procore_company_id=company["id"],
            procore_company_name=company["name"],
            pending_company_selection=False,
        )
        await self._audit.record(
            "select_company", "integration", connection.id, user_id=self._actor.id,
            details={"provider": PROVIDER, "procore_company_id": company["id"]},
        )
        return updated  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Remote listings
    # ------------------------------------------------------------------

    async def remote_projects(self, page: int = 1, per_page: int | None = None) -> dict[str, Any]:
        connection = await self._connection()
        result = await self._client(connection).get_projects(page, per_page)
        synced = await self._mappings.procore_ids(connection.procore_company_id, "project")
        items = [
            {
                "id": p["id"],
                "name": p.get("name") or "",
                "display_name": p.get("display_name"),
                "address": p.get("address"),
                "city": p.get("city"),
                "state_code": p.get("state_code"),
                "active": p.get("active", True),
                "synced": p["id"] in synced,
                "shield_id": synced.get(p["id"]),
            }
            for p in result.data
        ]
        return {"items": items, "page": result.page, "per_page": result.per_page, "has_more": result.has_more}

    async def remote_vendors(
        self, page: int = 1, per_page: int | None = None, is_active: bool | None = True
    ) -> dict[str, Any]:
        connection = await self._connection()
        result = await self._client(connection).get_vendors(page, per_page, is_active)
        synced = await self._mappings.procore_ids(connection.procore_company_id, "vendor")
        items = [
            {
                "id": v["id"],
                "name": v.get("name") or "",
                "abn": extract_vendor_abn(v),
                "email_address": v.get("email_address"),
                "business_phone": v.get("business_phone"),
                "is_active": v.get("is_active", True),
                "synced": v["id"] in synced,
                "shield_id": synced.get(v["id"]),
            }
            for v in result.data
        ]
        return {"items": items, "page": result.page, "per_page": result.per_page, "has_more": result.has_more}

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def _start_log(self, connection: OAuthConnection, sync_type: str, total: int) -> ProcoreSyncLog:
        return await self._logs.create(
            procore_company_id=connection.procore_company_id,
            sync_type=sync_type,
            status="started",
            total_items=total,
        )

    async def _finish_log(self, log: ProcoreSyncLog, connection: OAuthConnection, batch: dict[str, Any]) -> None:
        now = utcnow()
        await self._logs.update(
            log.id,
            status="completed",
            created_count=batch["created"],
            updated_count=batch["updated"],
            skipped_count=batch["skipped"],
            error_count=batch["errors"],
            completed_at=now,
            duration_ms=batch["duration_ms"],
            details={"results": batch["results"]},
        )
        await self._integrations.connections.update(connection.id, last_sync_at=now)

    async def _fail_log(self, log: ProcoreSyncLog, exc: Exception, started: float) -> None:
        await self._logs.update(
            log.id,
            status="failed",
            error_message=str(exc)[:1000],
            completed_at=utcnow(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        await self._session.commit()

    async def _upsert_mapping(
        self, connection: OAuthConnection, entity_type: str, procore_id: int, shield_type: str, shield_id: str
    ) -> None:
        fields = {
            "shield_entity_type": shield_type,
            "shield_entity_id": shield_id,
            "sync_direction": "procore_to_shield",
            "sync_status": "active",
            "last_synced_at": utcnow(),
        }
        existing = await self._mappings.by_procore_id(connection.procore_company_id, entity_type, procore_id)
        if existing is None:
            await self._mappings.create(
                procore_company_id=connection.procore_company_id,
                procore_entity_type=entity_type,
                procore_entity_id=procore_id,
                **fields,
            )
        else:
            await self._mappings.update(existing.id, **fields)

    async def sync_projects(self, request: ProjectSyncRequest) -> dict[str, Any]:
        if not request.project_ids:
            raise BadRequestError("projectIds is required")
        connection = await self._connection()
        client = self._client(connection)
        started = time.monotonic()
        log = await self._start_log(connection, "projects", len(request.project_ids))
        try:
            results = [await self._sync_project(connection, client, pid, request.update_existing)
                       for pid in request.project_ids]
        except Exception as exc:
            await self._fail_log(log, exc, started)
            raise
        batch = _batch(results, started)
        await self._finish_log(log, connection, batch)
        await self._audit.record(
            "procore_sync_projects", "integration", log.id, user_id=self._actor.id,
            details={k: batch[k] for k in ("total", "created", "updated", "skipped", "errors")},
        )
        logger.info("Procore project sync for %s: %s", self._actor.company_id,
                    {k: batch[k] for k in ("created", "updated", "skipped", "errors")})
        return batch

    async def _sync_project(
        self, connection: OAuthConnection, client: ProcoreClient, procore_id: int, update_existing: bool
    ) -> dict[str, Any]:
        try:
            record = await client.get_project(procore_id)
            if record is None:
                return _item("error", procore_id, "project", "Project not found in Procore")
            fields = map_procore_project(record)
            mapping = await self._mappings.by_procore_id(connection.procore_company_id, "project", procore_id)
            existing = await self._projects.get_by_id(mapping.shield_entity_id) if mapping else None

            if existing is not None:
                if not update_existing:
                    return _item("skip", procore_id, "project", f"Skipped (already exists): {fields['name']}",
                                 existing.id)
                await self._projects.update(existing.id, **fields)
                await self._upsert_mapping(connection, "project", procore_id, "project", existing.id)
                return _item("update", procore_id, "project", f"Updated project: {fields['name']}", existing.id)

            project_id = new_id()
            await self._projects.create(
                id=project_id, forwarding_email=forwarding_email_for(project_id), **fields
            )
            await self._upsert_mapping(connection, "project", procore_id, "project", project_id)
            return _item("create", procore_id, "project", f"Created project: {fields['name']}", project_id)
        except AppException as exc:
            return _item("error", procore_id, "project", f"Error syncing project {procore_id}: {exc.message}")

    async def sync_vendors(self, request: VendorSyncRequest) -> dict[str, Any]:
        if not request.vendor_ids:
            raise BadRequestError("vendorIds is required")
        if request.project_id and await self._projects.get_by_id(request.project_id) is None:
            raise NotFoundError("Project", request.project_id)
        connection = await self._connection()
        client = self._client(connection)
        started = time.monotonic()
        log = await self._start_log(connection, "vendors", len(request.vendor_ids))
        try:
            results = [await self._sync_vendor(connection, client, vid, request) for vid in request.vendor_ids]
        except Exception as exc:
            await self._fail_log(log, exc, started)
            raise
        batch = _batch(results, started)
        await self._finish_log(log, connection, batch)
        await self._audit.record(
            "procore_sync_vendors", "integration", log.id, user_id=self._actor.id,
            details={k: batch[k] for k in ("total", "created", "updated", "skipped", "errors")},
        )
        return batch

    async def _sync_vendor(
        self, connection: OAuthConnection, client: ProcoreClient, procore_id: int, request: VendorSyncRequest
    ) -> dict[str, Any]:
        try:
            record = await client.get_vendor(procore_id)
            if record is None:
                return _item("error", procore_id, "vendor", "Vendor not found in Procore")
            fields = map_procore_vendor(record)
            name = fields["name"]
            mapping = await self._mappings.by_procore_id(connection.procore_company_id, "vendor", procore_id)
            mapped = await self._subcontractors.get_by_id(mapping.shield_entity_id) if mapping else None

            if mapped is not None:
                if not request.merge_existing:
                    return _item("skip", procore_id, "vendor", f"Skipped (already synced): {name}", mapped.id)
                changes = {k: v for k, v in fields.items() if v}
                if changes.get("abn") and changes["abn"] != mapped.abn:
                    clash = await self._subcontractors.find_by_abn(changes["abn"])
                    if clash is not None and clash.id != mapped.id:
                        changes.pop("abn")
                await self._subcontractors.update(mapped.id, **changes)
                await self._upsert_mapping(connection, "vendor", procore_id, "subcontractor", mapped.id)
                await self._assign(request.project_id, mapped.id)
                return _item("update", procore_id, "vendor", f"Updated subcontractor: {name}", mapped.id)

            if fields["abn"]:
                same_abn = await self._subcontractors.find_by_abn(fields["abn"])
                if same_abn is not None:
                    if request.skip_duplicates or not request.merge_existing:
                        return _item("skip", procore_id, "vendor",
                                     f"Skipped (ABN duplicate): {name} - existing: {same_abn.name}", same_abn.id)
                    changes = {k: v for k, v in fields.items() if v and k not in ("name", "abn")}
                    await self._subcontractors.update(same_abn.id, **changes)
                    await self._upsert_mapping(connection, "vendor", procore_id, "subcontractor", same_abn.id)
                    await self._assign(request.project_id, same_abn.id)
                    return _item("update", procore_id, "vendor", f"Merged with existing subcontractor: {same_abn.name}",
                                 same_abn.id, {"merged_by_abn": True})

            sub = await self._subcontractors.create(**fields)
            await self._upsert_mapping(connection, "vendor", procore_id, "subcontractor", sub.id)
            await self._assign(request.project_id, sub.id)
            return _item("create", procore_id, "vendor", f"Created subcontractor: {name}", sub.id,
                         None if fields["abn"] else {"warning": NO_ABN_WARNING})
        except AppException as exc:
            return _item("error", procore_id, "vendor", f"Error syncing vendor {procore_id}: {exc.message}")

    async def _assign(self, project_id: str | None, subcontractor_id: str) -> None:
        if project_id and await self._assignments.get_pair(project_id, subcontractor_id) is None:
            await self._assignments.create(project_id=project_id, subcontractor_id=subcontractor_id, status="pending")

    # ------------------------------------------------------------------
    # Compliance push
    # ------------------------------------------------------------------

    async def push_compliance(self, subcontractor_id: str) -> dict[str, Any]:
        if not subcontractor_id:
            raise BadRequestError("subcontractorId is required")
        sub = await self._subcontractors.get_by_id(subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", subcontractor_id)
        connection = await self._connection()
        mapping = await self._mappings.by_shield_id("subcontractor", sub.id)
        if mapping is None:
            raise BadRequestError("Subcontractor not synced from Procore - no mapping exists")
        verification = await self._verifications.latest_for_subcontractor(sub.id)
        if verification is None:
            raise NotFoundError("Verification for subcontractor", sub.id)

        checks = verification.checks or []
        status = determine_compliance_status(verification.status, checks)
        summary = coverage_summary(checks)
        verified_at = (verification.verified_at or verification.updated_at or utcnow()).isoformat()
        vendor_id = mapping.procore_entity_id
        client = self._client(connection)

        try:
            sync = await client.sync_vendor_insurances(vendor_id, insurance_inputs(vendor_id, summary))
            await client.update_vendor_custom_fields(
                vendor_id,
                {
                    "shield_compliance_status": status,
                    "shield_last_verified": verified_at,
                    "shield_verification_id": verification.id,
                },
            )
        except AppException as exc:
            await self._audit.record(
                "procore_compliance_push_failed", "subcontractor", sub.id, user_id=self._actor.id,
                details={"procore_vendor_id": vendor_id, "error": exc.message},
            )
            await self._session.commit()
            raise

        await self._audit.record(
            "procore_compliance_push", "subcontractor", sub.id, user_id=self._actor.id,
            details={
                "procore_vendor_id": vendor_id,
                "compliance_status": status,
                "verification_id": verification.id,
                "insurance_sync": sync,
                "dev_mode": client.dev_mode,
            },
        )
        logger.info("Pushed compliance status %r for Procore vendor %s", status, vendor_id)
        return {
            "success": True,
            "subcontractor_id": sub.id,
            "procore_vendor_id": vendor_id,
            "compliance_status": status,
            "insurances_created": sync["created"],
            "message": (
                f'Compliance status "{status}" pushed to Procore '
                f'({sync["created"]} created, {sync["updated"]} updated insurance records)'
            ),
        }

    async def push_history(self, subcontractor_id: str) -> list[Any]:
        if not subcontractor_id:
            raise BadRequestError("subcontractorId query parameter is required")
        if await self._subcontractors.get_by_id(subcontractor_id) is None:
            raise NotFoundError("Subcontractor", subcontractor_id)
        rows = await self._audit_logs.find_all(
            order_by="created_at", order="desc", entity_type="subcontractor", entity_id=subcontractor_id
        )
        return [r for r in rows if r.action.startswith("procore_compliance_push")]

