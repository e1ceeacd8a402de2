"""Outbound compliance communications, email templates and certificate expirations.

Delivery is recorded, not transmitted: every communication is stored with
status ``sent`` and its ``sent_at`` time, and the rendered message is logged.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, NotFoundError
from riskshield.domain.communication import COMMUNICATION_TYPES, Communication
from riskshield.domain.document import Verification
from riskshield.domain.mixins import as_utc, utcnow
from riskshield.domain.project import Project
from riskshield.domain.subcontractor import Subcontractor
from riskshield.repositories.communication import CommunicationRepository, EmailTemplateRepository
from riskshield.repositories.document import DocumentRepository, VerificationRepository
from riskshield.repositories.project import ProjectRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.schemas.communication import EmailTemplateUpdate
from riskshield.services.audit import AuditService
from riskshield.services.email_templates import DEFAULT_EMAIL_TEMPLATES, format_deficiency_list, render
from riskshield.services.verification import days_until, expiry_status, parse_policy_end

logger = logging.getLogger(__name__)

DEFICIENCY_DUE_DAYS = 14
EXPIRATION_STATUSES = ("pass", "review")
FOLLOW_UP_TYPES = ("deficiency", "follow_up")
AWAITING_STATUSES = ("sent", "delivered", "opened")


def recipient_for(sub: Subcontractor) -> tuple[str | None, str]:
    """Broker first, then the subcontractor's own contact."""
    email = sub.broker_email or sub.contact_email
    name = sub.broker_name or sub.contact_name or "Insurance Contact"
    return email, name


def upload_link(subcontractor_id: str, project_id: str) -> str:
    return f"{settings.app_url}/portal/upload?subcontractor={subcontractor_id}&project={project_id}"


class CommunicationService:
    def __init__(self, session: AsyncSession, company_id: str, user_id: str | None = None):
        self._company_id = company_id
        self._user_id = user_id
        self._repo = CommunicationRepository(session, company_id)
        self._templates = EmailTemplateRepository(session, company_id)
        self._verifications = VerificationRepository(session, company_id)
        self._documents = DocumentRepository(session, company_id)
        self._projects = ProjectRepository(session, company_id)
        self._subcontractors = SubcontractorRepository(session, company_id)
        self._audit = AuditService(session, company_id)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def _template(self, template_type: str) -> dict[str, str]:
        stored = await self._templates.for_type(template_type)
        if stored is not None and stored.subject and stored.body:
            return {"subject": stored.subject, "body": stored.body}
        return DEFAULT_EMAIL_TEMPLATES[template_type]

    async def list_templates(self) -> list[dict[str, Any]]:
        """Every template type, with the company's override when it has one."""
        custom = {t.type: t for t in await self._templates.company_templates()}
        items = []
        for template_type, default in DEFAULT_EMAIL_TEMPLATES.items():
            own = custom.get(template_type)
            items.append(
                {
                    "id": own.id if own else None,
                    "type": template_type,
                    "name": (own.name if own and own.name else default["name"]),
                    "subject": own.subject if own else default["subject"],
                    "body": own.body if own else default["body"],
                    "is_default": own is None,
                    "is_custom": own is not None,
                }
            )
        return items

    async def save_template(self, template_type: str, data: EmailTemplateUpdate):
        if template_type not in DEFAULT_EMAIL_TEMPLATES:
            raise BadRequestError(f"Invalid template type. Must be one of: {', '.join(DEFAULT_EMAIL_TEMPLATES)}")
        if not data.subject.strip() or not data.body.strip():
            raise BadRequestError("Subject and body are required")
        template = await self._templates.upsert(
            template_type,
            name=data.name or DEFAULT_EMAIL_TEMPLATES[template_type]["name"],
            subject=data.subject,
            body=data.body,
            is_default=False,
        )
        await self._audit.record(
            "update", "email_template", template.id, user_id=self._user_id, details={"type": template_type}
        )
        return template

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(
        self,
        comm_type: str,
        sub: Subcontractor,
        project: Project | None,
        variables: dict[str, Any],
        *,
        verification_id: str | None = None,
    ) -> Communication | None:
        """Render and record one email. Returns None when the subcontractor has no address."""
        recipient_email, recipient_name = recipient_for(sub)
        if not recipient_email:
            logger.info("No recipient for %s to subcontractor %s; skipped", comm_type, sub.id)
            return None

        project_name = project.name if project else "Unknown Project"
        values = {
            "subcontractor_name": sub.name,
            "subcontractor_abn": sub.abn,
            "project_name": project_name,
            "recipient_name": recipient_name,
            "upload_link": upload_link(sub.id, project.id) if project else settings.app_url,
            **variables,
        }
        template = await self._template(comm_type)
        return await self.record_message(
            comm_type,
            sub.id,
            project.id if project else None,
            recipient_email=recipient_email,
            subject=render(template["subject"], values),
            body=render(template["body"], values),
            verification_id=verification_id,
        )

    async def record_message(
        self,
        comm_type: str,
        subcontractor_id: str,
        project_id: str | None,
        *,
        recipient_email: str,
        subject: str,
        body: str,
        verification_id: str | None = None,
    ) -> Communication:
        comm = await self._repo.create(
            subcontractor_id=subcontractor_id,
            project_id=project_id,
            verification_id=verification_id,
            type=comm_type,
            channel="email",
            recipient_email=recipient_email,
            subject=subject,
            body=body,
            status="sent",
            sent_at=utcnow(),
        )
        logger.info("Email %s sent to %s: %s", comm_type, recipient_email, subject)
        return comm

    async def send_deficiency_notice(
        self, sub: Subcontractor, project: Project, verification: Verification, deficiencies: list[dict]
    ) -> Communication | None:
        due = (utcnow() + timedelta(days=DEFICIENCY_DUE_DAYS)).date()
        comm = await self.send(
            "deficiency",
            sub,
            project,
            {"deficiency_list": format_deficiency_list(deficiencies), "due_date": f"{due.day} {due:%B %Y}"},
            verification_id=verification.id,
        )
        if comm is not None:
            await self._audit.record(
                "deficiency_email_sent", "communication", comm.id, user_id=self._user_id,
                details={
                    "recipient": comm.recipient_email,
                    "subcontractor_name": sub.name,
                    "project_name": project.name,
                    "deficiency_count": len(deficiencies),
                },
            )
        return comm

    async def send_confirmation(
        self, sub: Subcontractor, project: Project, verification: Verification
    ) -> Communication | None:
        comm = await self.send("confirmation", sub, project, {}, verification_id=verification.id)
        if comm is not None:
            await self._audit.record(
                "confirmation_email_sent", "communication", comm.id, user_id=self._user_id,
                details={"recipient": comm.recipient_email, "subcontractor_name": sub.name, "project_name": project.name},
            )
        return comm

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_communications(
        self, *, subcontractor_id: str | None = None, project_id: str | None = None, comm_type: str | None = None
    ) -> list[Communication]:
        if comm_type and comm_type not in COMMUNICATION_TYPES:
            raise BadRequestError(f"Invalid communication type. Must be one of: {', '.join(COMMUNICATION_TYPES)}")
        criteria = {
            k: v
            for k, v in {"subcontractor_id": subcontractor_id, "project_id": project_id, "type": comm_type}.items()
            if v
        }
        return await self._repo.find_all(order_by="created_at", order="desc", **criteria)

    async def resend(self, communication_id: str) -> Communication:
        """Send a follow-up for an earlier communication, re-listing the verification's deficiencies."""
        original = await self._repo.get_by_id(communication_id)
        if original is None:
            raise NotFoundError("Communication", communication_id)
        sub = await self._subcontractors.get_by_id(original.subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", original.subcontractor_id)
        project = await self._projects.get_by_id(original.project_id) if original.project_id else None

        deficiencies: list[dict] = []
        if original.verification_id:
            verification = await self._verifications.get_by_id(original.verification_id)
            deficiencies = (verification.deficiencies or []) if verification else []
        listing = format_deficiency_list(deficiencies) or "Please contact us for details."

        comm = await self.send(
            "follow_up", sub, project, {"deficiency_list": listing}, verification_id=original.verification_id
        )
        if comm is None:
            raise BadRequestError("Subcontractor has no broker or contact email")
        await self._audit.record(
            "resend", "communication", comm.id, user_id=self._user_id,
            details={"original_id": original.id, "type": "follow_up", "subcontractor_name": sub.name},
        )
        return comm

    # ------------------------------------------------------------------
    # Expirations
    # ------------------------------------------------------------------

    async def _expiring_rows(self) -> list[dict[str, Any]]:
        rows = []
        subs: dict[str, Subcontractor | None] = {}
        projects: dict[str, Project | None] = {}
        for verification, document in await self._verifications.with_documents(EXPIRATION_STATUSES):
            expiry = parse_policy_end(verification.extracted_data)
            if expiry is None:
                continue
            if document.subcontractor_id not in subs:
                subs[document.subcontractor_id] = await self._subcontractors.get_by_id(document.subcontractor_id)
            if document.project_id not in projects:
                projects[document.project_id] = await self._projects.get_by_id(document.project_id)
            sub, project = subs[document.subcontractor_id], projects[document.project_id]
            if sub is None or project is None:
                continue
            rows.append({"verification": verification, "document": document, "sub": sub, "project": project, "expiry": expiry})
        return rows

    async def expirations(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        project_id: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        today = today or utcnow().date()
        items = []
        for row in await self._expiring_rows():
            expiry: date = row["expiry"]
            if project_id and row["project"].id != project_id:
                continue
            if start_date and expiry < start_date:
                continue
            if end_date and expiry > end_date:
                continue
            days_left = days_until(expiry, today)
            items.append(
                {
                    "verification_id": row["verification"].id,
                    "document_id": row["document"].id,
                    "subcontractor_id": row["sub"].id,
                    "subcontractor_name": row["sub"].name,
                    "project_id": row["project"].id,
                    "project_name": row["project"].name,
                    "expiry_date": expiry,
                    "days_until_expiry": days_left,
                    "status": expiry_status(days_left),
                }
            )
        items.sort(key=lambda i: i["expiry_date"])
        summary = {"total": len(items), "expired": 0, "expiring_soon": 0, "valid": 0}
        for item in items:
            summary[item["status"]] += 1
        return {"expirations": items, "summary": summary}

    async def send_expiration_reminders(self, verification_ids: list[str], today: date | None = None) -> dict[str, int]:
        if not verification_ids:
            raise BadRequestError("verificationIds is required")
        today = today or utcnow().date()
        wanted = set(verification_ids)
        sent = 0
        for row in await self._expiring_rows():
            verification = row["verification"]
            if verification.id not in wanted:
                continue
            expiry: date = row["expiry"]
            comm = await self.send(
                "expiration_reminder",
                row["sub"],
                row["project"],
                {"expiry_date": expiry.isoformat(), "days_until_expiry": days_until(expiry, today)},
                verification_id=verification.id,
            )
            if comm is not None:
                sent += 1
                await self._audit.record(
                    "expiration_reminder_sent", "communication", comm.id, user_id=self._user_id,
                    details={"verification_id": verification.id, "expiry_date": expiry.isoformat()},
                )
        return {"sent": sent, "skipped": len(wanted) - sent}

    # ------------------------------------------------------------------
    # Follow-ups
    # ------------------------------------------------------------------

    async def _awaiting_response(self, now: datetime) -> list[dict[str, Any]]:
        """Failed verifications whose latest deficiency or follow-up email is still unanswered."""
        latest: dict[str, Communication] = {}
        for comm in await self._repo.awaiting_response(FOLLOW_UP_TYPES, AWAITING_STATUSES):
            latest.setdefault(comm.verification_id, comm)

        rows = []
        for verification_id, comm in latest.items():
            verification = await self._verifications.get_by_id(verification_id)
            if verification is None or verification.status != "fail":
                continue
            sub = await self._subcontractors.get_by_id(comm.subcontractor_id)
            project = await self._projects.get_by_id(comm.project_id) if comm.project_id else None
            if sub is None or project is None or project.status == "completed":
                continue
            sent_at = as_utc(comm.sent_at)
            if await self._documents.received_since(sub.id, project.id, sent_at):
                continue
            rows.append(
                {
                    "communication": comm,
                    "verification": verification,
                    "sub": sub,
                    "project": project,
                    "days_waiting": (now - sent_at).days,
                    "hours_since_last": (now - sent_at).total_seconds() / 3600,
                }
            )
        return rows

    async def trigger_follow_ups(self, min_days: int = 2, max_followups: int = 10) -> dict[str, Any]:
        """Send follow-ups to subcontractors who have not replied to a deficiency notice."""
        now = utcnow()
        pending = await self._awaiting_response(now)
        due = [
            row
            for row in pending
            if row["days_waiting"] >= min_days
            and not (row["communication"].type == "follow_up" and row["hours_since_last"] < 24)
        ]
        due.sort(key=lambda row: row["days_waiting"], reverse=True)

        sent = []
        for row in due[:max_followups]:
            sub, project = row["sub"], row["project"]
            listing = format_deficiency_list(row["verification"].deficiencies or []) or "Please contact us for details."
            comm = await self.send(
                "follow_up", sub, project, {"deficiency_list": listing}, verification_id=row["verification"].id
            )
            if comm is None:
                continue
            await self._audit.record(
                "auto_follow_up", "communication", comm.id, user_id=self._user_id,
                details={
                    "previous_communication_id": row["communication"].id,
                    "days_waiting": row["days_waiting"],
                    "subcontractor_name": sub.name,
                    "project_name": project.name,
                },
            )
            sent.append(
                {
                    "communication_id": comm.id,
                    "subcontractor_name": sub.name,
                    "project_name": project.name,
                    "recipient_email": comm.recipient_email,
                    "days_waiting": row["days_waiting"],
                }
            )
        logger.info("Follow-ups sent: %d of %d awaiting response", len(sent), len(pending))
        return {
            "message": f"Sent {len(sent)} follow-up email(s)",
            "followups_sent": sent,
            "pending_responses_found": len(pending),
        }

    async def follow_up_preview(self, min_days: int = 2) -> dict[str, Any]:
        now = utcnow()
        would_send, not_yet_due = [], []
        for row in await self._awaiting_response(now):
            comm = row["communication"]
            item = {
                "communication_id": comm.id,
                "subcontractor_name": row["sub"].name,
                "project_name": row["project"].name,
                "recipient_email": comm.recipient_email,
                "days_waiting": row["days_waiting"],
                "last_sent_at": comm.sent_at,
            }
            if row["days_waiting"] >= min_days:
                would_send.append(item)
            else:
                remaining = min_days * 24 - row["hours_since_last"]
                not_yet_due.append({**item, "days_until_followup": max(1, math.ceil(remaining / 24))})
        would_send.sort(key=lambda i: i["days_waiting"], reverse=True)
        return {
            "would_get_followup": would_send,
            "not_yet_due": not_yet_due,
            "summary": {
                "would_send": len(would_send),
                "not_yet_due": len(not_yet_due),
                "total": len(would_send) + len(not_yet_due),
            },
        }
