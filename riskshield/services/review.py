"""Manual review queue for certificates the AI could not decide on."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, NotFoundError
from riskshield.domain.communication import Communication
from riskshield.domain.document import CocDocument, Verification
from riskshield.domain.mixins import utcnow
from riskshield.domain.project import Project
from riskshield.domain.subcontractor import Subcontractor
from riskshield.domain.user import User
from riskshield.repositories.document import VerificationRepository
from riskshield.repositories.project import AssignmentRepository, RequirementRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.services.audit import AuditService
from riskshield.services.communication import CommunicationService, recipient_for, upload_link
from riskshield.services.document import DocumentService
from riskshield.services.project import ProjectService

logger = logging.getLogger(__name__)

CLEARER_COPY_MESSAGE = (
    "The certificate we received could not be read clearly. "
    "Please send a legible copy of the full Certificate of Currency."
)


class ReviewService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._verifications = VerificationRepository(session, actor.company_id)
        self._requirements = RequirementRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._subcontractors = SubcontractorRepository(session, actor.company_id)
        self._documents = DocumentService(session, actor)
        self._projects = ProjectService(session, actor)
        self._communications = CommunicationService(session, actor.company_id, actor.id)
        self._audit = AuditService(session, actor.company_id)

    async def queue(self) -> list[dict[str, Any]]:
        """Verifications waiting on a person, oldest first."""
        rows = await self._verifications.with_documents(("review",))
        items = []
        projects: dict[str, Project | None] = {}
        for verification, document in reversed(rows):
            if document.project_id not in projects:
                projects[document.project_id] = await self._projects.find_visible(document.project_id)
            project = projects[document.project_id]
            if project is None:
                continue
            sub = await self._subcontractors.get_by_id(document.subcontractor_id)
            items.append(
                {
                    "id": verification.id,
                    "document_id": document.id,
                    "file_name": document.file_name,
                    "subcontractor_id": document.subcontractor_id,
                    "subcontractor_name": sub.name if sub else None,
                    "project_id": project.id,
                    "project_name": project.name,
                    "confidence_score": verification.confidence_score,
                    "deficiency_count": len(verification.deficiencies or []),
                    "created_at": verification.created_at,
                }
            )
        return items

    async def _load(self, verification_id: str) -> tuple[Verification, CocDocument, Project, Subcontractor]:
        verification = await self._verifications.get_by_id(verification_id)
        if verification is None:
            raise NotFoundError("Verification", verification_id)
        document, project = await self._documents.get_document(verification.coc_document_id)
        sub = await self._subcontractors.get_by_id(document.subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", document.subcontractor_id)
        return verification, document, project, sub

    async def _load_pending(self, verification_id: str) -> tuple[Verification, CocDocument, Project, Subcontractor]:
        loaded = await self._load(verification_id)
        if loaded[0].status != "review":
            raise BadRequestError(f"Verification is not awaiting review (status: {loaded[0].status})")
        return loaded

    async def detail(self, verification_id: str) -> dict[str, Any]:
        verification, document, project, sub = await self._load(verification_id)
        return {
            "verification": verification,
            "document": document,
            "subcontractor": sub,
            "project": project,
            "requirements": await self._requirements.for_project(project.id),
        }

    async def approve(self, verification_id: str, notes: str | None = None) -> Verification:
        verification, document, project, sub = await self._load_pending(verification_id)
        verification = await self._verifications.update(
            verification.id, status="pass", verified_by_user_id=self._actor.id, verified_at=utcnow(), notes=notes
        )
        await self._assignments.set_status(project.id, sub.id, "compliant")
        await self._communications.send_confirmation(sub, project, verification)
        await self._documents.notify_team(
            project, "coc_verified", "Certificate approved",
            f"{sub.name}'s certificate for {project.name} was approved on review", document.id,
        )
        await self._audit.record(
            "review_approve", "verification", verification.id, user_id=self._actor.id,
            details={"document_id": document.id, "subcontractor_name": sub.name, "project_name": project.name},
        )
        logger.info("Verification %s approved by %s", verification.id, self._actor.id)
        return verification

    async def reject(
        self, verification_id: str, reason: str | None = None, deficiencies: list[dict] | None = None
    ) -> Verification:
        verification, document, project, sub = await self._load_pending(verification_id)
        found = deficiencies or verification.deficiencies or []
        if not found:
            if not reason:
                raise BadRequestError("A reason or at least one deficiency is required to reject")
            found = [
                {"type": "manual_rejection", "severity": "major", "description": reason,
                 "required_value": None, "actual_value": None}
            ]

        verification = await self._verifications.update(
            verification.id,
            status="fail",
            deficiencies=found,
            verified_by_user_id=self._actor.id,
            verified_at=utcnow(),
            notes=reason,
        )
        await self._assignments.set_status(project.id, sub.id, "non_compliant")
        await self._communications.send_deficiency_notice(sub, project, verification, found)
        await self._documents.notify_team(
            project, "coc_failed", "Certificate rejected",
            f"{sub.name}'s certificate for {project.name} was rejected on review", document.id,
        )
        await self._audit.record(
            "review_reject", "verification", verification.id, user_id=self._actor.id,
            details={"document_id": document.id, "reason": reason, "deficiency_count": len(found)},
        )
        return verification

    async def request_clearer_copy(self, verification_id: str, message: str | None = None) -> Communication:
        verification, document, project, sub = await self._load_pending(verification_id)
        recipient_email, recipient_name = recipient_for(sub)
        if not recipient_email:
            raise BadRequestError("Subcontractor has no broker or contact email")

        body = (
            f"Dear {recipient_name},\n\n"
            f"{message or CLEARER_COPY_MESSAGE}\n\n"
            f"Subcontractor: {sub.name}\nProject: {project.name}\n\n"
            f"Upload a new copy here: {upload_link(sub.id, project.id)}\n"
        )
        comm = await self._communications.record_message(
            "follow_up",
            sub.id,
            project.id,
            recipient_email=recipient_email,
            subject=f"We need a clearer copy of your insurance certificate - {project.name}",
            body=body,
            verification_id=verification.id,
        )
        await self._audit.record(
            "request_clearer_copy", "verification", verification.id, user_id=self._actor.id,
            details={"document_id": document.id, "communication_id": comm.id, "recipient": recipient_email},
        )
        return comm
