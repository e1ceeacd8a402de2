"""Certificate of Currency documents: upload, AI processing, manual review and download.

Processing pipeline (``process``):
  1. Read the stored file and extract certificate data with the AI layer.
  2. Run ``verify_against_requirements`` against the project's requirements.
  3. Store the verification and move the assignment to compliant / non_compliant.
  4. Record the deficiency or confirmation email and notify the project team.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, ExtractionError, NotFoundError, ServiceUnavailableError
from riskshield.domain.document import CocDocument, Verification
from riskshield.domain.mixins import new_id, utcnow
from riskshield.domain.project import Project
from riskshield.domain.subcontractor import Subcontractor
from riskshield.domain.user import User
from riskshield.repositories.document import DocumentRepository, VerificationRepository
from riskshield.repositories.project import AssignmentRepository, RequirementRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.repositories.user import UserRepository
from riskshield.services import extraction, storage
from riskshield.services.audit import AuditService
from riskshield.services.communication import CommunicationService
from riskshield.services.notification import NotificationService
from riskshield.services.project import ProjectService
from riskshield.services.verification import verify_against_requirements

logger = logging.getLogger(__name__)

MANUAL_ACTIONS = {"approve": ("pass", "compliant"), "reject": ("fail", "non_compliant")}


@dataclass
class StoredFile:
    path: Path
    file_name: str
    content_type: str


def file_kind(file_name: str | None) -> str:
    return Path(file_name or "").suffix.lower().lstrip(".")


class DocumentService:
    def __init__(self, session: AsyncSession, actor: User):
        self._session = session
        self._actor = actor
        self._repo = DocumentRepository(session, actor.company_id)
        self._verifications = VerificationRepository(session, actor.company_id)
        self._requirements = RequirementRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._subcontractors = SubcontractorRepository(session, actor.company_id)
        self._users = UserRepository(session, actor.company_id)
        self._projects = ProjectService(session, actor)
        self._audit = AuditService(session, actor.company_id)
        self._notifications = NotificationService(session, actor.company_id)
        self._communications = CommunicationService(session, actor.company_id, actor.id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_document(self, document_id: str) -> tuple[CocDocument, Project]:
        document = await self._repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        project = await self._projects.get_project(document.project_id)
        return document, project

    async def _subcontractor(self, subcontractor_id: str) -> Subcontractor:
        sub = await self._subcontractors.get_by_id(subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", subcontractor_id)
        return sub

    async def list_documents(
        self, *, project_id: str | None = None, subcontractor_id: str | None = None
    ) -> list[dict[str, Any]]:
        criteria = {k: v for k, v in {"project_id": project_id, "subcontractor_id": subcontractor_id}.items() if v}
        documents = await self._repo.find_all(order_by="created_at", order="desc", **criteria)

        items = []
        projects: dict[str, Project | None] = {}
        for document in documents:
            if document.project_id not in projects:
                projects[document.project_id] = await self._projects.find_visible(document.project_id)
            project = projects[document.project_id]
            if project is None:
                continue
            sub = await self._subcontractors.get_by_id(document.subcontractor_id)
            items.append(
                {
                    "document": document,
                    "project_name": project.name,
                    "subcontractor_name": sub.name if sub else None,
                    "verification": await self._verifications.for_document(document.id),
                }
            )
        return items

    async def get_detail(self, document_id: str) -> dict[str, Any]:
        document, project = await self.get_document(document_id)
        sub = await self._subcontractors.get_by_id(document.subcontractor_id)
        return {
            "document": document,
            "project_name": project.name,
            "subcontractor_name": sub.name if sub else None,
            "verification": await self._verifications.for_document(document.id),
        }

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        *,
        contents: bytes,
        file_name: str,
        content_type: str | None,
        project_id: str,
        subcontractor_id: str,
    ) -> dict[str, Any]:
        if not project_id or not subcontractor_id:
            raise BadRequestError("projectId and subcontractorId are required")
        project = await self._projects.get_project(project_id)
        sub = await self._subcontractor(subcontractor_id)
        if await self._assignments.get_pair(project.id, sub.id) is None:
            raise BadRequestError("Subcontractor is not assigned to this project")

        document_id = new_id()
        key = storage.save(self._actor.company_id, document_id, file_kind(file_name), contents)
        document = await self._repo.create(
            id=document_id,
            subcontractor_id=sub.id,
            project_id=project.id,
            file_url=key,
            file_name=storage.safe_filename(file_name),
            file_size=len(contents),
            content_type=content_type,
            source="upload",
            uploaded_by_user_id=self._actor.id,
            processing_status="pending",
        )
        verification = await self._verifications.create(
            coc_document_id=document.id, project_id=project.id, status="review", checks=[], deficiencies=[]
        )
        await self._audit.record(
            "upload", "coc_document", document.id, user_id=self._actor.id,
            details={"file_name": document.file_name, "subcontractor_name": sub.name, "project_name": project.name},
        )

        if settings.ai_enabled:
            return await self.process(document.id)

        await self.notify_team(
            project, "coc_received", "Certificate received",
            f"{sub.name} uploaded a certificate for {project.name}", document.id,
        )
        return {
            "document": document,
            "project_name": project.name,
            "subcontractor_name": sub.name,
            "verification": verification,
        }

    # ------------------------------------------------------------------
    # AI processing
    # ------------------------------------------------------------------

    async def process(self, document_id: str) -> dict[str, Any]:
        if not settings.ai_enabled:
            raise ServiceUnavailableError(
                "AI extraction is not configured. Set OPENAI_API_KEY to enable document processing."
            )
        document, project = await self.get_document(document_id)
        sub = await self._subcontractor(document.subcontractor_id)
        requirements = await self._requirements.for_project(project.id)

        document = await self._repo.update(document.id, processing_status="processing", processing_error=None)
        try:
            extracted = await extraction.extract_certificate(storage.read(document.file_url), file_kind(document.file_name))
        except ExtractionError as exc:
            await self._repo.update(document.id, processing_status="failed", processing_error=exc.message[:1000])
            # Keep the failure visible; the request itself rolls back
            await self._session.commit()
            raise

        result = verify_against_requirements(
            extracted,
            requirements,
            project_end_date=project.end_date,
            project_state=project.state,
            subcontractor_abn=sub.abn,
            today=utcnow().date(),
        )
        fields = {
            "status": result.status,
            "confidence_score": result.confidence_score,
            "extracted_data": extracted,
            "checks": result.checks,
            "deficiencies": result.deficiencies,
        }
        verification = await self._verifications.for_document(document.id)
        if verification is None:
            verification = await self._verifications.create(coc_document_id=document.id, project_id=project.id, **fields)
        else:
            verification = await self._verifications.update(verification.id, **fields)

        document = await self._repo.update(document.id, processing_status="completed", processed_at=utcnow())
        await self._audit.record(
            "ai_process", "coc_document", document.id, user_id=self._actor.id,
            details={
                "verification_status": result.status,
                "confidence_score": result.confidence_score,
                "checks_count": len(result.checks),
                "deficiencies_count": len(result.deficiencies),
            },
        )
        await self._apply_outcome(project, sub, document, verification, result.deficiencies)
        logger.info("Processed document %s: %s", document.id, result.status)
        return {
            "document": document,
            "project_name": project.name,
            "subcontractor_name": sub.name,
            "verification": verification,
        }

    async def _apply_outcome(
        self,
        project: Project,
        sub: Subcontractor,
        document: CocDocument,
        verification: Verification,
        deficiencies: list[dict],
    ) -> None:
        if verification.status == "pass":
            await self._assignments.set_status(project.id, sub.id, "compliant")
            await self._audit.record(
                "auto_approve", "verification", verification.id, user_id=self._actor.id,
                details={"subcontractor_name": sub.name, "project_name": project.name},
            )
            await self._communications.send_confirmation(sub, project, verification)
            await self.notify_team(
                project, "coc_verified", "Certificate verified", f"{sub.name} is compliant for {project.name}", document.id
            )
        elif verification.status == "fail":
            await self._assignments.set_status(project.id, sub.id, "non_compliant")
            if deficiencies:
                await self._communications.send_deficiency_notice(sub, project, verification, deficiencies)
            await self.notify_team(
                project, "coc_failed", "Certificate failed verification",
                f"{sub.name} has {len(deficiencies)} deficiencies on {project.name}", document.id,
            )
        else:
            await self.notify_team(
                project, "coc_received", "Certificate needs review",
                f"{sub.name}'s certificate for {project.name} needs manual review", document.id,
            )

    async def notify_team(self, project: Project, kind: str, title: str, message: str, document_id: str) -> None:
        team = await self._users.team_for_project(project.project_manager_id)
        await self._notifications.notify_many(
            [u.id for u in team], kind, title, message,
            link=f"/dashboard/documents/{document_id}", entity_type="coc_document", entity_id=document_id,
        )

    # ------------------------------------------------------------------
    # Manual review
    # ------------------------------------------------------------------

    async def manual_verify(self, document_id: str, action: str, notes: str | None = None) -> Verification:
        if action not in MANUAL_ACTIONS:
            raise BadRequestError("Action must be 'approve' or 'reject'")
        document, project = await self.get_document(document_id)
        verification = await self._verifications.for_document(document.id)
        if verification is None:
            raise BadRequestError("No verification found for this document")

        status, assignment_status = MANUAL_ACTIONS[action]
        verification = await self._verifications.update(
            verification.id,
            status=status,
            verified_by_user_id=self._actor.id,
            verified_at=utcnow(),
            notes=notes,
        )
        await self._assignments.set_status(project.id, document.subcontractor_id, assignment_status)
        await self._audit.record(
            f"manual_{action}", "verification", verification.id, user_id=self._actor.id,
            details={"document_id": document.id, "notes": notes},
        )
        return verification  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    async def download(self, document_id: str) -> StoredFile:
        document, _ = await self.get_document(document_id)
        return StoredFile(
            path=storage.path_for(document.file_url),
            file_name=storage.safe_filename(document.file_name),
            content_type=document.content_type or "application/octet-stream",
        )
