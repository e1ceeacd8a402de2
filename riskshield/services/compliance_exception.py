"""Compliance exceptions: documented, approved departures from a project's requirements."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from riskshield.core.security import verify_password
from riskshield.domain.compliance_exception import EXPIRATION_TYPES, RISK_LEVELS, ComplianceException
from riskshield.domain.mixins import utcnow
from riskshield.domain.user import User
from riskshield.repositories.compliance_exception import ExceptionRepository
from riskshield.repositories.project import AssignmentRepository
from riskshield.repositories.user import UserRepository
from riskshield.schemas.compliance_exception import ExceptionCreate
from riskshield.services.audit import AuditService
from riskshield.services.notification import NotificationService

logger = logging.getLogger(__name__)

AUTO_APPROVERS = ("admin", "risk_manager")
EXCEPTION_STATUSES = ("pending_approval", "active", "rejected", "expired", "resolved")


class ExceptionService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._repo = ExceptionRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._users = UserRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)
        self._notifications = NotificationService(session, actor.company_id)

    async def list_exceptions(self, status: str | None = None) -> list[ComplianceException]:
        if status and status not in EXCEPTION_STATUSES:
            raise BadRequestError(f"Invalid status. Must be one of: {', '.join(EXCEPTION_STATUSES)}")
        criteria = {"status": status} if status else {}
        items = await self._repo.find_all(order_by="created_at", order="desc", **criteria)
        if self._actor.role in ("admin", "risk_manager", "read_only"):
            return items
        visible = []
        for item in items:
            assignment = await self._assignments.get_by_id(item.project_subcontractor_id)
            if assignment is not None and assignment.project.project_manager_id == self._actor.id:
                visible.append(item)
        return visible

    async def create_exception(self, data: ExceptionCreate) -> ComplianceException:
        if not data.project_subcontractor_id or not data.issue_summary.strip() or not data.reason.strip():
            raise BadRequestError("Project subcontractor ID, issue summary, and reason are required")
        expiration_type = data.expiration_type or "until_resolved"
        if expiration_type not in EXPIRATION_TYPES:
            raise BadRequestError(f"Invalid expiration type. Must be one of: {', '.join(EXPIRATION_TYPES)}")
        risk_level = data.risk_level or "medium"
        if risk_level not in RISK_LEVELS:
            raise BadRequestError(f"Invalid risk level. Must be one of: {', '.join(RISK_LEVELS)}")
        if expiration_type in ("fixed_duration", "specific_date") and data.expires_at is None:
            raise BadRequestError("An expiry date is required for this expiration type")
        if expiration_type == "permanent":
            if not data.password:
                raise BadRequestError("Password confirmation is required for permanent exceptions")
            if not verify_password(data.password, self._actor.password_hash):
                raise UnauthorizedError("Incorrect password")

        assignment = await self._assignments.get_by_id(data.project_subcontractor_id)
        if assignment is None:
            raise NotFoundError("Project subcontractor", data.project_subcontractor_id)
        if self._actor.role == "project_manager" and assignment.project.project_manager_id != self._actor.id:
            raise ForbiddenError("You can only create exceptions for your own projects")

        auto_approved = self._actor.role in AUTO_APPROVERS
        now = utcnow()
        exception = await self._repo.create(
            project_subcontractor_id=assignment.id,
            verification_id=data.verification_id,
            issue_summary=data.issue_summary.strip(),
            reason=data.reason.strip(),
            risk_level=risk_level,
            created_by_user_id=self._actor.id,
            approved_by_user_id=self._actor.id if auto_approved else None,
            approved_at=now if auto_approved else None,
            expires_at=None if expiration_type in ("until_resolved", "permanent") else data.expires_at,
            expiration_type=expiration_type,
            status="active" if auto_approved else "pending_approval",
        )
        if auto_approved:
            await self._assignments.update(assignment.id, status="exception")

        await self._audit.record(
            "create", "exception", exception.id, user_id=self._actor.id,
            details={
                "project_subcontractor_id": assignment.id,
                "risk_level": risk_level,
                "expiration_type": expiration_type,
                "auto_approved": auto_approved,
            },
        )
        team = await self._users.team_for_project(assignment.project.project_manager_id)
        await self._notifications.notify_many(
            [u.id for u in team if u.id != self._actor.id],
            "exception_created",
            "Compliance exception created",
            f"{assignment.subcontractor.name} on {assignment.project.name}: {exception.issue_summary}",
            link=f"/dashboard/projects/{assignment.project_id}",
            entity_type="exception",
            entity_id=exception.id,
        )
        return exception

    async def review(self, exception_id: str, action: str) -> ComplianceException:
        if action not in ("approve", "reject"):
            raise BadRequestError("Action must be 'approve' or 'reject'")
        exception = await self._repo.get_by_id(exception_id)
        if exception is None:
            raise NotFoundError("Exception", exception_id)
        if exception.status != "pending_approval":
            raise BadRequestError("Only pending exceptions can be approved or rejected")

        changes: dict[str, Any]
        if action == "approve":
            changes = {"status": "active", "approved_by_user_id": self._actor.id, "approved_at": utcnow()}
        else:
            changes = {"status": "rejected"}
        updated = await self._repo.update(exception.id, **changes)

        if action == "approve":
            assignment = await self._assignments.update(exception.project_subcontractor_id, status="exception")
            if assignment is not None:
                await self._notifications.notify_many(
                    [exception.created_by_user_id],
                    "exception_approved",
                    "Compliance exception approved",
                    f"Exception for {assignment.subcontractor.name} on {assignment.project.name} was approved",
                    entity_type="exception",
                    entity_id=exception.id,
                )
        await self._audit.record(action, "exception", exception.id, user_id=self._actor.id)
        return updated  # type: ignore[return-value]
