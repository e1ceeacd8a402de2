"""Stop-work risk detection and critical alerts to the project team."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, NotFoundError
from riskshield.domain.mixins import utcnow
from riskshield.domain.user import User
from riskshield.repositories.project import AssignmentRepository
from riskshield.repositories.user import UserRepository
from riskshield.services.audit import AuditService
from riskshield.services.communication import CommunicationService
from riskshield.services.notification import NotificationService
from riskshield.services.project import ProjectService

logger = logging.getLogger(__name__)


def describe_issue(status: str) -> str:
    if status == "pending":
        return "No valid Certificate of Currency on file"
    return "Non-compliant insurance coverage"


class AlertService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._users = UserRepository(session, actor.company_id)
        self._projects = ProjectService(session, actor)
        self._communications = CommunicationService(session, actor.company_id, actor.id)
        self._notifications = NotificationService(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)

    async def stop_work_risks(self) -> list[dict[str, Any]]:
        """Subcontractors already due on site whose cover is missing or non-compliant."""
        today = utcnow().date()
        risks = []
        for assignment in await self._assignments.on_site_at_risk(today):
            project, sub = assignment.project, assignment.subcontractor
            if not self._projects.can_access(project):
                continue
            risks.append(
                {
                    "subcontractor_id": sub.id,
                    "subcontractor_name": sub.name,
                    "subcontractor_abn": sub.abn,
                    "project_id": project.id,
                    "project_name": project.name,
                    "on_site_date": assignment.on_site_date,
                    "status": assignment.status,
                    "issue": describe_issue(assignment.status),
                }
            )
        return risks

    async def send_critical_alert(self, subcontractor_id: str | None, project_id: str | None) -> dict[str, Any]:
        if not subcontractor_id or not project_id:
            raise BadRequestError("subcontractorId and projectId are required")
        assignment = await self._assignments.get_pair(project_id, subcontractor_id)
        if assignment is None:
            raise NotFoundError("Subcontractor on this project")
        project, sub = assignment.project, assignment.subcontractor
        if not self._projects.can_access(project):
            raise NotFoundError("Subcontractor on this project")

        issue = describe_issue(assignment.status)
        on_site = assignment.on_site_date.isoformat() if assignment.on_site_date else "not scheduled"
        subject = f"CRITICAL: Stop-work risk - {sub.name} on {project.name}"
        body = (
            f"{sub.name} (ABN {sub.abn or 'unknown'}) is scheduled on site at {project.name} "
            f"from {on_site} without compliant insurance.\n\n"
            f"Issue: {issue}\n\n"
            "Work should not proceed until a compliant Certificate of Currency is on file."
        )

        team = [u for u in await self._users.team_for_project(project.project_manager_id) if u.role != "risk_manager"]
        recipients = []
        for member in team:
            await self._communications.record_message(
                "critical_alert", sub.id, project.id, recipient_email=member.email, subject=subject, body=body
            )
            recipients.append(member.email)
        await self._notifications.notify_many(
            [u.id for u in team], "stop_work_risk", "Stop-work risk", f"{sub.name} on {project.name}: {issue}",
            link=f"/dashboard/subcontractors/{sub.id}", entity_type="subcontractor", entity_id=sub.id,
        )
        await self._audit.record(
            "send_critical_alert", "critical_alert", sub.id, user_id=self._actor.id,
            details={"project_id": project.id, "issue": issue, "recipients": recipients},
        )
        logger.warning("Critical alert for %s on %s sent to %d recipient(s)", sub.name, project.name, len(recipients))
        return {
            "message": f"Critical alert sent to {len(recipients)} recipient(s)",
            "issue": issue,
            "recipients": recipients,
        }
