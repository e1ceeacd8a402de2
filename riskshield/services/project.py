"""Project business logic: visibility, CRUD, insurance requirements and assignments."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from riskshield.domain.mixins import as_utc, new_id
from riskshield.domain.project import (
    AU_STATES,
    COVERAGE_TYPES,
    PROJECT_STATUSES,
    InsuranceRequirement,
    Project,
    ProjectSubcontractor,
)
from riskshield.domain.user import User
from riskshield.repositories.project import AssignmentRepository, ProjectRepository, RequirementRepository
from riskshield.repositories.subcontractor import SubcontractorRepository
from riskshield.repositories.user import UserRepository
from riskshield.schemas.project import (
    AssignmentCreate,
    ProjectCreate,
    ProjectUpdate,
    RequirementIn,
    RequirementUpdate,
)
from riskshield.services.audit import AuditService
from riskshield.services.auth import forwarding_email_for
from riskshield.services.templates import RequirementTemplateService

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 500
LIMIT_TYPES = ("per_occurrence", "aggregate")
PRINCIPAL_NAMING = ("principal_named", "interested_party")
ALL_PROJECT_ROLES = ("admin", "risk_manager", "read_only")

CONCURRENT_EDIT_MESSAGE = "This project was modified by another user. Please refresh and try again."


def _validate_requirement_fields(fields: dict[str, Any]) -> None:
    if "limit_type" in fields and fields["limit_type"] not in LIMIT_TYPES:
        raise BadRequestError(f"Invalid limit type. Must be one of: {', '.join(LIMIT_TYPES)}")
    naming = fields.get("principal_naming_required")
    if naming is not None and naming not in PRINCIPAL_NAMING:
        raise BadRequestError(f"Invalid principal naming. Must be one of: {', '.join(PRINCIPAL_NAMING)}")


class ProjectService:
    def __init__(self, session: AsyncSession, actor: User):
        self._session = session
        self._actor = actor
        self._repo = ProjectRepository(session, actor.company_id)
        self._requirements = RequirementRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._subcontractors = SubcontractorRepository(session, actor.company_id)
        self._users = UserRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    @property
    def sees_all_projects(self) -> bool:
        return self._actor.role in ALL_PROJECT_ROLES

    def can_access(self, project: Project) -> bool:
        return self.sees_all_projects or project.project_manager_id == self._actor.id

    async def get_project(self, project_id: str) -> Project:
        """Fetch a project the current user may see (404 when missing, 403 when not theirs)."""
        project = await self._repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        if not self.can_access(project):
            raise ForbiddenError("Access denied to this project")
        return project

    async def find_visible(self, project_id: str) -> Project | None:
        project = await self._repo.get_by_id(project_id)
        return project if project is not None and self.can_access(project) else None

    async def _check_manager(self, manager_id: str | None) -> None:
        if manager_id and await self._users.get_by_id(manager_id) is None:
            raise BadRequestError("Project manager not found")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, *, include_archived: bool = False) -> list[dict[str, Any]]:
        rows = await self._repo.list_with_stats(
            manager_id=None if self.sees_all_projects else self._actor.id,
            include_archived=include_archived,
        )
        return [
            {
                "project": project,
                "project_manager_name": manager_name,
                "subcontractor_count": total,
                "compliant_count": compliant,
            }
            for project, manager_name, total, compliant in rows
        ]

    async def create_project(self, data: ProjectCreate) -> Project:
        name = (data.name or "").strip()
        if not name:
            raise BadRequestError("Project name is required")
        if len(name) < NAME_MIN_LENGTH:
            raise BadRequestError(f"Project name must be at least {NAME_MIN_LENGTH} characters")
        if len(name) > NAME_MAX_LENGTH:
            raise BadRequestError(f"Project name must not exceed {NAME_MAX_LENGTH} characters")
        address = data.address.strip() if data.address else None
        if address and len(address) > ADDRESS_MAX_LENGTH:
            raise BadRequestError(f"Address must not exceed {ADDRESS_MAX_LENGTH} characters")
        if data.state and data.state not in AU_STATES:
            raise BadRequestError(f"Invalid state. Must be one of: {', '.join(AU_STATES)}")
        await self._check_manager(data.project_manager_id)

        project_id = new_id()
        project = await self._repo.create(
            id=project_id,
            name=name,
            address=address,
            state=data.state,
            entity_type=data.entity_type or "pty_ltd",
            start_date=data.start_date,
            end_date=data.end_date,
            estimated_value=data.estimated_value,
            project_manager_id=data.project_manager_id,
            forwarding_email=forwarding_email_for(project_id),
            status="active",
        )
        await self._audit.record("create", "project", project.id, user_id=self._actor.id, details={"name": name})
        logger.info("Project created: %s (%s)", project.name, project.id)
        return project

    async def get_detail(self, project_id: str) -> dict[str, Any]:
        project = await self.get_project(project_id)
        manager = await self._users.get_by_id(project.project_manager_id) if project.project_manager_id else None
        return {
            "project": project,
            "project_manager_name": manager.name if manager else None,
            "requirements": await self._requirements.for_project(project.id),
            "subcontractors": await self._assignments.for_project(project.id),
        }

    async def update_project(self, project_id: str, data: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        changes = data.model_dump(exclude_unset=True)
        seen = changes.pop("updated_at", None)
        if seen is not None and as_utc(seen) != as_utc(project.updated_at):
            raise ConflictError(CONCURRENT_EDIT_MESSAGE)

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if len(name) < NAME_MIN_LENGTH:
                raise BadRequestError(f"Project name must be at least {NAME_MIN_LENGTH} characters")
            if len(name) > NAME_MAX_LENGTH:
                raise BadRequestError(f"Project name must not exceed {NAME_MAX_LENGTH} characters")
            changes["name"] = name
        if changes.get("address") and len(changes["address"]) > ADDRESS_MAX_LENGTH:
            raise BadRequestError(f"Address must not exceed {ADDRESS_MAX_LENGTH} characters")
        if changes.get("state") and changes["state"] not in AU_STATES:
            raise BadRequestError(f"Invalid state. Must be one of: {', '.join(AU_STATES)}")
        if "status" in changes and changes["status"] not in PROJECT_STATUSES:
            raise BadRequestError(f"Invalid status. Must be one of: {', '.join(PROJECT_STATUSES)}")
        if "project_manager_id" in changes:
            await self._check_manager(changes["project_manager_id"])

        updated = await self._repo.update(project.id, **changes)
        await self._audit.record(
            "update", "project", project.id, user_id=self._actor.id, details={"fields": sorted(changes)}
        )
        return updated  # type: ignore[return-value]

    async def archive_project(self, project_id: str) -> Project:
        project = await self.get_project(project_id)
        updated = await self._repo.update(project.id, status="completed")
        await self._audit.record("archive", "project", project.id, user_id=self._actor.id, details={"name": project.name})
        return updated  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Insurance requirements
    # ------------------------------------------------------------------

    async def list_requirements(self, project_id: str) -> list[InsuranceRequirement]:
        project = await self.get_project(project_id)
        return await self._requirements.for_project(project.id)

    async def _insert_requirement(self, project: Project, data: RequirementIn) -> InsuranceRequirement:
        if data.coverage_type not in COVERAGE_TYPES:
            raise BadRequestError(f"Invalid coverage type. Must be one of: {', '.join(COVERAGE_TYPES)}")
        fields = data.model_dump()
        _validate_requirement_fields(fields)
        if await self._requirements.find_one(project_id=project.id, coverage_type=data.coverage_type):
            raise ConflictError("This coverage type already exists for this project. Use PUT to update.")
        return await self._requirements.create(project_id=project.id, **fields)

    async def add_requirement(self, project_id: str, data: RequirementIn) -> InsuranceRequirement:
        project = await self.get_project(project_id)
        requirement = await self._insert_requirement(project, data)
        await self._audit.record(
            "create", "insurance_requirement", requirement.id, user_id=self._actor.id,
            details={"project_id": project.id, "coverage_type": requirement.coverage_type},
        )
        return requirement

    async def update_requirement(
        self, project_id: str, requirement_id: str, data: RequirementUpdate
    ) -> InsuranceRequirement:
        project = await self.get_project(project_id)
        requirement = await self._requirements.get_by_id(requirement_id)
        if requirement is None or requirement.project_id != project.id:
            raise NotFoundError("Requirement", requirement_id)
        changes = data.model_dump(exclude_unset=True)
        _validate_requirement_fields(changes)
        updated = await self._requirements.update(requirement.id, **changes)
        await self._audit.record(
            "update", "insurance_requirement", requirement.id, user_id=self._actor.id,
            details={"project_id": project.id, "fields": sorted(changes)},
        )
        return updated  # type: ignore[return-value]

    async def apply_template(self, project_id: str, template_id: str) -> list[InsuranceRequirement]:
        """Add the template's coverage types the project does not already have."""
        if not template_id:
            raise BadRequestError("Template ID is required")
        project = await self.get_project(project_id)
        template = await RequirementTemplateService(self._session, self._actor).get_template(template_id)

        existing = {r.coverage_type for r in await self._requirements.for_project(project.id)}
        added = []
        for raw in template.requirements:
            requirement = RequirementIn.model_validate(raw)
            if requirement.coverage_type in existing:
                continue
            added.append(await self._insert_requirement(project, requirement))
            existing.add(requirement.coverage_type)

        await self._audit.record(
            "apply_template", "project", project.id, user_id=self._actor.id,
            details={"template_id": template.id, "template_name": template.name, "added": len(added)},
        )
        return await self._requirements.for_project(project.id)

    # ------------------------------------------------------------------
    # Subcontractor assignments
    # ------------------------------------------------------------------

    async def list_assignments(self, project_id: str) -> list[ProjectSubcontractor]:
        project = await self.get_project(project_id)
        return await self._assignments.for_project(project.id)

    async def assign_subcontractor(self, project_id: str, data: AssignmentCreate) -> ProjectSubcontractor:
        if not data.subcontractor_id:
            raise BadRequestError("Subcontractor ID is required")
        project = await self.get_project(project_id)
        sub = await self._subcontractors.get_by_id(data.subcontractor_id)
        if sub is None:
            raise NotFoundError("Subcontractor", data.subcontractor_id)
        if await self._assignments.get_pair(project.id, sub.id):
            raise BadRequestError("Subcontractor is already assigned to this project")

        assignment = await self._assignments.create(
            project_id=project.id,
            subcontractor_id=sub.id,
            status="pending",
            on_site_date=data.on_site_date,
        )
        await self._audit.record(
            "assign", "project_subcontractor", assignment.id, user_id=self._actor.id,
            details={"project_id": project.id, "subcontractor_id": sub.id},
        )
        return assignment

    async def remove_subcontractor(self, project_id: str, subcontractor_id: str) -> None:
        project = await self.get_project(project_id)
        assignment = await self._assignments.get_pair(project.id, subcontractor_id)
        if assignment is None:
            raise NotFoundError("Subcontractor assignment")
        await self._assignments.remove(assignment.id)
        await self._audit.record(
            "unassign", "project_subcontractor", assignment.id, user_id=self._actor.id,
            details={"project_id": project.id, "subcontractor_id": subcontractor_id},
        )
