"""Repositories for projects, their requirements and subcontractor assignments."""

from __future__ import annotations

from datetime import date

from sqlalchemy import case, delete, func, select

from riskshield.domain.project import InsuranceRequirement, Project, ProjectSubcontractor
from riskshield.domain.user import User
from riskshield.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def list_with_stats(
        self, *, manager_id: str | None = None, include_archived: bool = False
    ) -> list[tuple[Project, str | None, int, int]]:
        """Return (project, manager_name, subcontractor_count, compliant_count) rows, newest first."""
        counts = (
            select(
                ProjectSubcontractor.project_id.label("project_id"),
                func.count(ProjectSubcontractor.id).label("total"),
                func.sum(case((ProjectSubcontractor.status == "compliant", 1), else_=0)).label("compliant"),
            )
            .where(ProjectSubcontractor.company_id == self._company_id)
            .group_by(ProjectSubcontractor.project_id)
            .subquery()
        )
        q = (
            select(Project, User.name, counts.c.total, counts.c.compliant)
            .outerjoin(User, User.id == Project.project_manager_id)
            .outerjoin(counts, counts.c.project_id == Project.id)
            .where(Project.company_id == self._company_id)
            .where(Project.deleted_at.is_(None))
            .order_by(Project.created_at.desc())
        )
        if manager_id is not None:
            q = q.where(Project.project_manager_id == manager_id)
        if not include_archived:
            q = q.where(Project.status != "completed")
        rows = (await self._session.execute(q)).all()
        return [(p, name, int(total or 0), int(compliant or 0)) for p, name, total, compliant in rows]


class RequirementRepository(BaseRepository[InsuranceRequirement]):
    model = InsuranceRequirement

    async def for_project(self, project_id: str) -> list[InsuranceRequirement]:
        return await self.find_all(project_id=project_id)


class AssignmentRepository(BaseRepository[ProjectSubcontractor]):
    model = ProjectSubcontractor

    async def get_pair(self, project_id: str, subcontractor_id: str) -> ProjectSubcontractor | None:
        return await self.find_one(project_id=project_id, subcontractor_id=subcontractor_id)

    async def for_project(self, project_id: str) -> list[ProjectSubcontractor]:
        return await self.find_all(project_id=project_id)

    async def for_subcontractor(self, subcontractor_id: str) -> list[ProjectSubcontractor]:
        return await self.find_all(subcontractor_id=subcontractor_id)

    async def set_status(self, project_id: str, subcontractor_id: str, status: str) -> ProjectSubcontractor | None:
        pair = await self.get_pair(project_id, subcontractor_id)
        if pair is None:
            return None
        return await self.update(pair.id, status=status)

    async def remove(self, assignment_id: str) -> None:
        await self._session.execute(
            delete(ProjectSubcontractor)
            .where(ProjectSubcontractor.id == assignment_id)
            .where(ProjectSubcontractor.company_id == self._company_id)
        )

    async def status_counts_for_active_projects(self) -> dict[str, int]:
        """Count assignments on the company's active projects, grouped by compliance status."""
        q = (
            select(ProjectSubcontractor.status, func.count(ProjectSubcontractor.id))
            .join(Project, Project.id == ProjectSubcontractor.project_id)
            .where(ProjectSubcontractor.company_id == self._company_id)
            .where(ProjectSubcontractor.deleted_at.is_(None))
            .where(Project.status == "active")
            .where(Project.deleted_at.is_(None))
            .group_by(ProjectSubcontractor.status)
        )
        rows = (await self._session.execute(q)).all()
        return {status: int(count) for status, count in rows}

    async def on_site_at_risk(self, today: date) -> list[ProjectSubcontractor]:
        """Assignments already on site without compliant cover, on projects still running."""
        q = (
            self._base_query()
            .join(Project, Project.id == ProjectSubcontractor.project_id)
            .where(ProjectSubcontractor.on_site_date.is_not(None))
            .where(ProjectSubcontractor.on_site_date <= today)
            .where(ProjectSubcontractor.status.in_(("non_compliant", "pending")))
            .where(Project.status != "completed")
            .where(Project.deleted_at.is_(None))
            .order_by(ProjectSubcontractor.on_site_date)
        )
        return await self._scalars(q)
