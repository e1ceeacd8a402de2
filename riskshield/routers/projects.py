"""Project endpoints: CRUD, insurance requirements, subcontractor assignments and the compliance report."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.project import ProjectSubcontractor
from riskshield.domain.user import User
from riskshield.routers.deps import MANAGERS, PROJECT_EDITORS, get_current_user, require_roles
from riskshield.schemas.project import (
    ApplyTemplateRequest,
    AssignmentCreate,
    AssignmentOut,
    ProjectCreate,
    ProjectDetail,
    ProjectListItem,
    ProjectOut,
    ProjectUpdate,
    RequirementIn,
    RequirementOut,
    RequirementUpdate,
)
from riskshield.services.project import ProjectService
from riskshield.services.report import ReportService, render_report, report_filename

router = APIRouter(prefix="/projects", tags=["Projects"])


def _assignment_out(assignment: ProjectSubcontractor) -> AssignmentOut:
    return AssignmentOut(
        id=assignment.id,
        project_id=assignment.project_id,
        subcontractor_id=assignment.subcontractor_id,
        subcontractor_name=assignment.subcontractor.name if assignment.subcontractor else None,
        subcontractor_abn=assignment.subcontractor.abn if assignment.subcontractor else None,
        status=assignment.status,
        on_site_date=assignment.on_site_date,
        created_at=assignment.created_at,
    )


# ------------------------------------------------------------------
# Projects
# ------------------------------------------------------------------

@router.get("", response_model=DataResponse[list[ProjectListItem]])
async def list_projects(
    include_archived: bool = Query(default=False, alias="includeArchived"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    rows = await ProjectService(session, user).list_projects(include_archived=include_archived)
    return {
        "data": [
            ProjectListItem(
                **ProjectOut.model_validate(row["project"]).model_dump(),
                project_manager_name=row["project_manager_name"],
                subcontractor_count=row["subcontractor_count"],
                compliant_count=row["compliant_count"],
            )
            for row in rows
        ]
    }


@router.post("", response_model=DataResponse[ProjectOut], status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    project = await ProjectService(session, user).create_project(body)
    return {"data": ProjectOut.model_validate(project)}


@router.get("/{project_id}", response_model=DataResponse[ProjectDetail])
async def get_project(
    project_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    detail = await ProjectService(session, user).get_detail(project_id)
    return {
        "data": ProjectDetail(
            **ProjectOut.model_validate(detail["project"]).model_dump(),
            project_manager_name=detail["project_manager_name"],
            requirements=[RequirementOut.model_validate(r) for r in detail["requirements"]],
            subcontractors=[_assignment_out(a) for a in detail["subcontractors"]],
        )
    }


@router.put("/{project_id}", response_model=DataResponse[ProjectOut])
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    """Send the ``updatedAt`` you last saw to detect concurrent edits (409 on mismatch)."""
    project = await ProjectService(session, user).update_project(project_id, body)
    return {"data": ProjectOut.model_validate(project)}


@router.delete("/{project_id}", response_model=DataResponse[ProjectOut])
async def archive_project(
    project_id: str,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    project = await ProjectService(session, user).archive_project(project_id)
    return {"data": ProjectOut.model_validate(project)}


@router.get("/{project_id}/report")
async def project_report(
    project_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Compliance report for the project as a PDF download."""
    report = await ReportService(session, user).project_report(project_id)
    return Response(
        content=render_report(report),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report.project.name)}"'},
    )


# ------------------------------------------------------------------
# Insurance requirements
# ------------------------------------------------------------------

@router.get("/{project_id}/requirements", response_model=DataResponse[list[RequirementOut]])
async def list_requirements(
    project_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    requirements = await ProjectService(session, user).list_requirements(project_id)
    return {"data": [RequirementOut.model_validate(r) for r in requirements]}


@router.post(
    "/{project_id}/requirements",
    response_model=DataResponse[RequirementOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_requirement(
    project_id: str,
    body: RequirementIn,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    requirement = await ProjectService(session, user).add_requirement(project_id, body)
    return {"data": RequirementOut.model_validate(requirement)}


@router.post("/{project_id}/requirements/apply-template", response_model=DataResponse[list[RequirementOut]])
async def apply_template(
    project_id: str,
    body: ApplyTemplateRequest,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    requirements = await ProjectService(session, user).apply_template(project_id, body.template_id)
    return {"data": [RequirementOut.model_validate(r) for r in requirements]}


@router.put("/{project_id}/requirements/{requirement_id}", response_model=DataResponse[RequirementOut])
async def update_requirement(
    project_id: str,
    requirement_id: str,
    body: RequirementUpdate,
    user: User = Depends(require_roles(*MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    requirement = await ProjectService(session, user).update_requirement(project_id, requirement_id, body)
    return {"data": RequirementOut.model_validate(requirement)}


# ------------------------------------------------------------------
# Subcontractor assignments
# ------------------------------------------------------------------

@router.get("/{project_id}/subcontractors", response_model=DataResponse[list[AssignmentOut]])
async def list_assignments(
    project_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    assignments = await ProjectService(session, user).list_assignments(project_id)
    return {"data": [_assignment_out(a) for a in assignments]}


@router.post(
    "/{project_id}/subcontractors",
    response_model=DataResponse[AssignmentOut],
    status_code=status.HTTP_201_CREATED,
)
async def assign_subcontractor(
    project_id: str,
    body: AssignmentCreate,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    assignment = await ProjectService(session, user).assign_subcontractor(project_id, body)
    return {"data": _assignment_out(assignment)}


@router.delete("/{project_id}/subcontractors/{subcontractor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_subcontractor(
    project_id: str,
    subcontractor_id: str,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    await ProjectService(session, user).remove_subcontractor(project_id, subcontractor_id)
