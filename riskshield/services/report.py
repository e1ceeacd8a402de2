"""Project compliance report, rendered to PDF with PyMuPDF.

``ReportService.project_report`` gathers the numbers and ``render_report``
draws them onto A4 pages with the built-in Helvetica fonts.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import fitz
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.domain.mixins import utcnow
from riskshield.domain.project import Project
from riskshield.domain.user import User
from riskshield.repositories.document import VerificationRepository
from riskshield.repositories.project import AssignmentRepository, RequirementRepository
from riskshield.repositories.user import UserRepository
from riskshield.services.project import ProjectService
from riskshield.services.verification import format_coverage_type, format_money

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 50
LINE = 15

_STATUS_LABELS = {
    "compliant": "Compliant",
    "non_compliant": "Non-compliant",
    "pending": "Pending",
    "exception": "Exception",
}


def compliance_rate(compliant: int, total: int) -> int:
    """Whole-number percentage, halves rounded up."""
    if total == 0:
        return 0
    return math.floor(100 * compliant / total + 0.5)


def report_filename(project_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", project_name) + "_Compliance_Report.pdf"


@dataclass
class ProjectReport:
    project: Project
    manager_name: str | None
    generated_at: datetime
    requirements: list[dict[str, str]] = field(default_factory=list)
    subcontractors: list[dict[str, Any]] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)


class ReportService:
    def __init__(self, session: AsyncSession, actor: User):
        self._projects = ProjectService(session, actor)
        self._requirements = RequirementRepository(session, actor.company_id)
        self._assignments = AssignmentRepository(session, actor.company_id)
        self._verifications = VerificationRepository(session, actor.company_id)
        self._users = UserRepository(session, actor.company_id)

    async def project_report(self, project_id: str) -> ProjectReport:
        project = await self._projects.get_project(project_id)
        manager = await self._users.get_by_id(project.project_manager_id) if project.project_manager_id else None

        requirements = [
            {
                "coverage": format_coverage_type(r.coverage_type),
                "minimum": format_money(r.minimum_limit) if r.minimum_limit else "-",
                "basis": r.limit_type.replace("_", " "),
                "excess": format_money(r.maximum_excess) if r.maximum_excess else "-",
            }
            for r in await self._requirements.for_project(project.id)
        ]

        latest: dict[str, str] = {}
        with_deficiencies: Counter[str] = Counter()
        # Newest first, so the first verification seen per subcontractor is its latest
        for verification, document in await self._verifications.for_project(project.id):
            latest.setdefault(document.subcontractor_id, verification.status)
            if verification.deficiencies:
                with_deficiencies[document.subcontractor_id] += 1

        subcontractors = []
        counts: Counter[str] = Counter()
        for assignment in sorted(await self._assignments.for_project(project.id), key=lambda a: a.subcontractor.name):
            sub = assignment.subcontractor
            counts[assignment.status] += 1
            subcontractors.append(
                {
                    "name": sub.name,
                    "abn": sub.abn or "-",
                    "status": _STATUS_LABELS.get(assignment.status, assignment.status),
                    "latest_verification": latest.get(sub.id, "none"),
                    "deficiency_count": with_deficiencies[sub.id],
                }
            )

        total = len(subcontractors)
        summary = {
            "total": total,
            "compliant": counts["compliant"],
            "non_compliant": counts["non_compliant"],
            "pending": counts["pending"],
            "exception": counts["exception"],
            "compliance_rate": compliance_rate(counts["compliant"], total),
        }
        return ProjectReport(
            project=project,
            manager_name=manager.name if manager else None,
            generated_at=utcnow(),
            requirements=requirements,
            subcontractors=subcontractors,
            summary=summary,
        )


class _PageWriter:
    """Writes lines top to bottom, starting a new page when the current one fills."""

    def __init__(self, doc: fitz.Document):
        self._doc = doc
        self._page: fitz.Page | None = None
        self.y = 0.0
        self.new_page()

    def new_page(self) -> None:
        self._page = self._doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = MARGIN

    def _room(self, height: float) -> None:
        if self.y + height > PAGE_HEIGHT - MARGIN:
            self.new_page()

    def text(self, value: str, *, size: float = 10, bold: bool = False, x: float = MARGIN) -> None:
        self._room(LINE)
        self._page.insert_text((x, self.y), value, fontsize=size, fontname="hebo" if bold else "helv")
        self.y += size + 5

    def row(self, cells: list[str], columns: list[float], *, bold: bool = False) -> None:
        self._room(LINE)
        for value, x in zip(cells, columns):
            self._page.insert_text((x, self.y), value, fontsize=9, fontname="hebo" if bold else "helv")
        self.y += LINE

    def rule(self) -> None:
        self._room(LINE)
        self._page.draw_line((MARGIN, self.y - 8), (PAGE_WIDTH - MARGIN, self.y - 8), color=(0.6, 0.6, 0.6), width=0.5)
        self.y += 4

    def gap(self, height: float = 10) -> None:
        self.y += height


def _date(value: date | None) -> str:
    return value.strftime("%d %b %Y") if value else "-"


def render_report(report: ProjectReport) -> bytes:
    project = report.project
    doc = fitz.open()
    out = _PageWriter(doc)

    out.text("Insurance Compliance Report", size=18, bold=True)
    out.text(project.name, size=14)
    out.text(f"Generated {report.generated_at:%d %b %Y %H:%M} UTC", size=8)
    out.gap()

    out.text("Project", size=12, bold=True)
    out.rule()
    for label, value in (
        ("Address", project.address or "-"),
        ("State", project.state or "-"),
        ("Status", project.status.replace("_", " ").title()),
        ("Start date", _date(project.start_date)),
        ("End date", _date(project.end_date)),
        ("Project manager", report.manager_name or "-"),
        ("Estimated value", format_money(project.estimated_value) if project.estimated_value else "-"),
    ):
        out.row([label, value], [MARGIN, MARGIN + 120])
    out.gap()

    out.text("Insurance Requirements", size=12, bold=True)
    out.rule()
    columns = [MARGIN, MARGIN + 170, MARGIN + 290, MARGIN + 400]
    if report.requirements:
        out.row(["Coverage", "Minimum limit", "Basis", "Maximum excess"], columns, bold=True)
        for r in report.requirements:
            out.row([r["coverage"], r["minimum"], r["basis"], r["excess"]], columns)
    else:
        out.text("No insurance requirements configured.", size=9)
    out.gap()

    summary = report.summary
    out.text("Compliance Summary", size=12, bold=True)
    out.rule()
    out.row(["Subcontractors", str(summary["total"])], [MARGIN, MARGIN + 120])
    out.row(["Compliant", str(summary["compliant"])], [MARGIN, MARGIN + 120])
    out.row(["Non-compliant", str(summary["non_compliant"])], [MARGIN, MARGIN + 120])
    out.row(["Pending", str(summary["pending"])], [MARGIN, MARGIN + 120])
    out.row(["Exception", str(summary["exception"])], [MARGIN, MARGIN + 120])
    out.row(["Compliance rate", f"{summary['compliance_rate']}%"], [MARGIN, MARGIN + 120], bold=True)
    out.gap()

    out.text("Subcontractors", size=12, bold=True)
    out.rule()
    columns = [MARGIN, MARGIN + 180, MARGIN + 270, MARGIN + 360, MARGIN + 440]
    if report.subcontractors:
        out.row(["Name", "ABN", "Status", "Last check", "Deficient"], columns, bold=True)
        for s in report.subcontractors:
            out.row([s["name"][:34], s["abn"], s["status"], s["latest_verification"], str(s["deficiency_count"])], columns)
    else:
        out.text("No subcontractors assigned.", size=9)

    data = doc.tobytes()
    doc.close()
    logger.info("Rendered compliance report for project %s (%d bytes)", project.id, len(data))
    return data
