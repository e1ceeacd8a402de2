"""Compliance snapshots and the compliance-rate history used by the dashboard trend chart.

A snapshot is the count of subcontractor/project assignments on a company's
active projects, by compliance status, for one calendar day. When a company
has too little recorded history to draw a trend, a deterministic
pseudo-history is synthesised around today's ratio.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.domain.mixins import utcnow
from riskshield.domain.snapshot import ComplianceSnapshot
from riskshield.repositories.project import AssignmentRepository
from riskshield.repositories.snapshot import SnapshotRepository

logger = logging.getLogger(__name__)

MIN_HISTORY_POINTS = 7


@dataclass(frozen=True)
class StatusCounts:
    total: int = 0
    compliant: int = 0
    non_compliant: int = 0
    pending: int = 0
    exception: int = 0

    @classmethod
    def from_statuses(cls, by_status: dict[str, int]) -> "StatusCounts":
        return cls(
            total=sum(by_status.values()),
            compliant=by_status.get("compliant", 0),
            non_compliant=by_status.get("non_compliant", 0),
            pending=by_status.get("pending", 0),
            exception=by_status.get("exception", 0),
        )


@dataclass(frozen=True)
class SnapshotPoint:
    snapshot_date: date
    total: int
    compliant: int
    non_compliant: int
    pending: int
    exception: int
    compliance_rate: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def compliance_rate(compliant: int, exception: int, total: int) -> int:
    """Percentage of assignments that are compliant or covered by an exception."""
    if total <= 0:
        return 0
    return round_half_up((compliant + exception) / total * 100)


def synthesize_history(
    current: StatusCounts,
    days: int,
    today: date,
    existing_dates: set[date] | frozenset[date] = frozenset(),
) -> list[SnapshotPoint]:
    """Build one point per missing day in ``[today - days, today]``, oldest first.

    The compliant count ramps from 70% towards 100% of today's
    compliant+exception base with a small sinusoidal wobble. Every count is
    kept inside ``[0, total]`` and the rate inside ``[0, 100]``.
    """
    if days < 1:
        raise ValueError("days must be at least 1")

    total = current.total or 1
    base = current.compliant + current.exception
    exception = _clamp(current.exception, 0, total)

    points: list[SnapshotPoint] = []
    for i in range(days, -1, -1):
        day = today - timedelta(days=i)
        if day in existing_dates:
            continue

        day_factor = (days - i) / days
        variation = math.sin(i * 0.5) * 0.1

        compliant = _clamp(round_half_up(base * (0.7 + day_factor * 0.3 + variation)), 0, total)
        remaining = total - compliant
        non_compliant = max(0, round_half_up(remaining * (1 - day_factor * 0.5)))
        pending = max(0, remaining - non_compliant)
        rate = _clamp(round_half_up((compliant + current.exception) / total * 100), 0, 100)

        points.append(
            SnapshotPoint(
                snapshot_date=day,
                total=total,
                compliant=compliant,
                non_compliant=non_compliant,
                pending=pending,
                exception=exception,
                compliance_rate=rate,
            )
        )
    return points


def snapshot_to_history_item(snapshot: ComplianceSnapshot) -> dict:
    return {
        "date": snapshot.snapshot_date.isoformat(),
        "total": snapshot.total_subcontractors,
        "compliant": snapshot.compliant,
        "non_compliant": snapshot.non_compliant,
        "pending": snapshot.pending,
        "exception": snapshot.exception,
        "compliance_rate": snapshot.compliance_rate,
    }


class ComplianceService:
    def __init__(self, session: AsyncSession, company_id: str):
        self._company_id = company_id
        self._snapshots = SnapshotRepository(session, company_id)
        self._assignments = AssignmentRepository(session, company_id)

    async def current_counts(self) -> StatusCounts:
        return StatusCounts.from_statuses(await self._assignments.status_counts_for_active_projects())

    async def create_today_snapshot(self, today: date | None = None) -> ComplianceSnapshot:
        """Record today's counts once; later calls on the same day return the stored row."""
        today = today or utcnow().date()
        existing = await self._snapshots.for_date(today)
        if existing is not None:
            return existing

        counts = await self.current_counts()
        snapshot = await self._snapshots.create(
            snapshot_date=today,
            total_subcontractors=counts.total,
            compliant=counts.compliant,
            non_compliant=counts.non_compliant,
            pending=counts.pending,
            exception=counts.exception,
            compliance_rate=compliance_rate(counts.compliant, counts.exception, counts.total),
        )
        logger.info(
            "Compliance snapshot company=%s date=%s total=%d rate=%d",
            self._company_id, today, counts.total, snapshot.compliance_rate,
        )
        return snapshot

    async def generate_historical_snapshots(self, days: int = 30, today: date | None = None) -> int:
        """Backfill missing days in the window; returns the number of rows written."""
        today = today or utcnow().date()
        start = today - timedelta(days=days)
        existing = await self._snapshots.dates_since(start)
        points = synthesize_history(await self.current_counts(), days, today, existing)

        for point in points:
            await self._snapshots.create(
                snapshot_date=point.snapshot_date,
                total_subcontractors=point.total,
                compliant=point.compliant,
                non_compliant=point.non_compliant,
                pending=point.pending,
                exception=point.exception,
                compliance_rate=point.compliance_rate,
            )
        if points:
            logger.info("Generated %d historical snapshots for company=%s", len(points), self._company_id)
        return len(points)

    async def history(self, days: int = 30, today: date | None = None) -> dict:
        today = today or utcnow().date()
        start = today - timedelta(days=days)

        await self.create_today_snapshot(today)
        snapshots = await self._snapshots.since(start)

        generated = False
        if len(snapshots) < MIN_HISTORY_POINTS:
            await self.generate_historical_snapshots(days, today)
            snapshots = await self._snapshots.since(start)
            generated = True

        return {
            "history": [snapshot_to_history_item(s) for s in snapshots],
            "days": days,
            "generated": generated,
        }
