"""SQLAlchemy ORM model for daily compliance snapshots."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import CreatedAtMixin, TenantMixin, new_id


class ComplianceSnapshot(Base, TenantMixin, CreatedAtMixin):
    __tablename__ = "compliance_snapshots"
    __table_args__ = (
        UniqueConstraint("company_id", "snapshot_date", name="uq_snapshots_company_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_subcontractors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    compliant: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    non_compliant: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pending: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    exception: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    compliance_rate: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
