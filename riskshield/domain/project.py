"""Projects, their insurance requirements and subcontractor assignments."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from riskshield.db.base import Base
from riskshield.domain.mixins import TenantMixin, TimestampMixin, new_id
from riskshield.domain.subcontractor import Subcontractor

AU_STATES = ("NSW", "VIC", "QLD", "WA", "SA", "TAS", "NT", "ACT")
PROJECT_STATUSES = ("active", "completed", "on_hold")
COVERAGE_TYPES = (
    "public_liability",
    "products_liability",
    "workers_comp",
    "professional_indemnity",
    "motor_vehicle",
    "contract_works",
)
COMPLIANCE_STATUSES = ("pending", "compliant", "non_compliant", "exception")


class Project(Base, TenantMixin, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    entity_type: Mapped[str] = mapped_column(String(50), default="pty_ltd", nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    estimated_value: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    project_manager_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    forwarding_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    # "active" | "completed" | "on_hold"
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False, index=True)


class InsuranceRequirement(Base, TenantMixin, TimestampMixin):
    __tablename__ = "insurance_requirements"
    __table_args__ = (
        UniqueConstraint("project_id", "coverage_type", name="uq_requirements_project_coverage"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    coverage_type: Mapped[str] = mapped_column(String(50), nullable=False)
    minimum_limit: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    # "per_occurrence" | "aggregate"
    limit_type: Mapped[str] = mapped_column(String(20), default="per_occurrence", nullable=False)
    maximum_excess: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    principal_indemnity_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cross_liability_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    waiver_of_subrogation_required: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    # "principal_named" | "interested_party" | None
    principal_naming_required: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    other_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ProjectSubcontractor(Base, TenantMixin, TimestampMixin):
    __tablename__ = "project_subcontractors"
    __table_args__ = (
        UniqueConstraint("project_id", "subcontractor_id", name="uq_project_subcontractor"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subcontractor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subcontractors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # "pending" | "compliant" | "non_compliant" | "exception"
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    on_site_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    subcontractor: Mapped[Subcontractor] = relationship(lazy="selectin")
    project: Mapped[Project] = relationship(lazy="selectin")
