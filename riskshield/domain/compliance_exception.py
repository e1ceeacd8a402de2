"""Approved departures from a project's insurance requirements."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import TenantMixin, TimestampMixin, new_id

EXPIRATION_TYPES = ("until_resolved", "fixed_duration", "specific_date", "permanent")
RISK_LEVELS = ("low", "medium", "high")


class ComplianceException(Base, TenantMixin, TimestampMixin):
    __tablename__ = "compliance_exceptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_subcontractor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("project_subcontractors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    verification_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    issue_summary: Mapped[str] = mapped_column(String(500), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    risk_level: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    approved_by_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expiration_type: Mapped[str] = mapped_column(String(20), default="until_resolved", nullable=False)
    # "pending_approval" | "active" | "rejected" | "expired" | "resolved"
    status: Mapped[str] = mapped_column(String(20), default="pending_approval", nullable=False, index=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
