"""SQLAlchemy ORM model for subcontractors (the insured trades a builder engages)."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import TenantMixin, TimestampMixin, new_id


class Subcontractor(Base, TenantMixin, TimestampMixin):
    __tablename__ = "subcontractors"
    __table_args__ = (UniqueConstraint("company_id", "abn", name="uq_subcontractors_company_abn"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    abn: Mapped[Optional[str]] = mapped_column(String(11), nullable=True, index=True)
    acn: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)
    trading_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    trade: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    employee_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    workers_comp_state: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    broker_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    broker_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    broker_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    portal_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
