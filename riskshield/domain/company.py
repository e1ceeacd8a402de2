"""SQLAlchemy ORM model for tenant companies (the builders using RiskShield)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import TimestampMixin, new_id


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    abn: Mapped[str] = mapped_column(String(11), nullable=False, unique=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    primary_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    forwarding_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    settings: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Billing tier: "trial" | "starter" | "professional" | "enterprise"
    subscription_tier: Mapped[str] = mapped_column(String(50), default="trial", nullable=False)
    # "active" | "trialing" | "past_due" | "cancelled"
    subscription_status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    subscription_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
