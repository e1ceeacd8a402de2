"""Users, login sessions and password reset tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from riskshield.db.base import Base
from riskshield.domain.company import Company
from riskshield.domain.mixins import CreatedAtMixin, TenantMixin, TimestampMixin, new_id

COMPANY_ROLES = ("admin", "risk_manager", "project_manager", "project_administrator", "read_only")
PORTAL_ROLES = ("subcontractor", "broker")
ALL_ROLES = COMPANY_ROLES + PORTAL_ROLES


class User(Base, TenantMixin, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="read_only")
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    notification_preferences: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # "pending" | "accepted"
    invitation_status: Mapped[str] = mapped_column(String(20), default="accepted", nullable=False)
    invitation_token: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    invitation_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    company: Mapped[Company] = relationship(lazy="selectin")


class UserSession(Base, CreatedAtMixin):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PasswordResetToken(Base, CreatedAtMixin):
    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
