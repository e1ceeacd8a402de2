"""OAuth connections to third-party platforms and Procore sync bookkeeping."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import CreatedAtMixin, TenantMixin, TimestampMixin, new_id

PROVIDERS = ("procore", "microsoft")


class OAuthState(Base, TenantMixin, CreatedAtMixin):
    """CSRF state for an in-flight OAuth authorization."""

    __tablename__ = "oauth_states"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    state: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class OAuthConnection(Base, TenantMixin, TimestampMixin):
    __tablename__ = "oauth_connections"
    __table_args__ = (UniqueConstraint("company_id", "provider", name="uq_oauth_company_provider"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    procore_company_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    procore_company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pending_company_selection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ProcoreMapping(Base, TenantMixin, TimestampMixin):
    """Links a Procore project/vendor to the RiskShield project/subcontractor it was synced into."""

    __tablename__ = "procore_mappings"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "procore_company_id", "procore_entity_type", "procore_entity_id",
            name="uq_procore_mapping_entity",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    procore_company_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # "project" | "vendor"
    procore_entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    procore_entity_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # "project" | "subcontractor"
    shield_entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    shield_entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sync_direction: Mapped[str] = mapped_column(String(20), default="procore_to_shield", nullable=False)
    sync_status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ProcoreSyncLog(Base, TenantMixin, CreatedAtMixin):
    __tablename__ = "procore_sync_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    procore_company_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # "projects" | "vendors" | "compliance_push"
    sync_type: Mapped[str] = mapped_column(String(30), nullable=False)
    # "started" | "completed" | "failed"
    status: Mapped[str] = mapped_column(String(20), default="started", nullable=False)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
