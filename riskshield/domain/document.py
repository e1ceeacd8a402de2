"""Certificate of Currency uploads and their verification results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from riskshield.db.base import Base
from riskshield.domain.mixins import TenantMixin, TimestampMixin, new_id


class CocDocument(Base, TenantMixin, TimestampMixin):
    __tablename__ = "coc_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    subcontractor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subcontractors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Storage key relative to the upload root
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # "upload" | "email" | "portal" | "procore"
    source: Mapped[str] = mapped_column(String(20), default="upload", nullable=False)
    source_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    uploaded_by_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    # "pending" | "processing" | "completed" | "failed"
    processing_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    processing_error: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class Verification(Base, TenantMixin, TimestampMixin):
    __tablename__ = "verifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    coc_document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("coc_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # "pass" | "fail" | "review"
    status: Mapped[str] = mapped_column(String(20), default="review", nullable=False, index=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    extracted_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    checks: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON, default=list, nullable=True)
    deficiencies: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON, default=list, nullable=True)
    verified_by_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
