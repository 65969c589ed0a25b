"""
Check Infrastructure Models
===========================

SQLAlchemy ORM models for checks and the status change audit log.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from checktrack.config import CheckStatus
from checktrack.infrastructure.database import Base


class CheckModel(Base):
    """
    Database model for BackgroundCheck entity.

    Maps to the 'background_checks' table. Check types and results are
    stored as JSON lists.
    """
    __tablename__ = "background_checks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Candidate
    candidate_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Lifecycle
    status: Mapped[CheckStatus] = mapped_column(String(32), nullable=False, index=True, default=CheckStatus.NOT_STARTED)
    status_entered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Initiation
    initiated_by: Mapped[str] = mapped_column(String(64), nullable=False)
    initiated_by_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    initiated_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Evidence
    check_types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    consent_given: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consent_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Outcome
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    overall_verdict: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class StatusChangeModel(Base):
    """
    Database model for StatusChangeRecord.

    Maps to the 'status_history' table. Rows are only ever inserted.
    """
    __tablename__ = "status_history"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    check_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)

    previous_status: Mapped[CheckStatus] = mapped_column(String(32), nullable=False)
    new_status: Mapped[CheckStatus] = mapped_column(String(32), nullable=False, index=True)

    changed_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    changed_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    automated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # "metadata" is reserved on declarative models
    record_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
