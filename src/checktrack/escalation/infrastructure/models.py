"""
Escalation Infrastructure Models
================================

SQLAlchemy ORM model for escalation events.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from checktrack.config import CheckStatus
from checktrack.infrastructure.database import Base


class EscalationEventModel(Base):
    """
    Database model for EscalationEvent entity.

    Maps to the 'escalation_events' table.
    """
    __tablename__ = "escalation_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Rule reference
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Check reference
    check_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[CheckStatus] = mapped_column(String(32), nullable=False)
    days_pending: Mapped[int] = mapped_column(Integer, nullable=False)

    escalated_to: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    escalated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Operator handling
    acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
