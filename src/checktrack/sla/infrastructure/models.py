"""
SLA Infrastructure Models
=========================

SQLAlchemy ORM model for the SLA notification log.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from checktrack.config import SLAState
from checktrack.infrastructure.database import Base


class SLANotificationLogModel(Base):
    """
    One row per (check, status, level) SLA notification that has been sent.

    Maps to the 'sla_notifications_sent' table.
    """
    __tablename__ = "sla_notifications_sent"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    check_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[SLAState] = mapped_column(String(32), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("check_id", "status", "level", name="uq_sla_notification_check_status_level"),
    )
