"""
Digest Infrastructure Models
============================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from checktrack.config import DigestFrequency
from checktrack.infrastructure.database import Base


class DigestPreferencesModel(Base):
    """
    Database model for DigestPreferences.

    Maps to the 'digest_preferences' table, one row per user.
    """
    __tablename__ = "digest_preferences"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    frequency: Mapped[DigestFrequency] = mapped_column(String(16), nullable=False, default=DigestFrequency.DAILY)
    include_status_changes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    include_pending_actions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    include_overdue_items: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_address: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    last_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
