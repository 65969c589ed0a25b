"""
Digest Application DTOs
=======================
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field

from checktrack.digest.domain import DigestData, DigestPreferences

DigestFrequencyStr = Literal["daily", "weekly", "disabled"]


class DigestPreferencesDTO(BaseModel):
    """Digest subscription as sent and returned by the API."""
    user_id: str = Field(..., min_length=1)
    frequency: DigestFrequencyStr = "daily"
    include_status_changes: bool = True
    include_pending_actions: bool = True
    include_overdue_items: bool = True
    email_address: str = ""
    last_sent_at: Optional[AwareDatetime] = None

    def to_entity(self) -> DigestPreferences:
        return DigestPreferences(
            user_id=self.user_id,
            frequency=self.frequency,
            include_status_changes=self.include_status_changes,
            include_pending_actions=self.include_pending_actions,
            include_overdue_items=self.include_overdue_items,
            email_address=self.email_address,
            last_sent_at=self.last_sent_at,
        )

    @classmethod
    def from_entity(cls, preferences: DigestPreferences) -> "DigestPreferencesDTO":
        return cls(
            user_id=preferences.user_id,
            frequency=preferences.frequency.value,
            include_status_changes=preferences.include_status_changes,
            include_pending_actions=preferences.include_pending_actions,
            include_overdue_items=preferences.include_overdue_items,
            email_address=preferences.email_address,
            last_sent_at=preferences.last_sent_at,
        )


class DigestPreviewResponse(BaseModel):
    """Digest content without sending it."""
    empty: bool
    digest: Optional[Dict[str, Any]] = None

    @classmethod
    def from_digest(cls, digest: Optional[DigestData]) -> "DigestPreviewResponse":
        if digest is None:
            return cls(empty=True)
        return cls(empty=digest.is_empty, digest=digest.to_dict())


class DigestCycleResponse(BaseModel):
    """Result of a manually triggered delivery cycle."""
    digests_sent: int
    user_ids: List[str] = Field(default_factory=list)
