"""
Digest Domain Entities
======================

Subscription preferences and the read-only digest projection.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from checktrack.checks.domain import StatusChangeRecord
from checktrack.config import DigestFrequency, PendingActionType, Priority
from checktrack.core.exceptions import ValidationException


@dataclass
class DigestPreferences:
    """A user's digest subscription."""

    user_id: str
    frequency: DigestFrequency = DigestFrequency.DAILY
    include_status_changes: bool = True
    include_pending_actions: bool = True
    include_overdue_items: bool = True
    email_address: str = ""
    last_sent_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValidationException("user_id is required for digest preferences")
        self.frequency = DigestFrequency(self.frequency)


@dataclass(frozen=True)
class PendingAction:
    """Outstanding work on one check."""

    check_id: str
    candidate_name: str
    action_type: PendingActionType
    description: str
    days_pending: int
    priority: Priority

    def to_dict(self) -> dict:
        return {
            "check_id": self.check_id,
            "candidate_name": self.candidate_name,
            "action_type": self.action_type.value,
            "description": self.description,
            "days_pending": self.days_pending,
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class OverdueItem:
    """A check whose SLA for the current status is breached."""

    check_id: str
    candidate_name: str
    status: str
    days_elapsed: int
    target_days: int
    target_date: datetime

    def to_dict(self) -> dict:
        return {
            "check_id": self.check_id,
            "candidate_name": self.candidate_name,
            "status": self.status,
            "days_elapsed": self.days_elapsed,
            "target_days": self.target_days,
            "target_date": self.target_date.isoformat(),
        }


@dataclass(frozen=True)
class DigestSummary:
    """Counts over the full current check set."""

    total_checks: int = 0
    completed_checks: int = 0
    in_progress_checks: int = 0
    issues_found: int = 0
    pending_consent: int = 0

    def to_dict(self) -> dict:
        return {
            "total_checks": self.total_checks,
            "completed_checks": self.completed_checks,
            "in_progress_checks": self.in_progress_checks,
            "issues_found": self.issues_found,
            "pending_consent": self.pending_consent,
        }


@dataclass(frozen=True)
class DigestData:
    """
    Digest for one user over one period.

    A digest with neither status changes nor pending actions is never sent.
    """

    user_id: str
    frequency: DigestFrequency
    period_from: datetime
    period_to: datetime
    status_changes: List[StatusChangeRecord] = field(default_factory=list)
    pending_actions: List[PendingAction] = field(default_factory=list)
    overdue_items: List[OverdueItem] = field(default_factory=list)
    summary: DigestSummary = field(default_factory=DigestSummary)

    @property
    def is_empty(self) -> bool:
        return not self.status_changes and not self.pending_actions

    def to_dict(
        self,
        include_status_changes: bool = True,
        include_pending_actions: bool = True,
        include_overdue_items: bool = True
    ) -> dict:
        """Serialise, dropping the sections the subscriber opted out of."""
        payload = {
            "user_id": self.user_id,
            "frequency": self.frequency.value,
            "period": {
                "from": self.period_from.isoformat(),
                "to": self.period_to.isoformat(),
            },
            "summary": self.summary.to_dict(),
        }
        if include_status_changes:
            payload["status_changes"] = [record.to_dict() for record in self.status_changes]
        if include_pending_actions:
            payload["pending_actions"] = [action.to_dict() for action in self.pending_actions]
        if include_overdue_items:
            payload["overdue_items"] = [item.to_dict() for item in self.overdue_items]
        return payload
