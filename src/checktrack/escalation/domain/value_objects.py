"""
Escalation Value Objects
========================

Escalation rules and the pure eligibility checks applied to them.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from checktrack.checks.domain import BackgroundCheck
from checktrack.config import CheckStatus, Priority
from checktrack.core.calendar import calendar_days_between


class EscalationRule(BaseModel):
    """Raise an alert when a check has sat in ``status`` for ``days_threshold`` days."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    status: CheckStatus
    days_threshold: int = Field(..., ge=1)
    escalate_to: List[str] = Field(..., min_length=1, description="User IDs notified on escalation")
    escalate_to_names: List[str] = Field(default_factory=list)
    notify_original_initiator: bool = True
    priority: Priority = Priority.MEDIUM
    enabled: bool = True

    @field_validator("escalate_to")
    @classmethod
    def validate_escalate_to(cls, v: List[str]) -> List[str]:
        cleaned = [user_id.strip() for user_id in v if user_id and user_id.strip()]
        if not cleaned:
            raise ValueError("escalate_to must name at least one user")
        return cleaned

    @model_validator(mode="after")
    def validate_names(self) -> "EscalationRule":
        if self.escalate_to_names and len(self.escalate_to_names) != len(self.escalate_to):
            raise ValueError("escalate_to_names must match escalate_to one-to-one")
        return self


DEFAULT_ESCALATION_RULES = (
    EscalationRule(
        id="esc-rule-consent",
        name="Consent Not Received - 5 Days",
        description="Escalate when candidate consent is outstanding for 5 days",
        status=CheckStatus.PENDING_CONSENT,
        days_threshold=5,
        escalate_to=["manager-1"],
        escalate_to_names=["Hiring Manager"],
        notify_original_initiator=True,
        priority=Priority.HIGH,
    ),
    EscalationRule(
        id="esc-rule-in-progress",
        name="In Progress - 14 Days",
        description="Escalate checks still processing after 14 days",
        status=CheckStatus.IN_PROGRESS,
        days_threshold=14,
        escalate_to=["manager-1", "hr-director"],
        escalate_to_names=["Hiring Manager", "HR Director"],
        notify_original_initiator=True,
        priority=Priority.MEDIUM,
    ),
    EscalationRule(
        id="esc-rule-issues-found",
        name="Issues Found - Not Reviewed - 3 Days",
        description="Escalate adverse findings left unreviewed for 3 days",
        status=CheckStatus.ISSUES_FOUND,
        days_threshold=3,
        escalate_to=["hr-director"],
        escalate_to_names=["HR Director"],
        notify_original_initiator=True,
        priority=Priority.CRITICAL,
    ),
)


def days_pending(check: BackgroundCheck, now: datetime, track_status_entry: bool = True) -> int:
    """Whole calendar days the check has spent in its current status."""
    return calendar_days_between(check.status_start_date(track_status_entry), now)


def is_eligible(
    rule: EscalationRule,
    check: BackgroundCheck,
    now: datetime,
    track_status_entry: bool = True
) -> bool:
    """Status match and threshold reached; cooldown is checked separately."""
    if not rule.enabled or check.status != rule.status:
        return False
    return days_pending(check, now, track_status_entry) >= rule.days_threshold


def within_cooldown(escalated_at: Iterable[datetime], now: datetime, cooldown_hours: int = 24) -> bool:
    """True when any earlier escalation of the check is younger than the cooldown."""
    window = timedelta(hours=cooldown_hours)
    return any(now - timestamp < window for timestamp in escalated_at)
