"""
Escalation Domain Entities
==========================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from checktrack.checks.domain import BackgroundCheck
from checktrack.config import CheckStatus
from checktrack.core.exceptions import DomainException
from checktrack.escalation.domain.value_objects import EscalationRule


@dataclass
class EscalationEvent:
    """
    A triggered escalation.

    Stays open until an operator resolves it; acknowledgement is optional
    and a resolved event cannot be reopened.
    """

    rule_id: str
    rule_name: str
    check_id: str
    candidate_name: str
    status: CheckStatus
    days_pending: int
    escalated_to: List[str]
    escalated_at: datetime

    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None

    id: str = field(default_factory=lambda: f"esc-{uuid4().hex}")

    @classmethod
    def trigger(
        cls,
        rule: EscalationRule,
        check: BackgroundCheck,
        days_pending: int,
        now: datetime
    ) -> "EscalationEvent":
        return cls(
            rule_id=rule.id,
            rule_name=rule.name,
            check_id=check.id,
            candidate_name=check.candidate_name,
            status=check.status,
            days_pending=days_pending,
            escalated_to=list(rule.escalate_to),
            escalated_at=now,
        )

    @property
    def is_active(self) -> bool:
        return not self.resolved

    def acknowledge(self, user_id: str, now: datetime) -> None:
        if self.resolved:
            raise DomainException(f"Escalation {self.id} is already resolved", {"event_id": self.id})
        self.acknowledged = True
        self.acknowledged_by = user_id
        self.acknowledged_at = now

    def resolve(self, user_id: str, now: datetime, notes: Optional[str] = None) -> None:
        if self.resolved:
            raise DomainException(f"Escalation {self.id} is already resolved", {"event_id": self.id})
        self.resolved = True
        self.resolved_by = user_id
        self.resolved_at = now
        if notes:
            self.notes = notes

    @property
    def resolution_hours(self) -> Optional[float]:
        if not self.resolved or self.resolved_at is None:
            return None
        return (self.resolved_at - self.escalated_at).total_seconds() / 3600
