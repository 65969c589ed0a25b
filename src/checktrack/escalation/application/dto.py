"""
Escalation Application DTOs
===========================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from checktrack.escalation.domain import EscalationEvent


class AcknowledgeRequest(BaseModel):
    """Operator acknowledging an escalation."""
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(default="")


class ResolveRequest(AcknowledgeRequest):
    """Operator resolving an escalation."""
    notes: Optional[str] = Field(None, max_length=2000)


class EscalationEventResponse(BaseModel):
    """Escalation event as returned by the API."""
    id: str
    rule_id: str
    rule_name: str
    check_id: str
    candidate_name: str
    status: str
    days_pending: int
    escalated_to: List[str]
    escalated_at: datetime
    acknowledged: bool
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved: bool
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_entity(cls, event: EscalationEvent) -> "EscalationEventResponse":
        return cls(
            id=event.id,
            rule_id=event.rule_id,
            rule_name=event.rule_name,
            check_id=event.check_id,
            candidate_name=event.candidate_name,
            status=event.status.value,
            days_pending=event.days_pending,
            escalated_to=list(event.escalated_to),
            escalated_at=event.escalated_at,
            acknowledged=event.acknowledged,
            acknowledged_by=event.acknowledged_by,
            acknowledged_at=event.acknowledged_at,
            resolved=event.resolved,
            resolved_by=event.resolved_by,
            resolved_at=event.resolved_at,
            notes=event.notes,
        )


class EscalationStatsResponse(BaseModel):
    """Aggregate escalation counts."""
    total_escalations: int
    escalations_last_30_days: int
    active_escalations: int
    acknowledged_not_resolved: int
    average_resolution_hours: float


class EscalationCycleResponse(BaseModel):
    """Result of a manually triggered escalation cycle."""
    escalations: List[EscalationEventResponse] = Field(default_factory=list)
