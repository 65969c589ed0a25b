"""
Check Application DTOs
======================

Pydantic models for the check lifecycle API: intake of check records,
evidence updates, operator actions and audit queries.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field, field_validator, model_validator

from checktrack.checks.domain import (
    BackgroundCheck, CheckResult, CheckTypeRequirement,
    StatusChangeRecord, TransitionOutcome,
)


# ========== Type Aliases for Literals ==========
CheckStatusStr = Literal[
    "not-started", "pending-consent", "in-progress", "completed", "issues-found", "cancelled"
]
ResultStatusStr = Literal["pending", "clear", "review-required", "not-clear"]
VerdictStr = Literal["clear", "conditional", "not-clear"]


# ========== Request DTOs ==========

class CheckTypeDTO(BaseModel):
    """A verification category attached to a check."""
    type: str = Field(..., min_length=1, description="Check type, e.g. criminal or employment")
    required: bool = Field(default=True, description="Whether completion waits for this type")


class CheckResultDTO(BaseModel):
    """Result reported for one check type."""
    check_type: str = Field(..., min_length=1, description="Check type this result belongs to")
    status: ResultStatusStr = Field(default="pending", description="Result classification")
    completed_date: Optional[AwareDatetime] = Field(None, description="When the provider finished")

    def to_entity(self) -> CheckResult:
        return CheckResult(
            check_type=self.check_type,
            status=self.status,
            completed_date=self.completed_date,
        )


class CheckCreateRequest(BaseModel):
    """Request model for registering a check with the lifecycle engine."""
    id: str = Field(..., min_length=1, description="Check identifier")
    candidate_id: str = Field(..., min_length=1)
    candidate_name: str = Field(..., min_length=1)
    status: CheckStatusStr = Field(default="not-started")
    initiated_by: str = Field(..., min_length=1, description="User who initiated the check")
    initiated_by_name: str = Field(default="")
    initiated_date: AwareDatetime = Field(..., description="When the check was initiated")
    check_types: List[CheckTypeDTO] = Field(default_factory=list)
    results: List[CheckResultDTO] = Field(default_factory=list)
    consent_given: bool = False
    consent_date: Optional[AwareDatetime] = None
    status_entered_at: Optional[AwareDatetime] = None

    @field_validator("status_entered_at")
    @classmethod
    def validate_status_entered_at(cls, v: Optional[datetime], info) -> Optional[datetime]:
        """Ensure status_entered_at is not before initiated_date."""
        if v and "initiated_date" in info.data and v < info.data["initiated_date"]:
            raise ValueError("status_entered_at cannot be before initiated_date")
        return v

    @model_validator(mode="after")
    def validate_unique_results(self) -> "CheckCreateRequest":
        types = [result.check_type for result in self.results]
        if len(types) != len(set(types)):
            raise ValueError("results must contain at most one entry per check type")
        return self

    def to_entity(self) -> BackgroundCheck:
        return BackgroundCheck(
            id=self.id,
            candidate_id=self.candidate_id,
            candidate_name=self.candidate_name,
            status=self.status,
            initiated_by=self.initiated_by,
            initiated_by_name=self.initiated_by_name,
            initiated_date=self.initiated_date,
            check_types=[CheckTypeRequirement(type=t.type, required=t.required) for t in self.check_types],
            results=[result.to_entity() for result in self.results],
            consent_given=self.consent_given,
            consent_date=self.consent_date,
            status_entered_at=self.status_entered_at,
        )


class ConsentRequest(BaseModel):
    """Consent received from the candidate."""
    consent_date: Optional[AwareDatetime] = Field(None, description="Defaults to the time of the request")


class OperatorActionRequest(BaseModel):
    """Identity of the operator performing a manual action."""
    actor_id: str = Field(..., min_length=1)
    actor_name: str = Field(default="")


class CancelRequest(OperatorActionRequest):
    """Manual cancellation of a check."""
    reason: str = Field(..., min_length=1, description="Why the check is cancelled")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reason must not be blank")
        return v.strip()


class StatusHistoryQuery(BaseModel):
    """Filters for the status change audit log."""
    check_id: Optional[str] = None
    candidate_id: Optional[str] = None
    status: Optional[CheckStatusStr] = Field(
        None, description="Matches either the previous or the new status"
    )
    changed_by: Optional[str] = None
    date_from: Optional[AwareDatetime] = None
    date_to: Optional[AwareDatetime] = None
    automated: Optional[bool] = None
    limit: int = Field(default=500, ge=1, le=5000)

    def matches(self, record: StatusChangeRecord) -> bool:
        if self.check_id and record.check_id != self.check_id:
            return False
        if self.candidate_id and record.candidate_id != self.candidate_id:
            return False
        if self.status and self.status not in (record.new_status.value, record.previous_status.value):
            return False
        if self.changed_by and record.changed_by != self.changed_by:
            return False
        if self.date_from and record.timestamp < self.date_from:
            return False
        if self.date_to and record.timestamp > self.date_to:
            return False
        if self.automated is not None and record.automated != self.automated:
            return False
        return True


# ========== Response DTOs ==========

class CheckResponse(BaseModel):
    """Current state of a check."""
    id: str
    candidate_id: str
    candidate_name: str
    status: CheckStatusStr
    initiated_by: str
    initiated_by_name: str
    initiated_date: datetime
    check_types: List[CheckTypeDTO]
    results: List[CheckResultDTO]
    consent_given: bool
    consent_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    overall_verdict: Optional[VerdictStr] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None
    status_entered_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, check: BackgroundCheck) -> "CheckResponse":
        return cls(
            id=check.id,
            candidate_id=check.candidate_id,
            candidate_name=check.candidate_name,
            status=check.status.value,
            initiated_by=check.initiated_by,
            initiated_by_name=check.initiated_by_name,
            initiated_date=check.initiated_date,
            check_types=[CheckTypeDTO(type=t.type, required=t.required) for t in check.check_types],
            results=[
                CheckResultDTO(
                    check_type=r.check_type,
                    status=r.status.value,
                    completed_date=r.completed_date,
                )
                for r in check.results
            ],
            consent_given=check.consent_given,
            consent_date=check.consent_date,
            completed_date=check.completed_date,
            overall_verdict=check.overall_verdict.value if check.overall_verdict else None,
            reviewed_by=check.reviewed_by,
            review_notes=check.review_notes,
            status_entered_at=check.status_entered_at,
        )


class StatusChangeResponse(BaseModel):
    """One audit log entry."""
    id: str
    check_id: str
    candidate_id: str
    candidate_name: str
    previous_status: CheckStatusStr
    new_status: CheckStatusStr
    changed_by: str
    changed_by_name: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime
    automated: bool
    metadata: Dict[str, Optional[str]] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, record: StatusChangeRecord) -> "StatusChangeResponse":
        return cls(
            id=record.id,
            check_id=record.check_id,
            candidate_id=record.candidate_id,
            candidate_name=record.candidate_name,
            previous_status=record.previous_status.value,
            new_status=record.new_status.value,
            changed_by=record.changed_by,
            changed_by_name=record.changed_by_name,
            reason=record.reason,
            notes=record.notes,
            timestamp=record.timestamp,
            automated=record.automated,
            metadata={k: (str(v) if v is not None else None) for k, v in record.metadata.items()},
        )


class TransitionResponse(BaseModel):
    """Outcome of an evaluation or operator action on one check."""
    check: CheckResponse
    transitioned: bool
    previous_status: Optional[CheckStatusStr] = None
    record: Optional[StatusChangeResponse] = None

    @classmethod
    def from_outcome(
        cls,
        check: BackgroundCheck,
        outcome: Optional[TransitionOutcome]
    ) -> "TransitionResponse":
        if outcome is None:
            return cls(check=CheckResponse.from_entity(check), transitioned=False)
        return cls(
            check=CheckResponse.from_entity(outcome.check),
            transitioned=True,
            previous_status=outcome.previous_status.value,
            record=StatusChangeResponse.from_entity(outcome.record),
        )


class EvaluationSummaryResponse(BaseModel):
    """Summary of a transition sweep over all checks."""
    transitioned: int
    transitions: List[StatusChangeResponse] = Field(default_factory=list)


class HistoryStatsResponse(BaseModel):
    """Aggregate counts over the audit log."""
    total_changes: int
    changes_last_30_days: int
    automated_changes: int
    manual_changes: int
    by_status: Dict[str, int] = Field(default_factory=dict)
