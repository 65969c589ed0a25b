"""
Check Domain Entities
=====================

Pure Python domain entities for the background check lifecycle.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from checktrack.config import (
    CheckStatus, ResultStatus, Verdict,
    TERMINAL_STATUSES, TERMINAL_RESULT_STATUSES, VERDICT_STATUSES,
)
from checktrack.core.exceptions import InvalidCheckException


def _require_aware(check_id: Optional[str], name: str, value: Optional[datetime]) -> None:
    if value is not None and value.tzinfo is None:
        raise InvalidCheckException(check_id, f"{name} must include a timezone")


@dataclass
class CheckTypeRequirement:
    """A verification category (criminal, employment, ...) attached to a check."""

    type: str
    required: bool = True


@dataclass
class CheckResult:
    """Outcome of one verification category, as reported by a provider."""

    check_type: str
    status: ResultStatus = ResultStatus.PENDING
    completed_date: Optional[datetime] = None

    def __post_init__(self):
        self.status = ResultStatus(self.status)
        _require_aware(None, f"completed_date of {self.check_type} result", self.completed_date)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RESULT_STATUSES


@dataclass
class BackgroundCheck:
    """
    Background check entity: one candidate's verification workflow.

    Mutated only through the status transition engine or explicit
    cancellation. ``status_entered_at`` records when the current status
    was entered; it is ``None`` for checks that predate its tracking.
    """

    # Core attributes
    id: str
    candidate_id: str
    candidate_name: str
    status: CheckStatus
    initiated_by: str
    initiated_date: datetime

    initiated_by_name: str = ""
    check_types: List[CheckTypeRequirement] = field(default_factory=list)
    results: List[CheckResult] = field(default_factory=list)

    # Consent
    consent_given: bool = False
    consent_date: Optional[datetime] = None

    # Outcome
    completed_date: Optional[datetime] = None
    overall_verdict: Optional[Verdict] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None

    status_entered_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate required fields; malformed records are rejected, never defaulted."""
        if not self.id:
            raise InvalidCheckException(None, "id is required")

        if not isinstance(self.initiated_date, datetime):
            raise InvalidCheckException(self.id, "initiated_date is required")

        for name in ("initiated_date", "consent_date", "completed_date", "status_entered_at", "updated_at"):
            _require_aware(self.id, name, getattr(self, name))

        try:
            self.status = CheckStatus(self.status)
        except ValueError:
            raise InvalidCheckException(self.id, f"unknown status '{self.status}'")

        if self.overall_verdict is not None:
            self.overall_verdict = Verdict(self.overall_verdict)

        if self.status_entered_at and self.status_entered_at < self.initiated_date:
            raise InvalidCheckException(self.id, "status_entered_at cannot be before initiated_date")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def required_check_types(self) -> List[str]:
        return [requirement.type for requirement in self.check_types if requirement.required]

    def result_for(self, check_type: str) -> Optional[CheckResult]:
        for result in self.results:
            if result.check_type == check_type:
                return result
        return None

    def has_result_status(self, status: ResultStatus) -> bool:
        return any(result.status == status for result in self.results)

    def status_start_date(self, track_status_entry: bool = True) -> datetime:
        """When the clock for the current status started."""
        if track_status_entry and self.status_entered_at is not None:
            return self.status_entered_at
        return self.initiated_date

    def compute_verdict(self) -> Verdict:
        """not-clear beats review-required beats clear."""
        if self.has_result_status(ResultStatus.NOT_CLEAR):
            return Verdict.NOT_CLEAR
        if self.has_result_status(ResultStatus.REVIEW_REQUIRED):
            return Verdict.CONDITIONAL
        return Verdict.CLEAR

    def record_result(self, result: CheckResult) -> None:
        """Insert or replace the result for ``result.check_type``."""
        for index, existing in enumerate(self.results):
            if existing.check_type == result.check_type:
                self.results[index] = result
                return
        self.results.append(result)

    def move_to(self, new_status: CheckStatus, timestamp: datetime) -> None:
        """
        Apply a status change and keep the outcome fields consistent.

        completed_date is set exactly when entering a terminal status and
        the verdict only when entering completed/issues-found.
        """
        self.status = new_status
        self.status_entered_at = timestamp
        self.updated_at = timestamp

        if new_status in TERMINAL_STATUSES:
            self.completed_date = timestamp
        else:
            self.completed_date = None

        if new_status in VERDICT_STATUSES:
            self.overall_verdict = self.compute_verdict()
        else:
            self.overall_verdict = None


@dataclass
class StatusChangeRecord:
    """
    Append-only audit entry for one status change.

    Never mutated or deleted; the sole source of truth for history and digests.
    """

    check_id: str
    candidate_id: str
    candidate_name: str
    previous_status: CheckStatus
    new_status: CheckStatus
    changed_by: str
    changed_by_name: str
    timestamp: datetime
    automated: bool = False
    reason: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"sh-{uuid4().hex}")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "check_id": self.check_id,
            "candidate_id": self.candidate_id,
            "candidate_name": self.candidate_name,
            "previous_status": CheckStatus(self.previous_status).value,
            "new_status": CheckStatus(self.new_status).value,
            "changed_by": self.changed_by,
            "changed_by_name": self.changed_by_name,
            "reason": self.reason,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat(),
            "automated": self.automated,
            "metadata": dict(self.metadata),
        }
