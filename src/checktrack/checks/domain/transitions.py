"""
Status Transition Engine
========================

Declarative transition rules evaluated in priority order.

Each rule is a (from_status, to_status, condition) triple. For a given
check the first matching rule wins and at most one transition is applied
per evaluation; a false precondition is a silent no-op, so the engine can
be called repeatedly as evidence arrives.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from checktrack.checks.domain.entities import BackgroundCheck, StatusChangeRecord
from checktrack.config import CheckStatus, ResultStatus
from checktrack.core.exceptions import InvalidTransitionException, ValidationException

SYSTEM_ACTOR = "system"
SYSTEM_ACTOR_NAME = "Automated System"


# ========== Conditions ==========

def has_consent(check: BackgroundCheck) -> bool:
    return check.consent_given is True


def has_not_clear_result(check: BackgroundCheck) -> bool:
    return check.has_result_status(ResultStatus.NOT_CLEAR)


def all_results_complete(check: BackgroundCheck) -> bool:
    """Every required type has a result, all results are terminal, none is not-clear."""
    if not check.results:
        return False

    reported = {result.check_type for result in check.results}
    if any(check_type not in reported for check_type in check.required_check_types):
        return False

    if not all(result.is_terminal for result in check.results):
        return False

    return not has_not_clear_result(check)


# ========== Rules ==========

@dataclass(frozen=True)
class StatusTransition:
    """One automatic transition rule."""

    name: str
    from_status: CheckStatus
    to_status: CheckStatus
    condition: Callable[[BackgroundCheck], bool]
    notification_message: Callable[[BackgroundCheck], str]

    def matches(self, check: BackgroundCheck) -> bool:
        return check.status == self.from_status and self.condition(check)


# issues-found is listed before completed so ties break toward review.
STATUS_TRANSITIONS: Tuple[StatusTransition, ...] = (
    StatusTransition(
        name="consent-received",
        from_status=CheckStatus.PENDING_CONSENT,
        to_status=CheckStatus.IN_PROGRESS,
        condition=has_consent,
        notification_message=lambda check: (
            f"Background check for {check.candidate_name} has moved to In Progress "
            f"after consent was received."
        ),
    ),
    StatusTransition(
        name="issues-found",
        from_status=CheckStatus.IN_PROGRESS,
        to_status=CheckStatus.ISSUES_FOUND,
        condition=has_not_clear_result,
        notification_message=lambda check: (
            f"Issues found in background check for {check.candidate_name}. "
            f"Immediate review required."
        ),
    ),
    StatusTransition(
        name="all-results-complete",
        from_status=CheckStatus.IN_PROGRESS,
        to_status=CheckStatus.COMPLETED,
        condition=all_results_complete,
        notification_message=lambda check: (
            f"Background check for {check.candidate_name} has been completed. "
            f"Review the results now."
        ),
    ),
)


@dataclass
class TransitionOutcome:
    """A transition that was applied to a check, with its audit record."""

    check: BackgroundCheck
    previous_status: CheckStatus
    record: StatusChangeRecord
    message: str
    rule: Optional[StatusTransition] = None

    @property
    def new_status(self) -> CheckStatus:
        return self.record.new_status


class StatusTransitionEngine:
    """
    Applies transition rules to a check.

    The engine mutates the check it is given and returns the audit record to
    append; persistence and notification fan-out belong to the caller.
    """

    def __init__(self, transitions: Sequence[StatusTransition] = STATUS_TRANSITIONS):
        self._transitions = tuple(transitions)

    @property
    def transitions(self) -> Tuple[StatusTransition, ...]:
        return self._transitions

    def find_transition(self, check: BackgroundCheck) -> Optional[StatusTransition]:
        for transition in self._transitions:
            if transition.matches(check):
                return transition
        return None

    def evaluate(self, check: BackgroundCheck, now: datetime) -> Optional[TransitionOutcome]:
        """Apply the first matching rule, or return None when nothing applies."""
        transition = self.find_transition(check)
        if transition is None:
            return None

        previous_status = check.status
        check.move_to(transition.to_status, now)

        record = StatusChangeRecord(
            check_id=check.id,
            candidate_id=check.candidate_id,
            candidate_name=check.candidate_name,
            previous_status=previous_status,
            new_status=transition.to_status,
            changed_by=SYSTEM_ACTOR,
            changed_by_name=SYSTEM_ACTOR_NAME,
            timestamp=now,
            automated=True,
            reason="Automated status transition",
            metadata={
                "rule": transition.name,
                "overall_verdict": check.overall_verdict.value if check.overall_verdict else None,
            },
        )

        return TransitionOutcome(
            check=check,
            previous_status=previous_status,
            record=record,
            message=transition.notification_message(check),
            rule=transition,
        )

    def cancel(
        self,
        check: BackgroundCheck,
        reason: str,
        actor_id: str,
        actor_name: str,
        now: datetime,
    ) -> TransitionOutcome:
        """
        Operator cancellation; allowed from any non-terminal status.

        The actor and reason live on the audit record; reviewer fields are
        left for the reviewer.
        """
        if not reason or not reason.strip():
            raise ValidationException("A cancellation reason is required", {"check_id": check.id})

        if check.is_terminal:
            raise InvalidTransitionException(check.id, check.status.value, CheckStatus.CANCELLED.value)

        previous_status = check.status
        check.move_to(CheckStatus.CANCELLED, now)

        record = StatusChangeRecord(
            check_id=check.id,
            candidate_id=check.candidate_id,
            candidate_name=check.candidate_name,
            previous_status=previous_status,
            new_status=CheckStatus.CANCELLED,
            changed_by=actor_id,
            changed_by_name=actor_name,
            timestamp=now,
            automated=False,
            reason=reason,
        )

        return TransitionOutcome(
            check=check,
            previous_status=previous_status,
            record=record,
            message=f"Background check for {check.candidate_name} has been cancelled.",
        )

    def request_consent(
        self,
        check: BackgroundCheck,
        actor_id: str,
        actor_name: str,
        now: datetime,
    ) -> TransitionOutcome:
        """Operator action moving a not-started check to pending-consent."""
        if check.status != CheckStatus.NOT_STARTED:
            raise InvalidTransitionException(check.id, check.status.value, CheckStatus.PENDING_CONSENT.value)

        previous_status = check.status
        check.move_to(CheckStatus.PENDING_CONSENT, now)

        record = StatusChangeRecord(
            check_id=check.id,
            candidate_id=check.candidate_id,
            candidate_name=check.candidate_name,
            previous_status=previous_status,
            new_status=CheckStatus.PENDING_CONSENT,
            changed_by=actor_id,
            changed_by_name=actor_name,
            timestamp=now,
            automated=False,
            reason="Consent requested",
        )

        return TransitionOutcome(
            check=check,
            previous_status=previous_status,
            record=record,
            message=f"Consent has been requested from {check.candidate_name}.",
        )
