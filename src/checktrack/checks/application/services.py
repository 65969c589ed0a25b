"""
Check Application Services
==========================

Application services orchestrate the lifecycle: they load checks from the
repositories, serialise writes per check, run the transition engine, append
audit records and hand notifications to the gateway.

Following SOLID principles:
- Single Responsibility: transitions and audit queries live in separate services
- Dependency Inversion: Depend on abstractions (repositories, gateway), not concrete implementations
"""

import csv
import io
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from checktrack.checks.application.dto import StatusHistoryQuery
from checktrack.checks.domain import (
    BackgroundCheck, CheckResult, StatusChangeRecord,
    StatusTransitionEngine, TransitionOutcome,
)
from checktrack.config import (
    CheckStatus, NotificationCategory, NotificationSeverity, Priority,
)
from checktrack.core.exceptions import (
    ApplicationException, DomainException, ResourceNotFoundException,
)
from checktrack.notifications import INotificationGateway, Notification, build_check_link
from checktrack.shared.infrastructure.locks import KeyedLockRegistry
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ICheckRepository(ABC):
    """Interface for check data access."""

    @abstractmethod
    async def get_by_id(self, check_id: str) -> Optional[BackgroundCheck]:
        """Get check by ID."""

    @abstractmethod
    async def exists(self, check_id: str) -> bool:
        """Check if a check with this ID is stored."""

    @abstractmethod
    async def save(self, check: BackgroundCheck) -> BackgroundCheck:
        """Insert or update a check."""

    @abstractmethod
    async def list(
        self,
        statuses: Optional[Sequence[CheckStatus]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[BackgroundCheck]:
        """List checks, optionally restricted to the given statuses."""


class IStatusHistoryRepository(ABC):
    """Interface for the append-only status change log."""

    @abstractmethod
    async def append(self, record: StatusChangeRecord) -> StatusChangeRecord:
        """Append one record."""

    @abstractmethod
    async def list_by_check(self, check_id: str) -> List[StatusChangeRecord]:
        """Records for one check, newest first."""

    @abstractmethod
    async def list_by_candidate(self, candidate_id: str) -> List[StatusChangeRecord]:
        """Records for one candidate, newest first."""

    @abstractmethod
    async def query(self, query: StatusHistoryQuery) -> List[StatusChangeRecord]:
        """Filtered records, newest first."""

    @abstractmethod
    async def list_between(self, start: datetime, end: datetime) -> List[StatusChangeRecord]:
        """Records with ``start <= timestamp <= end``, newest first."""

    @abstractmethod
    async def get_counts(self, since: datetime) -> dict:
        """
        Counts over the whole log.

        Returns:
            ``total``, ``since`` (records at or after ``since``), ``automated``
            and ``by_status`` (keyed by new status value)
        """


# ========== Notification builders ==========

STATUS_NOTIFICATION_LEVELS = {
    CheckStatus.ISSUES_FOUND: (NotificationSeverity.ERROR, Priority.HIGH),
    CheckStatus.COMPLETED: (NotificationSeverity.SUCCESS, Priority.MEDIUM),
}


def build_status_change_notifications(
    outcome: TransitionOutcome,
    base_url: str,
    reviewers: Sequence[str] = ()
) -> List[Notification]:
    """Initiator notification for any status change, plus reviewers on issues-found."""
    check = outcome.check
    new_status = outcome.new_status
    severity, priority = STATUS_NOTIFICATION_LEVELS.get(
        new_status, (NotificationSeverity.INFO, Priority.LOW)
    )
    link = build_check_link(base_url, check.id)
    metadata = {
        "check_id": check.id,
        "candidate_id": check.candidate_id,
        "candidate_name": check.candidate_name,
        "event_kind": "status-change",
        "previous_status": outcome.previous_status.value,
        "new_status": new_status.value,
    }

    notifications = [
        Notification(
            recipient=check.initiated_by,
            category=NotificationCategory.STATUS_CHANGE,
            severity=severity,
            priority=priority,
            title="Background Check Status Update",
            message=outcome.message,
            link=link,
            metadata=metadata,
        )
    ]

    if new_status == CheckStatus.ISSUES_FOUND:
        for reviewer in reviewers:
            if reviewer == check.initiated_by:
                continue
            notifications.append(
                Notification(
                    recipient=reviewer,
                    category=NotificationCategory.STATUS_CHANGE,
                    severity=NotificationSeverity.ERROR,
                    priority=Priority.HIGH,
                    title=f"Issues Found - {check.candidate_name}",
                    message=outcome.message,
                    link=link,
                    metadata={**metadata, "event_kind": "review-required"},
                )
            )

    return notifications


# ========== Application Services ==========

class StatusTransitionService:
    """
    Runs the status transition engine against stored checks.

    Every write path acquires the check's lock, so evaluation, evidence
    intake and cancellation never interleave for the same check.
    """

    def __init__(
        self,
        check_repository: ICheckRepository,
        history_repository: IStatusHistoryRepository,
        notification_gateway: INotificationGateway,
        lock_registry: Optional[KeyedLockRegistry] = None,
        reviewers: Sequence[str] = (),
        base_url: str = "/background-checks",
        engine: Optional[StatusTransitionEngine] = None
    ):
        self._check_repo = check_repository
        self._history_repo = history_repository
        self._gateway = notification_gateway
        self._locks = lock_registry or KeyedLockRegistry()
        self._reviewers = list(reviewers)
        self._base_url = base_url
        self._engine = engine or StatusTransitionEngine()

    async def register_check(self, check: BackgroundCheck) -> BackgroundCheck:
        """Start tracking a check. Raises DomainException when the ID is taken."""
        async with self._locks.lock(check.id):
            if await self._check_repo.exists(check.id):
                raise DomainException(
                    f"Check {check.id} is already registered",
                    {"check_id": check.id}
                )
            saved = await self._check_repo.save(check)

        logger.info(
            "Check registered",
            extra={"check_id": check.id, "status": check.status.value}
        )
        return saved

    async def get_check(self, check_id: str) -> BackgroundCheck:
        check = await self._check_repo.get_by_id(check_id)
        if check is None:
            raise ResourceNotFoundException("BackgroundCheck", check_id)
        return check

    async def evaluate(self, check_id: str, now: Optional[datetime] = None) -> Optional[TransitionOutcome]:
        """
        Apply at most one automatic transition to a check.

        Returns:
            The applied TransitionOutcome, or None when no rule matched
        """
        now = now or datetime.now(timezone.utc)
        async with self._locks.lock(check_id):
            check = await self.get_check(check_id)
            return await self._evaluate_locked(check, now)

    async def evaluate_all(self, now: Optional[datetime] = None) -> List[TransitionOutcome]:
        """
        Evaluate every non-terminal check once.

        A failure on one check is logged and does not stop the sweep.
        """
        now = now or datetime.now(timezone.utc)
        checks = await self._check_repo.list(
            statuses=[CheckStatus.PENDING_CONSENT, CheckStatus.IN_PROGRESS]
        )

        outcomes = []
        for candidate in checks:
            try:
                async with self._locks.lock(candidate.id):
                    # Reload under the lock; another writer may have moved it.
                    check = await self.get_check(candidate.id)
                    outcome = await self._evaluate_locked(check, now)
            except ApplicationException as e:
                logger.error(
                    "Transition evaluation failed",
                    extra={"check_id": candidate.id, "error": e.message}
                )
                continue

            if outcome:
                outcomes.append(outcome)

        logger.info(
            "Transition sweep complete",
            extra={"checks_evaluated": len(checks), "transitions": len(outcomes)}
        )
        return outcomes

    async def record_consent(
        self,
        check_id: str,
        consent_date: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> Optional[TransitionOutcome]:
        """Mark consent as given and re-evaluate the check."""
        now = now or datetime.now(timezone.utc)
        async with self._locks.lock(check_id):
            check = await self.get_check(check_id)
            self._ensure_open(check, "consent")

            check.consent_given = True
            check.consent_date = consent_date or now
            check.updated_at = now
            await self._check_repo.save(check)

            return await self._evaluate_locked(check, now)

    async def record_result(
        self,
        check_id: str,
        result: CheckResult,
        now: Optional[datetime] = None
    ) -> Optional[TransitionOutcome]:
        """Store a provider result (replacing any earlier one for the same type) and re-evaluate."""
        now = now or datetime.now(timezone.utc)
        async with self._locks.lock(check_id):
            check = await self.get_check(check_id)
            self._ensure_open(check, "results")

            if result.is_terminal and result.completed_date is None:
                result.completed_date = now
            check.record_result(result)
            check.updated_at = now
            await self._check_repo.save(check)

            return await self._evaluate_locked(check, now)

    async def request_consent(
        self,
        check_id: str,
        actor_id: str,
        actor_name: str = "",
        now: Optional[datetime] = None
    ) -> TransitionOutcome:
        """Operator action: not-started -> pending-consent."""
        now = now or datetime.now(timezone.utc)
        async with self._locks.lock(check_id):
            check = await self.get_check(check_id)
            outcome = self._engine.request_consent(check, actor_id, actor_name or actor_id, now)
            await self._persist(outcome)

        await self._notify(outcome)
        return outcome

    async def cancel(
        self,
        check_id: str,
        reason: str,
        actor_id: str,
        actor_name: str = "",
        now: Optional[datetime] = None
    ) -> TransitionOutcome:
        """
        Cancel a non-terminal check.

        Raises:
            ValidationException: when the reason is blank
            InvalidTransitionException: when the check is already terminal
        """
        now = now or datetime.now(timezone.utc)
        async with self._locks.lock(check_id):
            check = await self.get_check(check_id)
            outcome = self._engine.cancel(check, reason, actor_id, actor_name or actor_id, now)
            await self._persist(outcome)

        logger.info(
            "Check cancelled",
            extra={"check_id": check_id, "actor_id": actor_id, "previous_status": outcome.previous_status.value}
        )
        await self._notify(outcome)
        return outcome

    # ========== Internals ==========

    def _ensure_open(self, check: BackgroundCheck, evidence: str) -> None:
        if check.is_terminal:
            raise DomainException(
                f"Check {check.id} is {check.status.value}; {evidence} can no longer be recorded",
                {"check_id": check.id, "status": check.status.value}
            )

    async def _evaluate_locked(self, check: BackgroundCheck, now: datetime) -> Optional[TransitionOutcome]:
        outcome = self._engine.evaluate(check, now)
        if outcome is None:
            return None

        await self._persist(outcome)
        logger.info(
            "Status transition applied",
            extra={
                "check_id": check.id,
                "previous_status": outcome.previous_status.value,
                "new_status": outcome.new_status.value,
                "rule": outcome.rule.name if outcome.rule else None,
            }
        )
        await self._notify(outcome)
        return outcome

    async def _persist(self, outcome: TransitionOutcome) -> None:
        await self._check_repo.save(outcome.check)
        await self._history_repo.append(outcome.record)

    async def _notify(self, outcome: TransitionOutcome) -> None:
        notifications = build_status_change_notifications(outcome, self._base_url, self._reviewers)
        await self._gateway.send_many(notifications)


class StatusHistoryService:
    """Read side of the status change audit log."""

    def __init__(self, history_repository: IStatusHistoryRepository):
        self._history_repo = history_repository

    async def get_check_history(self, check_id: str) -> List[StatusChangeRecord]:
        return await self._history_repo.list_by_check(check_id)

    async def get_candidate_history(self, candidate_id: str) -> List[StatusChangeRecord]:
        return await self._history_repo.list_by_candidate(candidate_id)

    async def filter_history(self, query: StatusHistoryQuery) -> List[StatusChangeRecord]:
        return await self._history_repo.query(query)

    async def get_stats(self, now: Optional[datetime] = None) -> dict:
        """Totals, last-30-day count, automated/manual split and counts by new status."""
        now = now or datetime.now(timezone.utc)
        counts = await self._history_repo.get_counts(now - timedelta(days=30))

        return {
            "total_changes": counts["total"],
            "changes_last_30_days": counts["since"],
            "automated_changes": counts["automated"],
            "manual_changes": counts["total"] - counts["automated"],
            "by_status": dict(counts["by_status"]),
        }

    async def export_csv(self, query: Optional[StatusHistoryQuery] = None) -> str:
        """Filtered history as CSV text."""
        records = await self._history_repo.query(query or StatusHistoryQuery(limit=5000))

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow([
            "Timestamp", "Candidate", "Check ID", "Previous Status", "New Status",
            "Changed By", "Reason", "Automated", "Notes",
        ])
        for record in records:
            writer.writerow([
                record.timestamp.isoformat(),
                record.candidate_name,
                record.check_id,
                record.previous_status.value,
                record.new_status.value,
                record.changed_by_name,
                record.reason or "",
                "Yes" if record.automated else "No",
                record.notes or "",
            ])
        return buffer.getvalue()
