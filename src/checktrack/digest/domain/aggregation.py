"""
Digest Aggregation
==================

Pure functions that turn checks and audit records into a digest.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from checktrack.checks.domain import BackgroundCheck, StatusChangeRecord
from checktrack.config import CheckStatus, DigestFrequency, PendingActionType, Priority
from checktrack.core.calendar import calendar_days_between
from checktrack.digest.domain.entities import (
    DigestData, DigestPreferences, DigestSummary, OverdueItem, PendingAction,
)

DIGEST_WINDOWS = {
    DigestFrequency.DAILY: timedelta(days=1),
    DigestFrequency.WEEKLY: timedelta(days=7),
}

PRIORITY_ORDER = {Priority.CRITICAL: -1, Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

INCOMPLETE_CHECK_DAYS = 14
INCOMPLETE_CHECK_HIGH_DAYS = 30


def window_for(frequency: DigestFrequency) -> Optional[timedelta]:
    """Look-back window; None for disabled subscriptions."""
    return DIGEST_WINDOWS.get(DigestFrequency(frequency))


def consent_priority(days: int) -> Priority:
    if days > 7:
        return Priority.HIGH
    if days > 3:
        return Priority.MEDIUM
    return Priority.LOW


def collect_pending_actions(
    checks: Iterable[BackgroundCheck],
    now: datetime,
    consent_stale_days: int = 0,
    track_status_entry: bool = True
) -> List[PendingAction]:
    """Pending actions across ``checks``, sorted by priority then age."""
    actions = []

    for check in checks:
        if check.status == CheckStatus.PENDING_CONSENT:
            days = calendar_days_between(check.status_start_date(track_status_entry), now)
            if days >= consent_stale_days:
                actions.append(PendingAction(
                    check_id=check.id,
                    candidate_name=check.candidate_name,
                    action_type=PendingActionType.PENDING_CONSENT,
                    description="Waiting for candidate consent",
                    days_pending=days,
                    priority=consent_priority(days),
                ))

        elif check.status == CheckStatus.ISSUES_FOUND and not check.reviewed_by:
            days = calendar_days_between(check.completed_date or check.initiated_date, now)
            actions.append(PendingAction(
                check_id=check.id,
                candidate_name=check.candidate_name,
                action_type=PendingActionType.REQUIRES_REVIEW,
                description="Issues found - requires review",
                days_pending=days,
                priority=Priority.HIGH,
            ))

        elif check.status == CheckStatus.IN_PROGRESS:
            days = calendar_days_between(check.status_start_date(track_status_entry), now)
            if days > INCOMPLETE_CHECK_DAYS:
                actions.append(PendingAction(
                    check_id=check.id,
                    candidate_name=check.candidate_name,
                    action_type=PendingActionType.INCOMPLETE_CHECK,
                    description=f"In progress for {days} days",
                    days_pending=days,
                    priority=Priority.HIGH if days > INCOMPLETE_CHECK_HIGH_DAYS else Priority.MEDIUM,
                ))

    return sort_pending_actions(actions)


def sort_pending_actions(actions: Iterable[PendingAction]) -> List[PendingAction]:
    """High before medium before low; longer-waiting first within a priority."""
    return sorted(actions, key=lambda a: (PRIORITY_ORDER[a.priority], -a.days_pending))


def summarize(checks: Sequence[BackgroundCheck]) -> DigestSummary:
    def count(status: CheckStatus) -> int:
        return sum(1 for check in checks if check.status == status)

    return DigestSummary(
        total_checks=len(checks),
        completed_checks=count(CheckStatus.COMPLETED),
        in_progress_checks=count(CheckStatus.IN_PROGRESS),
        issues_found=count(CheckStatus.ISSUES_FOUND),
        pending_consent=count(CheckStatus.PENDING_CONSENT),
    )


def changes_in_window(
    records: Iterable[StatusChangeRecord],
    period_from: datetime,
    period_to: datetime
) -> List[StatusChangeRecord]:
    """Records with period_from <= timestamp <= period_to, oldest first."""
    selected = [r for r in records if period_from <= r.timestamp <= period_to]
    return sorted(selected, key=lambda r: r.timestamp)


def build_digest_data(
    user_id: str,
    frequency: DigestFrequency,
    now: datetime,
    checks: Sequence[BackgroundCheck],
    records: Iterable[StatusChangeRecord],
    overdue_items: Sequence[OverdueItem] = (),
    consent_stale_days: int = 0,
    track_status_entry: bool = True
) -> Optional[DigestData]:
    """Assemble a digest; None when the frequency is disabled."""
    window = window_for(frequency)
    if window is None:
        return None

    period_from = now - window
    return DigestData(
        user_id=user_id,
        frequency=DigestFrequency(frequency),
        period_from=period_from,
        period_to=now,
        status_changes=changes_in_window(records, period_from, now),
        pending_actions=collect_pending_actions(checks, now, consent_stale_days, track_status_entry),
        overdue_items=list(overdue_items),
        summary=summarize(checks),
    )


def is_digest_due(preferences: DigestPreferences, now: datetime) -> bool:
    """Due when never sent, or when a full window has passed since the last send."""
    window = window_for(preferences.frequency)
    if window is None:
        return False
    if preferences.last_sent_at is None:
        return True
    return now - preferences.last_sent_at >= window
