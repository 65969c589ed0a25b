"""Shared fixtures: fixed clocks, check factory and in-memory collaborators."""

from datetime import datetime, timezone

import pytest

from checktrack.checks.domain import BackgroundCheck, CheckResult, CheckTypeRequirement
from checktrack.checks.infrastructure import InMemoryCheckRepository, InMemoryStatusHistoryRepository
from checktrack.notifications import InMemoryNotificationGateway

# Monday
MONDAY = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def make_check(
    check_id="chk-1",
    status="in-progress",
    initiated_date=MONDAY,
    check_types=("criminal", "employment"),
    results=(),
    consent_given=False,
    status_entered_at=None,
    **kwargs
):
    """Build a BackgroundCheck; results are (check_type, status) pairs."""
    return BackgroundCheck(
        id=check_id,
        candidate_id=kwargs.pop("candidate_id", f"cand-{check_id}"),
        candidate_name=kwargs.pop("candidate_name", "Jordan Reyes"),
        status=status,
        initiated_by=kwargs.pop("initiated_by", "recruiter-1"),
        initiated_by_name=kwargs.pop("initiated_by_name", "Sam Recruiter"),
        initiated_date=initiated_date,
        check_types=[CheckTypeRequirement(type=t) for t in check_types],
        results=[
            CheckResult(check_type=t, status=s, completed_date=initiated_date)
            for t, s in results
        ],
        consent_given=consent_given,
        status_entered_at=status_entered_at,
        **kwargs
    )


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def check_repo():
    return InMemoryCheckRepository()


@pytest.fixture
def history_repo():
    return InMemoryStatusHistoryRepository()


@pytest.fixture
def gateway():
    return InMemoryNotificationGateway()
