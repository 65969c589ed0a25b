"""
SLA Domain Entities
===================

Computed SLA projections. Never stored: recomputed on demand from the
check, its status configuration and the evaluation time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from checktrack.checks.domain import BackgroundCheck
from checktrack.config import CheckStatus, SLAState
from checktrack.sla.domain.value_objects import SLACalculator, SLAConfiguration


@dataclass(frozen=True)
class SLAStatus:
    """SLA position of one check in its current status."""

    check_id: str
    candidate_name: str
    status: CheckStatus
    configuration: SLAConfiguration
    start_date: datetime
    target_date: datetime
    days_elapsed: int
    days_remaining: int
    percent_complete: float
    sla_status: SLAState
    breached: bool
    breached_date: Optional[datetime] = None

    @classmethod
    def calculate(
        cls,
        check: BackgroundCheck,
        configuration: SLAConfiguration,
        now: datetime,
        track_status_entry: bool = True
    ) -> "SLAStatus":
        """
        Compute the SLA projection of ``check`` at ``now``.

        percent_complete is capped for display; classification uses the
        unclamped value.
        """
        business = configuration.business_days_only
        start = check.status_start_date(track_status_entry)

        elapsed = SLACalculator.days_elapsed(start, now, business)
        target = SLACalculator.target_date(start, configuration.target_days, business)
        remaining = SLACalculator.days_remaining(now, target, business)
        raw_percent = SLACalculator.percent_complete(elapsed, configuration.target_days)

        state = SLACalculator.classify(
            elapsed,
            configuration.target_days,
            raw_percent,
            configuration.warning_threshold_percent,
            configuration.critical_threshold_percent,
        )
        breached = state == SLAState.BREACHED

        return cls(
            check_id=check.id,
            candidate_name=check.candidate_name,
            status=check.status,
            configuration=configuration,
            start_date=start,
            target_date=target,
            days_elapsed=elapsed,
            days_remaining=remaining,
            percent_complete=SLACalculator.display_percent(raw_percent),
            sla_status=state,
            breached=breached,
            breached_date=target if breached else None,
        )


@dataclass(frozen=True)
class SLAStats:
    """Aggregate SLA counts over a set of statuses."""

    total: int
    on_track: int
    warning: int
    critical: int
    breached: int
    average_percent_complete: float

    @classmethod
    def from_statuses(cls, statuses: Iterable[SLAStatus]) -> "SLAStats":
        statuses = list(statuses)
        total = len(statuses)

        def count(state: SLAState) -> int:
            return sum(1 for s in statuses if s.sla_status == state)

        average = sum(s.percent_complete for s in statuses) / total if total else 0.0
        return cls(
            total=total,
            on_track=count(SLAState.ON_TRACK),
            warning=count(SLAState.WARNING),
            critical=count(SLAState.CRITICAL),
            breached=sum(1 for s in statuses if s.breached),
            average_percent_complete=round(average, 1),
        )
