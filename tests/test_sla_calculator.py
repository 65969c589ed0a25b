from datetime import timedelta

import pytest
from pydantic import ValidationError

from checktrack.config import SLAState
from checktrack.sla.domain import (
    DEFAULT_SLA_CONFIGURATIONS,
    SLACalculator,
    SLAConfiguration,
    SLAStats,
    SLAStatus,
    find_configuration,
)

from conftest import MONDAY, make_check


def config(**overrides):
    values = dict(
        id="sla-test",
        status="in-progress",
        name="Test",
        target_days=5,
        business_days_only=True,
        warning_threshold_percent=60,
        critical_threshold_percent=90,
    )
    values.update(overrides)
    return SLAConfiguration(**values)


def test_check_initiated_monday_is_breached_the_following_monday():
    check = make_check(status="in-progress")
    status = SLAStatus.calculate(check, config(), MONDAY + timedelta(days=7))

    assert status.days_elapsed == 6
    assert status.breached is True
    assert status.sla_status == SLAState.BREACHED
    assert status.breached_date == status.target_date
    assert status.target_date == MONDAY + timedelta(days=7)


def test_on_track_warning_and_critical_bands():
    check = make_check()
    cfg = config(target_days=10, warning_threshold_percent=50, critical_threshold_percent=80)

    assert SLAStatus.calculate(check, cfg, MONDAY + timedelta(days=1)).sla_status == SLAState.ON_TRACK
    assert SLAStatus.calculate(check, cfg, MONDAY + timedelta(days=4)).sla_status == SLAState.WARNING
    assert SLAStatus.calculate(check, cfg, MONDAY + timedelta(days=10)).sla_status == SLAState.CRITICAL


def test_breach_overrides_thresholds():
    # Thresholds above 100% would never classify as critical on their own.
    assert SLACalculator.classify(
        days_elapsed=6,
        target_days=5,
        percent_complete=120,
        warning_threshold_percent=500,
        critical_threshold_percent=900,
    ) == SLAState.BREACHED


def test_days_elapsed_is_monotonic():
    check = make_check()
    previous = None
    for hours in range(0, 24 * 30, 7):
        elapsed = SLAStatus.calculate(check, config(), MONDAY + timedelta(hours=hours)).days_elapsed
        if previous is not None:
            assert elapsed >= previous
        previous = elapsed


def test_calendar_mode_counts_whole_days():
    check = make_check()
    cfg = config(business_days_only=False, target_days=3)
    status = SLAStatus.calculate(check, cfg, MONDAY + timedelta(days=2, hours=12))

    assert status.days_elapsed == 2
    assert status.days_remaining == 1
    assert status.breached is False


def test_percent_complete_is_capped_for_display():
    check = make_check()
    status = SLAStatus.calculate(check, config(target_days=1), MONDAY + timedelta(days=14))
    assert status.percent_complete == 150
    assert status.breached is True


def test_status_entry_date_drives_the_clock():
    check = make_check(status_entered_at=MONDAY + timedelta(days=7))
    now = MONDAY + timedelta(days=8)

    tracked = SLAStatus.calculate(check, config(), now, track_status_entry=True)
    legacy = SLAStatus.calculate(check, config(), now, track_status_entry=False)

    assert tracked.days_elapsed == 2
    assert legacy.days_elapsed == 7
    assert legacy.breached and not tracked.breached


def test_warning_must_be_below_critical():
    with pytest.raises(ValidationError):
        config(warning_threshold_percent=90, critical_threshold_percent=90)


def test_find_configuration_skips_disabled():
    configs = [config(id="a", enabled=False), config(id="b")]
    assert find_configuration(configs, "in-progress").id == "b"
    assert find_configuration(configs, "completed") is None


def test_defaults_cover_every_open_status():
    statuses = {c.status.value for c in DEFAULT_SLA_CONFIGURATIONS}
    assert statuses == {"not-started", "pending-consent", "in-progress", "issues-found"}


def test_stats_from_statuses():
    check = make_check()
    statuses = [
        SLAStatus.calculate(check, config(target_days=10), MONDAY + timedelta(days=1)),
        SLAStatus.calculate(check, config(target_days=1), MONDAY + timedelta(days=7)),
    ]
    stats = SLAStats.from_statuses(statuses)

    assert stats.total == 2
    assert stats.on_track == 1
    assert stats.breached == 1
    assert stats.average_percent_complete == 85.0
    assert SLAStats.from_statuses([]).average_percent_complete == 0.0
