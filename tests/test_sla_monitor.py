from datetime import timedelta

import pytest

from checktrack.checks.infrastructure import InMemoryCheckRepository
from checktrack.config import CheckStatus, NotificationSeverity, Priority, SLAState
from checktrack.core.exceptions import ResourceNotFoundException
from checktrack.notifications import InMemoryNotificationGateway
from checktrack.policy import LifecyclePolicy, PolicyConfigManager
from checktrack.sla.application import SLAMonitorService, SLAService
from checktrack.sla.domain import SLAConfiguration
from checktrack.sla.infrastructure import InMemorySLANotificationLogRepository

from conftest import MONDAY, make_check

IN_PROGRESS_SLA = SLAConfiguration(
    id="sla-in-progress",
    status="in-progress",
    name="Check Processing",
    target_days=10,
    warning_threshold_percent=50,
    critical_threshold_percent=80,
)


def build(checks, configuration=IN_PROGRESS_SLA):
    policy = PolicyConfigManager(LifecyclePolicy(sla_configurations=[configuration]))
    sla_service = SLAService(InMemoryCheckRepository(checks), policy)
    return sla_service, InMemorySLANotificationLogRepository()


@pytest.mark.asyncio
async def test_each_level_is_notified_once(gateway):
    sla_service, log = build([make_check()])
    monitor = SLAMonitorService(sla_service, log, gateway)

    warning_day = MONDAY + timedelta(days=4)
    [warning] = await monitor.process_notifications(warning_day)
    assert warning.title == "SLA Warning: Jordan Reyes"
    assert warning.metadata["event_kind"] == "sla-warning"
    assert warning.severity == NotificationSeverity.INFO
    assert await monitor.process_notifications(warning_day + timedelta(hours=1)) == []

    [critical] = await monitor.process_notifications(MONDAY + timedelta(days=10))
    assert critical.severity == NotificationSeverity.WARNING
    assert critical.priority == Priority.HIGH

    [breached] = await monitor.process_notifications(MONDAY + timedelta(days=14))
    assert breached.title == "SLA Breached: Jordan Reyes"
    assert breached.severity == NotificationSeverity.ERROR
    assert breached.priority == Priority.CRITICAL

    assert await monitor.process_notifications(MONDAY + timedelta(days=20)) == []
    assert len(log) == 3
    assert [n.recipient for n in gateway.sent] == ["recruiter-1"] * 3


@pytest.mark.asyncio
async def test_breach_sends_only_the_breach_level(gateway):
    sla_service, log = build([make_check()])
    monitor = SLAMonitorService(sla_service, log, gateway)

    [notification] = await monitor.process_notifications(MONDAY + timedelta(days=21))
    assert notification.metadata["sla_status"] == "breached"


@pytest.mark.asyncio
async def test_notify_flags_are_respected(gateway):
    quiet = IN_PROGRESS_SLA.model_copy(update={"notify_at_warning": False})
    sla_service, log = build([make_check()], quiet)
    monitor = SLAMonitorService(sla_service, log, gateway)

    assert await monitor.process_notifications(MONDAY + timedelta(days=4)) == []
    assert len(log) == 0


@pytest.mark.asyncio
async def test_unconfigured_and_terminal_checks_are_unmonitored(gateway):
    sla_service, log = build([
        make_check("a", status="pending-consent"),
        make_check("b", status="completed"),
    ])
    monitor = SLAMonitorService(sla_service, log, gateway)

    assert await monitor.process_notifications(MONDAY + timedelta(days=60)) == []
    assert await sla_service.get_sla_status("a", MONDAY) is None


@pytest.mark.asyncio
async def test_dashboard_queries():
    sla_service, _ = build([
        make_check("on-track", status_entered_at=MONDAY + timedelta(days=9)),
        make_check("critical"),
        make_check("breached", initiated_date=MONDAY - timedelta(days=21)),
    ])
    now = MONDAY + timedelta(days=10)

    assert [s.check_id for s in await sla_service.get_breached(now)] == ["breached"]
    assert [s.check_id for s in await sla_service.get_critical(now)] == ["critical"]

    stats = await sla_service.get_stats(now)
    assert (stats.total, stats.on_track, stats.critical, stats.breached) == (3, 1, 1, 1)

    with pytest.raises(ResourceNotFoundException):
        await sla_service.get_sla_status("missing", now)


class RejectingGateway(InMemoryNotificationGateway):
    async def send(self, notification):
        return False


@pytest.mark.asyncio
async def test_undelivered_notification_is_retried(gateway):
    sla_service, log = build([make_check()])
    breach_day = MONDAY + timedelta(days=14)

    assert await SLAMonitorService(sla_service, log, RejectingGateway()).process_notifications(breach_day) == []
    assert len(log) == 0

    [retried] = await SLAMonitorService(sla_service, log, gateway).process_notifications(
        breach_day + timedelta(hours=1)
    )
    assert retried.metadata["sla_status"] == "breached"


@pytest.mark.asyncio
async def test_each_status_gets_its_own_breach_notification(gateway):
    consent_sla = SLAConfiguration(
        id="sla-consent",
        status="pending-consent",
        name="Consent Collection",
        target_days=10,
        warning_threshold_percent=50,
        critical_threshold_percent=80,
    )
    check_repo = InMemoryCheckRepository([make_check(status="pending-consent", status_entered_at=MONDAY)])
    policy = PolicyConfigManager(LifecyclePolicy(sla_configurations=[consent_sla, IN_PROGRESS_SLA]))
    monitor = SLAMonitorService(SLAService(check_repo, policy), InMemorySLANotificationLogRepository(), gateway)

    [consent_breach] = await monitor.process_notifications(MONDAY + timedelta(days=14))
    assert consent_breach.metadata["status"] == "pending-consent"

    check = await check_repo.get_by_id("chk-1")
    check.consent_given = True
    check.move_to(CheckStatus.IN_PROGRESS, MONDAY + timedelta(days=15))
    await check_repo.save(check)

    [processing_breach] = await monitor.process_notifications(MONDAY + timedelta(days=29))
    assert processing_breach.metadata["status"] == "in-progress"
    assert processing_breach.metadata["sla_status"] == "breached"
