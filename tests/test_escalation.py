import asyncio
from datetime import timedelta

import pytest

from checktrack.config import CheckStatus, NotificationSeverity, Priority
from checktrack.core.exceptions import DomainException, RepositoryException, ResourceNotFoundException
from checktrack.escalation.application import EscalationProcessor, EscalationService
from checktrack.escalation.domain import EscalationRule, is_eligible, within_cooldown
from checktrack.escalation.infrastructure import InMemoryEscalationEventRepository
from checktrack.checks.infrastructure import InMemoryCheckRepository
from checktrack.policy import LifecyclePolicy, PolicyConfigManager
from checktrack.shared.infrastructure.locks import KeyedLockRegistry

from conftest import MONDAY, make_check

CONSENT_RULE = EscalationRule(
    id="esc-consent",
    name="Consent Overdue",
    status="pending-consent",
    days_threshold=5,
    escalate_to=["manager-1", "hr-director"],
    priority=Priority.HIGH,
)


@pytest.fixture
def policy():
    return PolicyConfigManager(LifecyclePolicy(escalation_rules=[CONSENT_RULE]))


@pytest.fixture
def event_repo():
    return InMemoryEscalationEventRepository()


def processor_for(checks, event_repo, policy, gateway):
    return EscalationProcessor(InMemoryCheckRepository(checks), event_repo, policy, gateway, cooldown_hours=24)


def test_eligibility_uses_status_and_threshold():
    check = make_check(status="pending-consent")
    assert not is_eligible(CONSENT_RULE, check, MONDAY + timedelta(days=4, hours=23))
    assert is_eligible(CONSENT_RULE, check, MONDAY + timedelta(days=5))
    assert not is_eligible(CONSENT_RULE, make_check(status="in-progress"), MONDAY + timedelta(days=30))


def test_cooldown_window():
    now = MONDAY + timedelta(days=10)
    assert within_cooldown([now - timedelta(hours=23)], now)
    assert not within_cooldown([now - timedelta(hours=24)], now)
    assert not within_cooldown([], now)


@pytest.mark.asyncio
async def test_escalation_notifies_targets_and_initiator(event_repo, policy, gateway):
    processor = processor_for([make_check(status="pending-consent")], event_repo, policy, gateway)

    [event] = await processor.process(MONDAY + timedelta(days=6))

    assert event.rule_id == "esc-consent"
    assert event.days_pending == 6
    assert event.status == CheckStatus.PENDING_CONSENT
    assert sorted(n.recipient for n in gateway.sent) == ["hr-director", "manager-1", "recruiter-1"]

    target = gateway.for_recipient("manager-1")[0]
    assert target.title == "Background Check Escalation: Consent Overdue"
    assert target.severity == NotificationSeverity.WARNING
    assert target.priority == Priority.HIGH
    assert "6 days" in target.message

    initiator = gateway.for_recipient("recruiter-1")[0]
    assert initiator.title == "Background Check Escalated"
    assert initiator.metadata["event_kind"] == "escalation-initiator"


@pytest.mark.asyncio
async def test_cycles_within_a_day_escalate_once(event_repo, policy, gateway):
    processor = processor_for([make_check(status="pending-consent")], event_repo, policy, gateway)
    first = MONDAY + timedelta(days=6)

    assert len(await processor.process(first)) == 1
    assert await processor.process(first + timedelta(hours=1)) == []
    assert await processor.process(first + timedelta(hours=23, minutes=59)) == []
    assert len(await processor.process(first + timedelta(hours=24))) == 1
    assert len(await event_repo.list()) == 2


@pytest.mark.asyncio
async def test_cooldown_survives_a_new_processor(event_repo, policy, gateway):
    checks = [make_check(status="pending-consent")]
    first = MONDAY + timedelta(days=6)

    await processor_for(checks, event_repo, policy, gateway).process(first)
    restarted = processor_for(checks, event_repo, policy, gateway)

    assert await restarted.process(first + timedelta(hours=2)) == []


@pytest.mark.asyncio
async def test_disabled_rules_are_ignored(event_repo, gateway):
    policy = PolicyConfigManager(LifecyclePolicy(
        escalation_rules=[CONSENT_RULE.model_copy(update={"enabled": False})]
    ))
    processor = processor_for([make_check(status="pending-consent")], event_repo, policy, gateway)
    assert await processor.process(MONDAY + timedelta(days=30)) == []


@pytest.mark.asyncio
async def test_acknowledge_resolve_and_stats(event_repo, policy, gateway):
    processor = processor_for([make_check(status="pending-consent")], event_repo, policy, gateway)
    escalated_at = MONDAY + timedelta(days=6)
    [event] = await processor.process(escalated_at)

    service = EscalationService(event_repo, policy)
    acknowledged = await service.acknowledge(event.id, "manager-1", now=escalated_at + timedelta(hours=1))
    assert acknowledged.acknowledged and acknowledged.is_active

    stats = await service.get_stats(now=escalated_at + timedelta(hours=2))
    assert stats["active_escalations"] == 1
    assert stats["acknowledged_not_resolved"] == 1

    resolved = await service.resolve(event.id, "manager-1", "Consent chased", now=escalated_at + timedelta(hours=4))
    assert resolved.notes == "Consent chased"
    assert (await service.list_events(check_id="chk-1", active_only=True)) == []

    with pytest.raises(DomainException):
        await service.resolve(event.id, "manager-1", now=escalated_at + timedelta(hours=5))

    stats = await service.get_stats(now=escalated_at + timedelta(hours=5))
    assert stats["total_escalations"] == 1
    assert stats["active_escalations"] == 0
    assert stats["average_resolution_hours"] == 4


@pytest.mark.asyncio
async def test_rule_administration(event_repo, policy):
    service = EscalationService(event_repo, policy)
    service.save_rule(CONSENT_RULE.model_copy(update={"id": "esc-extra", "days_threshold": 9}))

    assert service.get_rule("esc-extra").days_threshold == 9
    service.delete_rule("esc-extra")
    with pytest.raises(ResourceNotFoundException):
        service.get_rule("esc-extra")
    with pytest.raises(ResourceNotFoundException):
        service.delete_rule("esc-extra")
    with pytest.raises(ResourceNotFoundException):
        await service.get_event("esc-missing")


class YieldingEventRepository(InMemoryEscalationEventRepository):
    """Suspends on every history read, like a database round trip."""

    async def list_by_check(self, check_id):
        events = await super().list_by_check(check_id)
        await asyncio.sleep(0)
        return events


class UnavailableForCheckRepository(InMemoryEscalationEventRepository):
    def __init__(self, failing_check_id):
        super().__init__()
        self._failing_check_id = failing_check_id

    async def list_by_check(self, check_id):
        if check_id == self._failing_check_id:
            raise RepositoryException("Event log unavailable")
        return await super().list_by_check(check_id)


@pytest.mark.asyncio
async def test_cooldown_spans_all_rules(event_repo, gateway):
    early_rule = CONSENT_RULE.model_copy(update={"id": "esc-consent-early", "days_threshold": 3})
    policy = PolicyConfigManager(LifecyclePolicy(escalation_rules=[CONSENT_RULE, early_rule]))
    processor = processor_for([make_check(status="pending-consent")], event_repo, policy, gateway)

    [event] = await processor.process(MONDAY + timedelta(days=6))

    assert event.rule_id == "esc-consent"
    assert len(await event_repo.list()) == 1


@pytest.mark.asyncio
async def test_overlapping_cycles_escalate_once(policy, gateway):
    event_repo = YieldingEventRepository()
    locks = KeyedLockRegistry()
    checks = [make_check(status="pending-consent")]
    first, second = (
        EscalationProcessor(InMemoryCheckRepository(checks), event_repo, policy, gateway, lock_registry=locks)
        for _ in range(2)
    )
    now = MONDAY + timedelta(days=6)

    await asyncio.gather(first.process(now), second.process(now))

    assert len(await event_repo.list()) == 1


@pytest.mark.asyncio
async def test_failure_on_one_check_does_not_stop_the_cycle(policy, gateway):
    event_repo = UnavailableForCheckRepository("broken")
    checks = [make_check("broken", status="pending-consent"), make_check("chk-2", status="pending-consent")]
    processor = processor_for(checks, event_repo, policy, gateway)

    events = await processor.process(MONDAY + timedelta(days=6))

    assert [e.check_id for e in events] == ["chk-2"]
