from datetime import timedelta

import pytest

from checktrack.checks.domain import StatusChangeRecord
from checktrack.checks.infrastructure import InMemoryCheckRepository
from checktrack.config import CheckStatus, DigestFrequency, PendingActionType, Priority
from checktrack.core.exceptions import ResourceNotFoundException, ValidationException
from checktrack.digest.application import DigestAggregator, DigestDeliveryService
from checktrack.digest.domain import (
    DigestPreferences,
    collect_pending_actions,
    consent_priority,
    is_digest_due,
)
from checktrack.digest.infrastructure import InMemoryDigestPreferencesRepository
from checktrack.policy import PolicyConfigManager
from checktrack.sla.application import SLAService

from conftest import MONDAY, make_check

NOW = MONDAY + timedelta(days=20)


def record(check_id, timestamp, new_status=CheckStatus.IN_PROGRESS):
    return StatusChangeRecord(
        check_id=check_id,
        candidate_id=f"cand-{check_id}",
        candidate_name="Jordan Reyes",
        previous_status=CheckStatus.PENDING_CONSENT,
        new_status=new_status,
        changed_by="system",
        changed_by_name="Automated System",
        timestamp=timestamp,
        automated=True,
    )


def test_consent_priority_bands():
    assert consent_priority(2) == Priority.LOW
    assert consent_priority(4) == Priority.MEDIUM
    assert consent_priority(8) == Priority.HIGH


def test_pending_actions_are_sorted_by_priority_then_age():
    checks = [
        make_check("consent-low", status="pending-consent", status_entered_at=NOW - timedelta(days=1)),
        make_check("consent-high", status="pending-consent", status_entered_at=NOW - timedelta(days=9)),
        make_check("review", status="issues-found", completed_date=NOW - timedelta(days=2)),
        make_check("stalled", status="in-progress", status_entered_at=NOW - timedelta(days=15)),
        make_check("fresh", status="in-progress", status_entered_at=NOW - timedelta(days=3)),
        make_check("reviewed", status="issues-found", reviewed_by="hr-1"),
    ]

    actions = collect_pending_actions(checks, NOW)

    assert [a.check_id for a in actions] == ["consent-high", "review", "stalled", "consent-low"]
    assert actions[1].action_type == PendingActionType.REQUIRES_REVIEW
    assert actions[2].priority == Priority.MEDIUM


def test_consent_staleness_threshold():
    checks = [make_check(status="pending-consent", status_entered_at=NOW - timedelta(days=1))]
    assert collect_pending_actions(checks, NOW, consent_stale_days=2) == []
    assert len(collect_pending_actions(checks, NOW, consent_stale_days=1)) == 1


def test_digest_due_logic():
    daily = DigestPreferences(user_id="u1", frequency="daily")
    assert is_digest_due(daily, NOW)

    daily.last_sent_at = NOW - timedelta(hours=23)
    assert not is_digest_due(daily, NOW)
    daily.last_sent_at = NOW - timedelta(hours=24)
    assert is_digest_due(daily, NOW)

    weekly = DigestPreferences(user_id="u2", frequency="weekly", last_sent_at=NOW - timedelta(days=6))
    assert not is_digest_due(weekly, NOW)
    assert not is_digest_due(DigestPreferences(user_id="u3", frequency="disabled"), NOW)


def test_preferences_require_user():
    with pytest.raises(ValidationException):
        DigestPreferences(user_id="")


@pytest.fixture
def prefs_repo():
    return InMemoryDigestPreferencesRepository()


def delivery(checks, history_repo, prefs_repo, gateway, with_sla=False):
    check_repo = InMemoryCheckRepository(checks)
    sla_service = SLAService(check_repo, PolicyConfigManager()) if with_sla else None
    aggregator = DigestAggregator(check_repo, history_repo, sla_service=sla_service)
    return DigestDeliveryService(prefs_repo, aggregator, gateway)


@pytest.mark.asyncio
async def test_empty_digest_is_never_sent(history_repo, prefs_repo, gateway):
    await prefs_repo.save(DigestPreferences(user_id="u1"))
    service = delivery([make_check(status="completed")], history_repo, prefs_repo, gateway)

    assert await service.process_pending_digests(NOW) == []
    assert gateway.sent == []
    assert (await prefs_repo.get("u1")).last_sent_at is None


@pytest.mark.asyncio
async def test_digest_covers_window_and_updates_last_sent(history_repo, prefs_repo, gateway):
    await history_repo.append(record("a", NOW - timedelta(hours=2)))
    await history_repo.append(record("b", NOW - timedelta(days=3)))
    await prefs_repo.save(DigestPreferences(user_id="u1", email_address="u1@example.com"))
    service = delivery([make_check("a")], history_repo, prefs_repo, gateway)

    [digest] = await service.process_pending_digests(NOW)

    assert [r.check_id for r in digest.status_changes] == ["a"]
    assert digest.period_from == NOW - timedelta(days=1)
    assert (await prefs_repo.get("u1")).last_sent_at == NOW

    [notification] = gateway.sent
    assert notification.recipient == "u1"
    assert notification.title == "Background Check Daily Digest"
    assert notification.metadata["email_address"] == "u1@example.com"

    # Not due again within the window.
    assert await service.process_pending_digests(NOW + timedelta(hours=1)) == []


@pytest.mark.asyncio
async def test_include_flags_shape_the_payload(history_repo, prefs_repo, gateway):
    await history_repo.append(record("a", NOW - timedelta(hours=2)))
    await prefs_repo.save(DigestPreferences(user_id="u1", include_pending_actions=False, include_overdue_items=False))
    service = delivery([make_check("a")], history_repo, prefs_repo, gateway)

    await service.process_pending_digests(NOW)

    payload = gateway.sent[0].metadata["digest"]
    assert "status_changes" in payload
    assert "pending_actions" not in payload
    assert "overdue_items" not in payload


@pytest.mark.asyncio
async def test_preview_includes_overdue_items_without_sending(history_repo, prefs_repo, gateway):
    await prefs_repo.save(DigestPreferences(user_id="u1", frequency="weekly"))
    checks = [make_check("late", status="in-progress")]
    service = delivery(checks, history_repo, prefs_repo, gateway, with_sla=True)

    digest = await service.preview("u1", NOW)

    assert digest.frequency == DigestFrequency.WEEKLY
    assert [item.check_id for item in digest.overdue_items] == ["late"]
    assert digest.summary.in_progress_checks == 1
    assert gateway.sent == []
    assert (await prefs_repo.get("u1")).last_sent_at is None

    with pytest.raises(ResourceNotFoundException):
        await service.preview("nobody", NOW)


@pytest.mark.asyncio
async def test_saving_preferences_keeps_last_sent(history_repo, prefs_repo, gateway):
    service = delivery([], history_repo, prefs_repo, gateway)
    await prefs_repo.save(DigestPreferences(user_id="u1", last_sent_at=NOW))

    saved = await service.save_preferences(DigestPreferences(user_id="u1", frequency="weekly"))

    assert saved.frequency == DigestFrequency.WEEKLY
    assert saved.last_sent_at == NOW
