import asyncio
from datetime import timedelta

import pytest

from checktrack.checks.application import StatusHistoryQuery, StatusHistoryService, StatusTransitionService
from checktrack.checks.domain import CheckResult, StatusChangeRecord
from checktrack.config import CheckStatus, NotificationSeverity
from checktrack.core.exceptions import (
    DomainException, InvalidTransitionException, ResourceNotFoundException,
)

from conftest import MONDAY, make_check

NOW = MONDAY + timedelta(days=1)


@pytest.fixture
def service(check_repo, history_repo, gateway):
    return StatusTransitionService(
        check_repo, history_repo, gateway, reviewers=["hr-director", "recruiter-1"]
    )


@pytest.mark.asyncio
async def test_register_rejects_duplicates(service):
    await service.register_check(make_check())
    with pytest.raises(DomainException):
        await service.register_check(make_check())


@pytest.mark.asyncio
async def test_unknown_check_raises_not_found(service):
    with pytest.raises(ResourceNotFoundException):
        await service.evaluate("missing", NOW)


@pytest.mark.asyncio
async def test_consent_moves_check_and_notifies_initiator(service, history_repo, gateway):
    await service.register_check(make_check(status="pending-consent"))

    outcome = await service.record_consent("chk-1", now=NOW)

    assert outcome.new_status == CheckStatus.IN_PROGRESS
    stored = await service.get_check("chk-1")
    assert stored.consent_given is True
    assert stored.consent_date == NOW
    assert len(history_repo.records) == 1

    [notification] = gateway.sent
    assert notification.recipient == "recruiter-1"
    assert notification.title == "Background Check Status Update"
    assert notification.severity == NotificationSeverity.INFO
    assert notification.metadata["check_id"] == "chk-1"


@pytest.mark.asyncio
async def test_evaluate_twice_appends_one_record(service, history_repo):
    await service.register_check(make_check(status="pending-consent", consent_given=True))

    assert await service.evaluate("chk-1", NOW) is not None
    assert await service.evaluate("chk-1", NOW) is None
    assert len(history_repo.records) == 1


@pytest.mark.asyncio
async def test_issues_found_fans_out_to_reviewers(service, gateway):
    await service.register_check(make_check(results=[("criminal", "clear")]))

    outcome = await service.record_result(
        "chk-1", CheckResult(check_type="employment", status="not-clear"), now=NOW
    )

    assert outcome.new_status == CheckStatus.ISSUES_FOUND
    recipients = [n.recipient for n in gateway.sent]
    # The initiator is also a reviewer but is notified once.
    assert recipients == ["recruiter-1", "hr-director"]
    assert gateway.for_recipient("hr-director")[0].title == "Issues Found - Jordan Reyes"
    assert all(n.severity == NotificationSeverity.ERROR for n in gateway.sent)


@pytest.mark.asyncio
async def test_result_completed_date_defaults_to_now(service):
    await service.register_check(make_check(results=[("criminal", "clear")]))
    await service.record_result("chk-1", CheckResult(check_type="employment", status="clear"), now=NOW)

    check = await service.get_check("chk-1")
    assert check.status == CheckStatus.COMPLETED
    assert check.result_for("employment").completed_date == NOW


@pytest.mark.asyncio
async def test_evidence_on_terminal_check_is_rejected(service):
    await service.register_check(make_check(status="completed"))
    with pytest.raises(DomainException):
        await service.record_consent("chk-1", now=NOW)
    with pytest.raises(DomainException):
        await service.record_result("chk-1", CheckResult(check_type="criminal", status="clear"), now=NOW)


@pytest.mark.asyncio
async def test_cancel_then_cancel_again(service, history_repo):
    await service.register_check(make_check())
    await service.cancel("chk-1", "Offer rescinded", "hr-1", "HR One", now=NOW)

    with pytest.raises(InvalidTransitionException):
        await service.cancel("chk-1", "again", "hr-1", now=NOW)

    [record] = history_repo.records
    assert record.new_status == CheckStatus.CANCELLED
    assert record.changed_by_name == "HR One"


@pytest.mark.asyncio
async def test_sweep_moves_every_ready_check(service, gateway):
    await service.register_check(make_check("a", status="pending-consent", consent_given=True))
    await service.register_check(make_check("b", results=[("criminal", "clear"), ("employment", "clear")]))
    await service.register_check(make_check("c", status="pending-consent"))
    await service.register_check(make_check("d", status="not-started", consent_given=True))

    outcomes = await service.evaluate_all(NOW)

    assert sorted(o.check.id for o in outcomes) == ["a", "b"]
    assert (await service.get_check("c")).status == CheckStatus.PENDING_CONSENT
    assert (await service.get_check("d")).status == CheckStatus.NOT_STARTED


@pytest.mark.asyncio
async def test_concurrent_evaluations_apply_one_transition(service, history_repo):
    await service.register_check(make_check(status="pending-consent", consent_given=True))

    await asyncio.gather(*(service.evaluate("chk-1", NOW) for _ in range(5)))

    assert len(history_repo.records) == 1


@pytest.mark.asyncio
async def test_history_filters_stats_and_export(service, history_repo):
    await service.register_check(make_check("a", status="pending-consent", consent_given=True))
    await service.register_check(make_check("b", status="not-started"))
    await service.evaluate("a", NOW)
    await service.request_consent("b", "recruiter-1", "Sam", now=NOW + timedelta(hours=1))

    history = StatusHistoryService(history_repo)

    automated = await history.filter_history(StatusHistoryQuery(automated=True))
    assert [r.check_id for r in automated] == ["a"]

    by_status = await history.filter_history(StatusHistoryQuery(status="pending-consent"))
    assert len(by_status) == 2

    newest_first = await history.get_check_history("b")
    assert newest_first[0].new_status == CheckStatus.PENDING_CONSENT

    stats = await history.get_stats(now=NOW + timedelta(days=1))
    assert stats["total_changes"] == 2
    assert stats["automated_changes"] == 1
    assert stats["manual_changes"] == 1
    assert stats["by_status"] == {"in-progress": 1, "pending-consent": 1}

    csv_text = await history.export_csv()
    lines = csv_text.strip().splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("Timestamp,Candidate,Check ID")


@pytest.mark.asyncio
async def test_history_reads_and_stats_cover_the_whole_log(history_repo):
    for minute in range(5001):
        await history_repo.append(StatusChangeRecord(
            check_id=f"chk-{minute}",
            candidate_id=f"cand-{minute}",
            candidate_name="Jordan Reyes",
            previous_status=CheckStatus.PENDING_CONSENT,
            new_status=CheckStatus.IN_PROGRESS,
            changed_by="system",
            changed_by_name="System",
            timestamp=MONDAY + timedelta(minutes=minute),
            automated=True,
        ))
    now = MONDAY + timedelta(days=5)

    assert len(await history_repo.list_between(MONDAY, now)) == 5001

    stats = await StatusHistoryService(history_repo).get_stats(now=now)
    assert stats["total_changes"] == 5001
    assert stats["changes_last_30_days"] == 5001
    assert stats["automated_changes"] == 5001
    assert stats["by_status"] == {"in-progress": 5001}
