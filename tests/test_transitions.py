from datetime import timedelta

import pytest

from checktrack.checks.domain import (
    CheckResult,
    CheckTypeRequirement,
    StatusTransitionEngine,
    all_results_complete,
)
from checktrack.config import CheckStatus, Verdict
from checktrack.core.exceptions import (
    InvalidCheckException, InvalidTransitionException, ValidationException,
)

from conftest import MONDAY, make_check

NOW = MONDAY + timedelta(days=2)


@pytest.fixture
def engine():
    return StatusTransitionEngine()


def test_pending_consent_waits_for_consent(engine):
    check = make_check(status="pending-consent", consent_given=False)
    assert engine.evaluate(check, NOW) is None
    assert check.status == CheckStatus.PENDING_CONSENT

    check.consent_given = True
    outcome = engine.evaluate(check, NOW)

    assert outcome.new_status == CheckStatus.IN_PROGRESS
    assert outcome.record.automated is True
    assert outcome.record.changed_by == "system"
    assert outcome.record.previous_status == CheckStatus.PENDING_CONSENT
    assert check.status_entered_at == NOW
    assert engine.evaluate(check, NOW) is None


def test_missing_result_blocks_then_not_clear_finds_issues(engine):
    check = make_check(results=[("criminal", "clear")])
    assert engine.evaluate(check, NOW) is None

    check.record_result(CheckResult(check_type="employment", status="not-clear", completed_date=NOW))
    outcome = engine.evaluate(check, NOW)

    assert outcome.new_status == CheckStatus.ISSUES_FOUND
    assert check.overall_verdict == Verdict.NOT_CLEAR
    assert check.completed_date is None
    assert outcome.record.metadata["rule"] == "issues-found"


def test_not_clear_with_pending_required_result_still_finds_issues(engine):
    check = make_check(results=[("criminal", "not-clear"), ("employment", "pending")])
    assert engine.evaluate(check, NOW).new_status == CheckStatus.ISSUES_FOUND


def test_all_clear_completes_with_clear_verdict(engine):
    check = make_check(results=[("criminal", "clear"), ("employment", "clear")])
    outcome = engine.evaluate(check, NOW)

    assert outcome.new_status == CheckStatus.COMPLETED
    assert check.overall_verdict == Verdict.CLEAR
    assert check.completed_date == NOW


def test_review_required_completes_as_conditional(engine):
    check = make_check(results=[("criminal", "clear"), ("employment", "review-required")])
    engine.evaluate(check, NOW)

    assert check.status == CheckStatus.COMPLETED
    assert check.overall_verdict == Verdict.CONDITIONAL


def test_optional_types_do_not_block_completion(engine):
    check = make_check(check_types=("criminal",), results=[("criminal", "clear")])
    check.check_types.append(CheckTypeRequirement(type="education", required=False))
    assert all_results_complete(check)


def test_no_results_never_completes(engine):
    check = make_check(check_types=())
    assert not all_results_complete(check)
    assert engine.evaluate(check, NOW) is None


def test_pending_result_blocks_completion(engine):
    check = make_check(results=[("criminal", "clear"), ("employment", "pending")])
    assert engine.evaluate(check, NOW) is None


def test_at_most_one_transition_per_evaluation(engine):
    check = make_check(
        status="pending-consent",
        consent_given=True,
        results=[("criminal", "clear"), ("employment", "clear")],
    )
    engine.evaluate(check, NOW)
    assert check.status == CheckStatus.IN_PROGRESS

    engine.evaluate(check, NOW)
    assert check.status == CheckStatus.COMPLETED


def test_terminal_and_not_started_checks_are_left_alone(engine):
    for status in ("not-started", "completed", "issues-found", "cancelled"):
        check = make_check(status=status, consent_given=True, results=[("criminal", "not-clear")])
        assert engine.evaluate(check, NOW) is None


def test_cancel_records_reason_and_actor(engine):
    check = make_check(status="pending-consent")
    outcome = engine.cancel(check, "Candidate withdrew", "hr-1", "HR One", NOW)

    assert check.status == CheckStatus.CANCELLED
    assert check.reviewed_by is None
    assert check.review_notes is None
    assert check.completed_date == NOW
    assert check.overall_verdict is None
    assert outcome.record.automated is False
    assert outcome.record.reason == "Candidate withdrew"
    assert outcome.record.changed_by == "hr-1"
    assert outcome.record.changed_by_name == "HR One"


def test_cancel_requires_reason(engine):
    with pytest.raises(ValidationException):
        engine.cancel(make_check(), "  ", "hr-1", "HR One", NOW)


def test_cancel_rejects_terminal_checks(engine):
    with pytest.raises(InvalidTransitionException):
        engine.cancel(make_check(status="completed"), "late", "hr-1", "HR One", NOW)


def test_request_consent_only_from_not_started(engine):
    check = make_check(status="not-started")
    outcome = engine.request_consent(check, "recruiter-1", "Sam", NOW)
    assert outcome.new_status == CheckStatus.PENDING_CONSENT

    with pytest.raises(InvalidTransitionException):
        engine.request_consent(check, "recruiter-1", "Sam", NOW)


def test_verdict_is_not_clear_whenever_any_result_is_not_clear():
    check = make_check(results=[
        ("criminal", "clear"), ("employment", "review-required"), ("education", "not-clear"),
    ])
    assert check.compute_verdict() == Verdict.NOT_CLEAR


def test_record_result_replaces_same_type():
    check = make_check(results=[("criminal", "pending")])
    check.record_result(CheckResult(check_type="criminal", status="clear"))
    assert len(check.results) == 1
    assert check.result_for("criminal").status.value == "clear"


def test_malformed_checks_are_rejected():
    with pytest.raises(InvalidCheckException):
        make_check(initiated_date=None)
    with pytest.raises(InvalidCheckException):
        make_check(status="archived")
    with pytest.raises(InvalidCheckException):
        make_check(status_entered_at=MONDAY - timedelta(days=1))


def test_datetimes_without_timezone_are_rejected():
    naive = MONDAY.replace(tzinfo=None)

    with pytest.raises(InvalidCheckException):
        make_check(initiated_date=naive)
    with pytest.raises(InvalidCheckException):
        make_check(status="pending-consent", consent_date=naive)
    with pytest.raises(InvalidCheckException):
        CheckResult(check_type="criminal", status="clear", completed_date=naive)
