"""
Check Controllers (API Routes)
==============================

FastAPI routes for the check lifecycle and its audit trail.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from checktrack.checks.application import (
    CancelRequest,
    CheckCreateRequest,
    CheckResponse,
    CheckResultDTO,
    ConsentRequest,
    EvaluationSummaryResponse,
    HistoryStatsResponse,
    ICheckRepository,
    OperatorActionRequest,
    StatusChangeResponse,
    StatusHistoryQuery,
    StatusHistoryService,
    StatusTransitionService,
    TransitionResponse,
)
from checktrack.checks.application.dto import CheckStatusStr
from checktrack.config import CheckStatus
from checktrack.shared.api.dependencies import (
    get_check_repository,
    get_history_service,
    get_transition_service,
)
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/checks", tags=["Checks"])
history_router = APIRouter(prefix="/history", tags=["Status History"])


# ========== Checks ==========

@router.post(
    "",
    response_model=CheckResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a check",
    description="Start tracking a background check. Returns 409 when the ID is already registered."
)
async def register_check(
    request: CheckCreateRequest,
    service: StatusTransitionService = Depends(get_transition_service)
):
    check = await service.register_check(request.to_entity())
    return CheckResponse.from_entity(check)


@router.get("", response_model=List[CheckResponse], summary="List checks")
async def list_checks(
    status_filter: Optional[List[CheckStatusStr]] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    check_repo: ICheckRepository = Depends(get_check_repository)
):
    statuses = [CheckStatus(s) for s in status_filter] if status_filter else None
    checks = await check_repo.list(statuses=statuses, limit=limit, offset=offset)
    return [CheckResponse.from_entity(check) for check in checks]


@router.post(
    "/evaluate",
    response_model=EvaluationSummaryResponse,
    summary="Run a transition sweep",
    description="Evaluate every pending-consent and in-progress check once."
)
async def evaluate_all(service: StatusTransitionService = Depends(get_transition_service)):
    outcomes = await service.evaluate_all()
    return EvaluationSummaryResponse(
        transitioned=len(outcomes),
        transitions=[StatusChangeResponse.from_entity(o.record) for o in outcomes],
    )


@router.get("/{check_id}", response_model=CheckResponse, summary="Get a check")
async def get_check(
    check_id: str,
    service: StatusTransitionService = Depends(get_transition_service)
):
    return CheckResponse.from_entity(await service.get_check(check_id))


@router.post("/{check_id}/evaluate", response_model=TransitionResponse, summary="Evaluate one check")
async def evaluate_check(
    check_id: str,
    service: StatusTransitionService = Depends(get_transition_service)
):
    outcome = await service.evaluate(check_id)
    check = outcome.check if outcome else await service.get_check(check_id)
    return TransitionResponse.from_outcome(check, outcome)


@router.post("/{check_id}/consent", response_model=TransitionResponse, summary="Record candidate consent")
async def record_consent(
    check_id: str,
    request: ConsentRequest,
    service: StatusTransitionService = Depends(get_transition_service)
):
    outcome = await service.record_consent(check_id, consent_date=request.consent_date)
    check = outcome.check if outcome else await service.get_check(check_id)
    return TransitionResponse.from_outcome(check, outcome)


@router.post(
    "/{check_id}/results",
    response_model=TransitionResponse,
    summary="Record a provider result",
    description="Replaces any earlier result for the same check type, then re-evaluates the check."
)
async def record_result(
    check_id: str,
    request: CheckResultDTO,
    service: StatusTransitionService = Depends(get_transition_service)
):
    outcome = await service.record_result(check_id, request.to_entity())
    check = outcome.check if outcome else await service.get_check(check_id)
    return TransitionResponse.from_outcome(check, outcome)


@router.post("/{check_id}/request-consent", response_model=TransitionResponse, summary="Request consent")
async def request_consent(
    check_id: str,
    request: OperatorActionRequest,
    service: StatusTransitionService = Depends(get_transition_service)
):
    outcome = await service.request_consent(check_id, request.actor_id, request.actor_name)
    return TransitionResponse.from_outcome(outcome.check, outcome)


@router.post(
    "/{check_id}/cancel",
    response_model=TransitionResponse,
    summary="Cancel a check",
    description="Allowed from any non-terminal status. Returns 409 for terminal checks and 422 without a reason."
)
async def cancel_check(
    check_id: str,
    request: CancelRequest,
    service: StatusTransitionService = Depends(get_transition_service)
):
    outcome = await service.cancel(check_id, request.reason, request.actor_id, request.actor_name)
    return TransitionResponse.from_outcome(outcome.check, outcome)


@router.get("/{check_id}/history", response_model=List[StatusChangeResponse], summary="Status history of a check")
async def check_history(
    check_id: str,
    service: StatusHistoryService = Depends(get_history_service)
):
    records = await service.get_check_history(check_id)
    return [StatusChangeResponse.from_entity(record) for record in records]


# ========== Status History ==========

@history_router.get("", response_model=List[StatusChangeResponse], summary="Filter status history")
async def filter_history(
    query: StatusHistoryQuery = Depends(),
    service: StatusHistoryService = Depends(get_history_service)
):
    records = await service.filter_history(query)
    return [StatusChangeResponse.from_entity(record) for record in records]


@history_router.get("/stats", response_model=HistoryStatsResponse, summary="Status history statistics")
async def history_stats(service: StatusHistoryService = Depends(get_history_service)):
    return HistoryStatsResponse(**await service.get_stats())


@history_router.get("/export", response_class=PlainTextResponse, summary="Export status history as CSV")
async def export_history(
    query: StatusHistoryQuery = Depends(),
    service: StatusHistoryService = Depends(get_history_service)
):
    csv_text = await service.export_csv(query)
    return PlainTextResponse(
        csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=status_history.csv"}
    )


@history_router.get(
    "/candidates/{candidate_id}",
    response_model=List[StatusChangeResponse],
    summary="Status history of a candidate"
)
async def candidate_history(
    candidate_id: str,
    service: StatusHistoryService = Depends(get_history_service)
):
    records = await service.get_candidate_history(candidate_id)
    return [StatusChangeResponse.from_entity(record) for record in records]
