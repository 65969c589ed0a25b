"""
Escalation Controllers (API Routes)
===================================

FastAPI routes for escalation rules and the escalation event log.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from checktrack.escalation.application import (
    AcknowledgeRequest,
    EscalationCycleResponse,
    EscalationEventResponse,
    EscalationProcessor,
    EscalationService,
    EscalationStatsResponse,
    ResolveRequest,
)
from checktrack.escalation.domain import EscalationRule
from checktrack.shared.api.dependencies import get_escalation_processor, get_escalation_service
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/escalations", tags=["Escalations"])


# ========== Rules ==========

@router.get("/rules", response_model=List[EscalationRule], summary="List escalation rules")
async def list_rules(service: EscalationService = Depends(get_escalation_service)):
    return service.list_rules()


@router.get("/rules/{rule_id}", response_model=EscalationRule, summary="Get an escalation rule")
async def get_rule(rule_id: str, service: EscalationService = Depends(get_escalation_service)):
    return service.get_rule(rule_id)


@router.put(
    "/rules/{rule_id}",
    response_model=EscalationRule,
    summary="Create or replace an escalation rule",
    description="Persists to the policy file."
)
async def save_rule(
    rule_id: str,
    rule: EscalationRule,
    service: EscalationService = Depends(get_escalation_service)
):
    saved = service.save_rule(rule.model_copy(update={"id": rule_id}))
    logger.info(f"Escalation rule saved: {saved.id}")
    return saved


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an escalation rule")
async def delete_rule(rule_id: str, service: EscalationService = Depends(get_escalation_service)):
    service.delete_rule(rule_id)


# ========== Events ==========

@router.get("/events", response_model=List[EscalationEventResponse], summary="List escalation events")
async def list_events(
    check_id: Optional[str] = Query(None),
    active_only: bool = Query(False),
    service: EscalationService = Depends(get_escalation_service)
):
    events = await service.list_events(check_id=check_id, active_only=active_only)
    return [EscalationEventResponse.from_entity(e) for e in events]


@router.get("/events/{event_id}", response_model=EscalationEventResponse, summary="Get an escalation event")
async def get_event(event_id: str, service: EscalationService = Depends(get_escalation_service)):
    return EscalationEventResponse.from_entity(await service.get_event(event_id))


@router.post(
    "/events/{event_id}/acknowledge",
    response_model=EscalationEventResponse,
    summary="Acknowledge an escalation"
)
async def acknowledge_event(
    event_id: str,
    request: AcknowledgeRequest,
    service: EscalationService = Depends(get_escalation_service)
):
    event = await service.acknowledge(event_id, request.user_id)
    return EscalationEventResponse.from_entity(event)


@router.post(
    "/events/{event_id}/resolve",
    response_model=EscalationEventResponse,
    summary="Resolve an escalation",
    description="Returns 409 when the escalation is already resolved."
)
async def resolve_event(
    event_id: str,
    request: ResolveRequest,
    service: EscalationService = Depends(get_escalation_service)
):
    event = await service.resolve(event_id, request.user_id, notes=request.notes)
    return EscalationEventResponse.from_entity(event)


@router.get("/stats", response_model=EscalationStatsResponse, summary="Escalation statistics")
async def get_stats(service: EscalationService = Depends(get_escalation_service)):
    return EscalationStatsResponse(**await service.get_stats())


@router.post("/run", response_model=EscalationCycleResponse, summary="Run one escalation cycle")
async def run_escalations(processor: EscalationProcessor = Depends(get_escalation_processor)):
    events = await processor.process()
    return EscalationCycleResponse(escalations=[EscalationEventResponse.from_entity(e) for e in events])
