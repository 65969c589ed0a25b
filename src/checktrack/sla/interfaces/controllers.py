"""
SLA Controllers (API Routes)
============================

FastAPI routes for SLA projections, the dashboard and SLA configuration.
"""

from typing import List

from fastapi import APIRouter, Depends

from checktrack.config import SLAState
from checktrack.core.exceptions import ResourceNotFoundException
from checktrack.policy import PolicyConfigManager
from checktrack.shared.api.dependencies import get_policy_manager, get_sla_monitor, get_sla_service
from checktrack.shared.infrastructure.logging import get_logger
from checktrack.sla.application import (
    NotificationCycleResponse,
    SLADashboardResponse,
    SLAMonitorService,
    SLAService,
    SLAStatsResponse,
    SLAStatusResponse,
)
from checktrack.sla.domain import SLAConfiguration, SLAStats

logger = get_logger(__name__)

router = APIRouter(prefix="/sla", tags=["SLA"])


@router.get(
    "/checks/{check_id}",
    response_model=SLAStatusResponse,
    summary="SLA status of a check",
    description="Returns 404 when the check is unknown or its status has no enabled SLA."
)
async def get_check_sla(check_id: str, service: SLAService = Depends(get_sla_service)):
    sla_status = await service.get_sla_status(check_id)
    if sla_status is None:
        raise ResourceNotFoundException("SLAStatus", check_id)
    return SLAStatusResponse.from_entity(sla_status)


@router.get("/dashboard", response_model=SLADashboardResponse, summary="SLA dashboard")
async def get_dashboard(service: SLAService = Depends(get_sla_service)):
    statuses = await service.get_all_sla_statuses()
    breached = [s for s in statuses if s.breached]
    critical = [s for s in statuses if s.sla_status == SLAState.CRITICAL and not s.breached]
    return SLADashboardResponse(
        stats=SLAStatsResponse.from_entity(SLAStats.from_statuses(statuses)),
        breached=[SLAStatusResponse.from_entity(s) for s in breached],
        critical=[SLAStatusResponse.from_entity(s) for s in critical],
        checks=[SLAStatusResponse.from_entity(s) for s in statuses],
    )


@router.get("/breached", response_model=List[SLAStatusResponse], summary="Checks past their target date")
async def get_breached(service: SLAService = Depends(get_sla_service)):
    return [SLAStatusResponse.from_entity(s) for s in await service.get_breached()]


@router.get("/critical", response_model=List[SLAStatusResponse], summary="Checks in the critical band")
async def get_critical(service: SLAService = Depends(get_sla_service)):
    return [SLAStatusResponse.from_entity(s) for s in await service.get_critical()]


@router.get("/stats", response_model=SLAStatsResponse, summary="SLA statistics")
async def get_stats(service: SLAService = Depends(get_sla_service)):
    return SLAStatsResponse.from_entity(await service.get_stats())


@router.get("/configurations", response_model=List[SLAConfiguration], summary="List SLA configurations")
async def list_configurations(service: SLAService = Depends(get_sla_service)):
    return service.get_configurations()


@router.put(
    "/configurations/{config_id}",
    response_model=SLAConfiguration,
    summary="Create or replace an SLA configuration",
    description="Persists to the policy file. Invalid policies are rejected and the current one is kept."
)
async def save_configuration(
    config_id: str,
    configuration: SLAConfiguration,
    policy: PolicyConfigManager = Depends(get_policy_manager)
):
    saved = policy.save_sla_configuration(configuration.model_copy(update={"id": config_id}))
    logger.info(f"SLA configuration saved: {saved.id}")
    return saved


@router.post(
    "/notifications/run",
    response_model=NotificationCycleResponse,
    summary="Run one SLA notification cycle"
)
async def run_notifications(monitor: SLAMonitorService = Depends(get_sla_monitor)):
    notifications = await monitor.process_notifications()
    return NotificationCycleResponse(
        notifications_sent=len(notifications),
        check_ids=[n.metadata.get("check_id", "") for n in notifications],
    )
