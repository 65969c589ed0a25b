"""
Shared API Dependencies
=======================

FastAPI dependency providers. Process-wide collaborators (settings, policy,
notification gateway, lock registry) live on ``app.state``; repositories are
built per request from the database session.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from checktrack.checks.application import (
    ICheckRepository, IStatusHistoryRepository, StatusHistoryService, StatusTransitionService,
)
from checktrack.checks.infrastructure import (
    SQLAlchemyCheckRepository, SQLAlchemyStatusHistoryRepository,
)
from checktrack.config import Settings, get_settings
from checktrack.digest.application import (
    DigestAggregator, DigestDeliveryService, IDigestPreferencesRepository,
)
from checktrack.digest.infrastructure import SQLAlchemyDigestPreferencesRepository
from checktrack.escalation.application import (
    EscalationProcessor, EscalationService, IEscalationEventRepository,
)
from checktrack.escalation.infrastructure import SQLAlchemyEscalationEventRepository
from checktrack.infrastructure.database import get_session
from checktrack.notifications import INotificationGateway, LoggingNotificationGateway
from checktrack.policy import PolicyConfigManager
from checktrack.shared.infrastructure.locks import KeyedLockRegistry
from checktrack.sla.application import (
    ISLANotificationLogRepository, SLAMonitorService, SLAService,
)
from checktrack.sla.infrastructure import SQLAlchemySLANotificationLogRepository


# ========== Process-wide collaborators ==========

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_policy_manager(request: Request) -> PolicyConfigManager:
    manager = getattr(request.app.state, "policy_manager", None)
    if manager is None:
        manager = PolicyConfigManager()
        request.app.state.policy_manager = manager
    return manager


def get_notification_gateway(request: Request) -> INotificationGateway:
    gateway = getattr(request.app.state, "notification_gateway", None)
    if gateway is None:
        gateway = LoggingNotificationGateway()
        request.app.state.notification_gateway = gateway
    return gateway


def get_lock_registry(request: Request) -> KeyedLockRegistry:
    registry = getattr(request.app.state, "lock_registry", None)
    if registry is None:
        registry = KeyedLockRegistry()
        request.app.state.lock_registry = registry
    return registry


# ========== Repositories ==========

async def get_check_repository(session: AsyncSession = Depends(get_session)) -> ICheckRepository:
    return SQLAlchemyCheckRepository(session)


async def get_history_repository(session: AsyncSession = Depends(get_session)) -> IStatusHistoryRepository:
    return SQLAlchemyStatusHistoryRepository(session)


async def get_escalation_event_repository(
    session: AsyncSession = Depends(get_session)
) -> IEscalationEventRepository:
    return SQLAlchemyEscalationEventRepository(session)


async def get_sla_notification_log(
    session: AsyncSession = Depends(get_session)
) -> ISLANotificationLogRepository:
    return SQLAlchemySLANotificationLogRepository(session)


async def get_digest_preferences_repository(
    session: AsyncSession = Depends(get_session)
) -> IDigestPreferencesRepository:
    return SQLAlchemyDigestPreferencesRepository(session)


# ========== Services ==========

def get_transition_service(
    settings: Settings = Depends(get_app_settings),
    check_repo: ICheckRepository = Depends(get_check_repository),
    history_repo: IStatusHistoryRepository = Depends(get_history_repository),
    gateway: INotificationGateway = Depends(get_notification_gateway),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
) -> StatusTransitionService:
    return StatusTransitionService(
        check_repo,
        history_repo,
        gateway,
        lock_registry=locks,
        reviewers=settings.designated_reviewers,
        base_url=settings.app_base_url,
    )


def get_history_service(
    history_repo: IStatusHistoryRepository = Depends(get_history_repository),
) -> StatusHistoryService:
    return StatusHistoryService(history_repo)


def get_sla_service(
    settings: Settings = Depends(get_app_settings),
    check_repo: ICheckRepository = Depends(get_check_repository),
    policy: PolicyConfigManager = Depends(get_policy_manager),
) -> SLAService:
    return SLAService(check_repo, policy, track_status_entry=settings.track_status_entry)


def get_sla_monitor(
    settings: Settings = Depends(get_app_settings),
    sla_service: SLAService = Depends(get_sla_service),
    notification_log: ISLANotificationLogRepository = Depends(get_sla_notification_log),
    gateway: INotificationGateway = Depends(get_notification_gateway),
) -> SLAMonitorService:
    return SLAMonitorService(sla_service, notification_log, gateway, base_url=settings.app_base_url)


def get_escalation_service(
    event_repo: IEscalationEventRepository = Depends(get_escalation_event_repository),
    policy: PolicyConfigManager = Depends(get_policy_manager),
) -> EscalationService:
    return EscalationService(event_repo, policy)


def get_escalation_processor(
    settings: Settings = Depends(get_app_settings),
    check_repo: ICheckRepository = Depends(get_check_repository),
    event_repo: IEscalationEventRepository = Depends(get_escalation_event_repository),
    policy: PolicyConfigManager = Depends(get_policy_manager),
    gateway: INotificationGateway = Depends(get_notification_gateway),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
) -> EscalationProcessor:
    return EscalationProcessor(
        check_repo,
        event_repo,
        policy,
        gateway,
        cooldown_hours=settings.escalation_cooldown_hours,
        track_status_entry=settings.track_status_entry,
        base_url=settings.app_base_url,
        lock_registry=locks,
    )


def get_digest_service(
    settings: Settings = Depends(get_app_settings),
    check_repo: ICheckRepository = Depends(get_check_repository),
    history_repo: IStatusHistoryRepository = Depends(get_history_repository),
    prefs_repo: IDigestPreferencesRepository = Depends(get_digest_preferences_repository),
    sla_service: SLAService = Depends(get_sla_service),
    gateway: INotificationGateway = Depends(get_notification_gateway),
) -> DigestDeliveryService:
    aggregator = DigestAggregator(
        check_repo,
        history_repo,
        sla_service=sla_service,
        consent_stale_days=settings.digest_consent_stale_days,
        track_status_entry=settings.track_status_entry,
    )
    return DigestDeliveryService(prefs_repo, aggregator, gateway)
