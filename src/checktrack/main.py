"""
checktrack - Main Application
=============================

Background check lifecycle service.

Modules:
- Checks: automated status transitions and the status audit log
- SLA: per-status time budgets and threshold notifications
- Escalation: rule-based escalation of stalled checks
- Digest: periodic summaries for subscribed users

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and lifecycle rules
- Infrastructure: Database, policy file, notification gateway
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from checktrack import __version__
from checktrack.checks.application import StatusTransitionService
from checktrack.checks.infrastructure import (
    SQLAlchemyCheckRepository, SQLAlchemyStatusHistoryRepository,
)
from checktrack.checks.interfaces import checks_router, history_router
from checktrack.config import Settings, get_settings
from checktrack.core.exceptions import ApplicationException
from checktrack.digest.application import DigestAggregator, DigestDeliveryService
from checktrack.digest.infrastructure import SQLAlchemyDigestPreferencesRepository
from checktrack.digest.interfaces import digest_router
from checktrack.escalation.application import EscalationProcessor
from checktrack.escalation.infrastructure import SQLAlchemyEscalationEventRepository
from checktrack.escalation.interfaces import escalation_router
from checktrack.infrastructure.database import (
    close_database, create_tables, get_session_context, init_database,
)
from checktrack.notifications import create_notification_gateway
from checktrack.policy import PolicyConfigManager
from checktrack.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from checktrack.shared.infrastructure.locks import KeyedLockRegistry
from checktrack.shared.infrastructure.logging import get_logger, setup_logging
from checktrack.shared.infrastructure.scheduler import CycleScheduler
from checktrack.sla.application import SLAMonitorService, SLAService
from checktrack.sla.infrastructure import SQLAlchemySLANotificationLogRepository
from checktrack.sla.interfaces import sla_router

logger = get_logger(__name__)


def build_scheduler(app: FastAPI, settings: Settings) -> CycleScheduler:
    """
    Register the four periodic cycles.

    Each run opens its own session and builds its services from the
    process-wide collaborators on ``app.state``.
    """
    state = app.state
    scheduler = CycleScheduler()

    def sla_service_for(session) -> SLAService:
        return SLAService(
            SQLAlchemyCheckRepository(session),
            state.policy_manager,
            track_status_entry=settings.track_status_entry,
        )

    async def transition_cycle():
        async with get_session_context() as session:
            service = StatusTransitionService(
                SQLAlchemyCheckRepository(session),
                SQLAlchemyStatusHistoryRepository(session),
                state.notification_gateway,
                lock_registry=state.lock_registry,
                reviewers=settings.designated_reviewers,
                base_url=settings.app_base_url,
            )
            await service.evaluate_all()

    async def sla_notification_cycle():
        async with get_session_context() as session:
            monitor = SLAMonitorService(
                sla_service_for(session),
                SQLAlchemySLANotificationLogRepository(session),
                state.notification_gateway,
                base_url=settings.app_base_url,
            )
            await monitor.process_notifications()

    async def escalation_cycle():
        async with get_session_context() as session:
            processor = EscalationProcessor(
                SQLAlchemyCheckRepository(session),
                SQLAlchemyEscalationEventRepository(session),
                state.policy_manager,
                state.notification_gateway,
                cooldown_hours=settings.escalation_cooldown_hours,
                track_status_entry=settings.track_status_entry,
                base_url=settings.app_base_url,
                lock_registry=state.lock_registry,
            )
            await processor.process()

    async def digest_cycle():
        async with get_session_context() as session:
            aggregator = DigestAggregator(
                SQLAlchemyCheckRepository(session),
                SQLAlchemyStatusHistoryRepository(session),
                sla_service=sla_service_for(session),
                consent_stale_days=settings.digest_consent_stale_days,
                track_status_entry=settings.track_status_entry,
            )
            service = DigestDeliveryService(
                SQLAlchemyDigestPreferencesRepository(session),
                aggregator,
                state.notification_gateway,
            )
            await service.process_pending_digests()

    def guarded(name, job):
        async def run():
            try:
                await job()
            except Exception as e:
                # A failed cycle is retried on the next tick.
                logger.error(f"{name} cycle failed: {e}", exc_info=True)
        return run

    scheduler.add_cycle("transition_sweep", guarded("Transition", transition_cycle), settings.transition_interval)
    scheduler.add_cycle(
        "sla_notifications", guarded("SLA notification", sla_notification_cycle), settings.sla_notification_interval
    )
    scheduler.add_cycle("escalations", guarded("Escalation", escalation_cycle), settings.escalation_interval)
    scheduler.add_cycle("digests", guarded("Digest", digest_cycle), settings.digest_interval)
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load the lifecycle policy and watch it for changes
    4. Create the notification gateway and lock registry
    5. Start the cycle scheduler

    SHUTDOWN:
    1. Stop the cycle scheduler
    2. Stop watching the policy file
    3. Close the notification gateway and database connections
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(level=settings.log_level, environment=settings.environment, service=settings.app_name)
    logger.info("Starting checktrack", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database(settings)
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    policy_manager = PolicyConfigManager()
    policy_manager.load(settings.policy_config_path)
    policy_manager.start_watching()

    app.state.policy_manager = policy_manager
    app.state.notification_gateway = create_notification_gateway(
        settings.notification_webhook_url, settings.notification_timeout_seconds
    )
    app.state.lock_registry = KeyedLockRegistry()

    scheduler = build_scheduler(app, settings)
    await scheduler.start()
    app.state.scheduler = scheduler

    logger.info("checktrack started successfully")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down checktrack")
    await scheduler.stop()
    policy_manager.stop_watching()
    await app.state.notification_gateway.close()
    await close_database()
    logger.info("checktrack shutdown complete")


def create_app(settings: Settings = None, with_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application; tests pass ``with_lifespan=False``."""
    settings = settings or get_settings()

    app = FastAPI(
        title="checktrack API",
        description="""
    ## Background Check Lifecycle Service

    - `/checks` - register checks, record consent and results, cancel
    - `/history` - status change audit log and CSV export
    - `/sla` - SLA projections, dashboard and configuration
    - `/escalations` - escalation rules and events
    - `/digests` - digest preferences, previews and delivery
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if with_lifespan else None,
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(checks_router)
    app.include_router(history_router)
    app.include_router(sla_router)
    app.include_router(escalation_router)
    app.include_router(digest_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        scheduler = getattr(request.app.state, "scheduler", None)
        policy_manager = getattr(request.app.state, "policy_manager", None)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "cycles": scheduler.cycles if scheduler else [],
                "policy": "loaded" if policy_manager else "default",
            },
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "checktrack.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level.lower()
    )
