"""
SLA Application Services
========================

Application services for SLA projections and threshold notifications.

Following SOLID principles:
- Single Responsibility: projection (SLAService) and alerting (SLAMonitorService) are separate
- Dependency Inversion: Depend on abstractions (repositories, providers), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from checktrack.checks.application import ICheckRepository
from checktrack.checks.domain import BackgroundCheck
from checktrack.config import (
    CheckStatus, NotificationCategory, NotificationSeverity, Priority, SLAState,
)
from checktrack.core.exceptions import ResourceNotFoundException
from checktrack.notifications import INotificationGateway, Notification, build_check_link
from checktrack.shared.infrastructure.logging import get_logger
from checktrack.sla.domain import SLAConfiguration, SLAStats, SLAStatus, find_configuration

logger = get_logger(__name__)

# Statuses that still carry an SLA clock.
SLA_TRACKED_STATUSES = [
    CheckStatus.NOT_STARTED,
    CheckStatus.PENDING_CONSENT,
    CheckStatus.IN_PROGRESS,
    CheckStatus.ISSUES_FOUND,
]


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_sla_configurations(self) -> List[SLAConfiguration]:
        """Snapshot of the current SLA configurations."""


class ISLANotificationLogRepository(ABC):
    """Durable record of which SLA notifications have been sent."""

    @abstractmethod
    async def was_sent(self, check_id: str, status: CheckStatus, level: SLAState) -> bool:
        """Whether a notification for (check, status, level) was already sent."""

    @abstractmethod
    async def mark_sent(self, check_id: str, status: CheckStatus, level: SLAState, sent_at: datetime) -> None:
        """Record that a notification for (check, status, level) was sent."""


# ========== Application Services ==========

class SLAService:
    """
    Service for SLA projections over stored checks.

    Coordinates between the pure calculator and data access.
    """

    def __init__(
        self,
        check_repository: ICheckRepository,
        config_provider: ISLAConfigProvider,
        track_status_entry: bool = True
    ):
        self._check_repo = check_repository
        self._config_provider = config_provider
        self._track_status_entry = track_status_entry

    def get_configurations(self) -> List[SLAConfiguration]:
        return self._config_provider.get_sla_configurations()

    def calculate_sla_status(
        self,
        check: BackgroundCheck,
        now: datetime,
        configurations: Optional[Sequence[SLAConfiguration]] = None
    ) -> Optional[SLAStatus]:
        """
        SLA projection for one check.

        Returns:
            SLAStatus, or None when the status has no enabled configuration
        """
        if configurations is None:
            configurations = self.get_configurations()

        configuration = find_configuration(configurations, check.status)
        if configuration is None:
            return None

        return SLAStatus.calculate(check, configuration, now, self._track_status_entry)

    async def get_sla_status(self, check_id: str, now: Optional[datetime] = None) -> Optional[SLAStatus]:
        check = await self._check_repo.get_by_id(check_id)
        if check is None:
            raise ResourceNotFoundException("BackgroundCheck", check_id)
        return self.calculate_sla_status(check, now or datetime.now(timezone.utc))

    async def evaluate_active(self, now: datetime) -> List[Tuple[BackgroundCheck, SLAStatus]]:
        """(check, status) pairs for every check with an SLA clock, using one configuration snapshot."""
        configurations = self.get_configurations()
        checks = await self._check_repo.list(statuses=SLA_TRACKED_STATUSES)

        pairs = []
        for check in checks:
            sla_status = self.calculate_sla_status(check, now, configurations)
            if sla_status is not None:
                pairs.append((check, sla_status))
        return pairs

    async def get_all_sla_statuses(self, now: Optional[datetime] = None) -> List[SLAStatus]:
        pairs = await self.evaluate_active(now or datetime.now(timezone.utc))
        return [sla_status for _, sla_status in pairs]

    async def get_breached(self, now: Optional[datetime] = None) -> List[SLAStatus]:
        return [s for s in await self.get_all_sla_statuses(now) if s.breached]

    async def get_critical(self, now: Optional[datetime] = None) -> List[SLAStatus]:
        """Critical but not yet breached."""
        return [
            s for s in await self.get_all_sla_statuses(now)
            if s.sla_status == SLAState.CRITICAL and not s.breached
        ]

    async def get_stats(self, now: Optional[datetime] = None) -> SLAStats:
        return SLAStats.from_statuses(await self.get_all_sla_statuses(now))


def build_sla_notification(
    check: BackgroundCheck,
    sla_status: SLAStatus,
    level: SLAState,
    base_url: str
) -> Notification:
    """Threshold notification addressed to the check's initiator."""
    name = sla_status.candidate_name
    percent = round(sla_status.percent_complete)
    configuration = sla_status.configuration

    if level == SLAState.BREACHED:
        severity, priority = NotificationSeverity.ERROR, Priority.CRITICAL
        title = f"SLA Breached: {name}"
        message = (
            f"Background check for {name} has exceeded the {configuration.target_days} day SLA "
            f"for {sla_status.status.value} status."
        )
    elif level == SLAState.CRITICAL:
        severity, priority = NotificationSeverity.WARNING, Priority.HIGH
        title = f"SLA Critical: {name}"
        message = (
            f"Background check for {name} is approaching SLA breach ({percent}% complete). "
            f"{sla_status.days_remaining} days remaining."
        )
    else:
        severity, priority = NotificationSeverity.INFO, Priority.MEDIUM
        title = f"SLA Warning: {name}"
        message = (
            f"Background check for {name} is {percent}% through its SLA target. "
            f"{sla_status.days_remaining} days remaining."
        )

    return Notification(
        recipient=check.initiated_by,
        category=NotificationCategory.SLA,
        severity=severity,
        priority=priority,
        title=title,
        message=message,
        link=build_check_link(base_url, check.id),
        metadata={
            "check_id": check.id,
            "candidate_name": name,
            "event_kind": f"sla-{level.value}",
            "sla_status": level.value,
            "status": sla_status.status.value,
        },
    )


class SLAMonitorService:
    """
    Sends SLA threshold notifications.

    At most one notification per (check, status, level), chosen breached
    first, then critical, then warning, and only when the configuration's
    notify flag for that level is set. Each status has its own clock, so
    a new status can alert again. A level is marked sent only after the
    gateway accepts it; a failed delivery is retried next cycle.
    """

    def __init__(
        self,
        sla_service: SLAService,
        notification_log: ISLANotificationLogRepository,
        notification_gateway: INotificationGateway,
        base_url: str = "/background-checks"
    ):
        self._sla_service = sla_service
        self._notification_log = notification_log
        self._gateway = notification_gateway
        self._base_url = base_url

    @staticmethod
    def notification_level(sla_status: SLAStatus) -> Optional[SLAState]:
        configuration = sla_status.configuration
        if sla_status.breached:
            return SLAState.BREACHED if configuration.notify_at_breached else None
        if sla_status.sla_status == SLAState.CRITICAL:
            return SLAState.CRITICAL if configuration.notify_at_critical else None
        if sla_status.sla_status == SLAState.WARNING:
            return SLAState.WARNING if configuration.notify_at_warning else None
        return None

    async def process_notifications(self, now: Optional[datetime] = None) -> List[Notification]:
        """Run one notification cycle; returns the notifications handed to the gateway."""
        now = now or datetime.now(timezone.utc)
        sent = []

        for check, sla_status in await self._sla_service.evaluate_active(now):
            level = self.notification_level(sla_status)
            if level is None:
                continue
            if await self._notification_log.was_sent(check.id, check.status, level):
                continue

            notification = build_sla_notification(check, sla_status, level, self._base_url)
            if not await self._gateway.send(notification):
                logger.warning(
                    "SLA notification not delivered",
                    extra={"check_id": check.id, "level": level.value}
                )
                continue
            await self._notification_log.mark_sent(check.id, check.status, level, now)
            sent.append(notification)

        logger.info("SLA notification cycle complete", extra={"notifications_sent": len(sent)})
        return sent
