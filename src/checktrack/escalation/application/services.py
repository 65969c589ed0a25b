"""
Escalation Application Services
===============================

Rule-based escalation of stalled checks, and operator handling of the
resulting events.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from checktrack.checks.application import ICheckRepository
from checktrack.checks.domain import BackgroundCheck
from checktrack.config import NotificationCategory, NotificationSeverity, Priority
from checktrack.core.exceptions import ResourceNotFoundException
from checktrack.escalation.domain import (
    EscalationEvent, EscalationRule, days_pending, is_eligible, within_cooldown,
)
from checktrack.notifications import INotificationGateway, Notification, build_check_link
from checktrack.shared.infrastructure.locks import KeyedLockRegistry
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IEscalationEventRepository(ABC):
    """Interface for the durable escalation event log."""

    @abstractmethod
    async def add(self, event: EscalationEvent) -> EscalationEvent:
        """Persist a new event."""

    @abstractmethod
    async def update(self, event: EscalationEvent) -> EscalationEvent:
        """Persist acknowledgement/resolution changes."""

    @abstractmethod
    async def get_by_id(self, event_id: str) -> Optional[EscalationEvent]:
        """Get event by ID."""

    @abstractmethod
    async def list_by_check(self, check_id: str) -> List[EscalationEvent]:
        """Events for one check, newest first."""

    @abstractmethod
    async def list(self, active_only: bool = False, limit: int = 500) -> List[EscalationEvent]:
        """Events, newest first."""

    @abstractmethod
    async def get_counts(self, since: datetime) -> dict:
        """
        Counts over the whole log.

        Returns:
            ``total``, ``since`` (escalated at or after ``since``), ``active``,
            ``acknowledged_not_resolved`` and ``resolution_hours`` (one entry
            per resolved event)
        """


class IEscalationRuleProvider(ABC):
    """Interface for escalation rule access and administration."""

    @abstractmethod
    def get_escalation_rules(self) -> List[EscalationRule]:
        """Snapshot of the current rules."""

    @abstractmethod
    def save_escalation_rule(self, rule: EscalationRule) -> EscalationRule:
        """Insert or replace a rule by ID."""

    @abstractmethod
    def delete_escalation_rule(self, rule_id: str) -> bool:
        """Remove a rule; False when it did not exist."""


# ========== Notification builders ==========

def build_escalation_notifications(
    rule: EscalationRule,
    check: BackgroundCheck,
    event: EscalationEvent,
    base_url: str
) -> List[Notification]:
    """One notification per escalation target, plus the initiator when the rule asks for it."""
    link = build_check_link(base_url, check.id)
    status = check.status.value
    metadata = {
        "check_id": check.id,
        "candidate_name": check.candidate_name,
        "event_kind": "escalation",
        "escalation_id": event.id,
        "rule_id": rule.id,
    }

    notifications = [
        Notification(
            recipient=user_id,
            category=NotificationCategory.ESCALATION,
            severity=NotificationSeverity.WARNING,
            priority=rule.priority,
            title=f"Background Check Escalation: {rule.name}",
            message=(
                f"{check.candidate_name}'s background check has been {status} for "
                f"{event.days_pending} days. Immediate attention required."
            ),
            link=link,
            metadata=metadata,
        )
        for user_id in rule.escalate_to
    ]

    if rule.notify_original_initiator:
        notifications.append(
            Notification(
                recipient=check.initiated_by,
                category=NotificationCategory.ESCALATION,
                severity=NotificationSeverity.INFO,
                priority=Priority.MEDIUM,
                title="Background Check Escalated",
                message=(
                    f"{check.candidate_name}'s background check has been escalated to management "
                    f"due to {event.days_pending} days in {status} status."
                ),
                link=link,
                metadata={**metadata, "event_kind": "escalation-initiator"},
            )
        )

    return notifications


# ========== Application Services ==========

class EscalationProcessor:
    """
    Scans checks against enabled rules and raises escalations.

    A check escalates at most once per cooldown window across all rules; the
    window is read from the durable event log, so restarts do not reset it.
    """

    def __init__(
        self,
        check_repository: ICheckRepository,
        event_repository: IEscalationEventRepository,
        rule_provider: IEscalationRuleProvider,
        notification_gateway: INotificationGateway,
        cooldown_hours: int = 24,
        track_status_entry: bool = True,
        base_url: str = "/background-checks",
        lock_registry: Optional[KeyedLockRegistry] = None
    ):
        self._check_repo = check_repository
        self._event_repo = event_repository
        self._rule_provider = rule_provider
        self._gateway = notification_gateway
        self._cooldown_hours = cooldown_hours
        self._track_status_entry = track_status_entry
        self._base_url = base_url
        self._locks = lock_registry or KeyedLockRegistry()

    async def process(self, now: Optional[datetime] = None) -> List[EscalationEvent]:
        """
        Run one escalation cycle; returns the events raised.

        Rules are tried in order and the first eligible one escalates the
        check. A failure on one check is logged and does not stop the cycle.
        """
        now = now or datetime.now(timezone.utc)
        rules = [rule for rule in self._rule_provider.get_escalation_rules() if rule.enabled]
        if not rules:
            return []

        checks = await self._check_repo.list(statuses=sorted({rule.status for rule in rules}))
        raised = []

        for check in checks:
            try:
                async with self._locks.lock(check.id):
                    event = await self._process_check_locked(rules, check, now)
            except Exception as e:
                logger.error(
                    "Escalation evaluation failed",
                    extra={"check_id": check.id, "error": str(e)},
                    exc_info=True
                )
                continue

            if event:
                raised.append(event)

        logger.info(
            "Escalation cycle complete",
            extra={"rules": len(rules), "checks_scanned": len(checks), "escalations": len(raised)}
        )
        return raised

    async def _process_check_locked(
        self,
        rules: List[EscalationRule],
        check: BackgroundCheck,
        now: datetime
    ) -> Optional[EscalationEvent]:
        eligible = [rule for rule in rules if is_eligible(rule, check, now, self._track_status_entry)]
        if not eligible:
            return None

        # Cooldown is per check across all rules.
        history = await self._event_repo.list_by_check(check.id)
        if within_cooldown((e.escalated_at for e in history), now, self._cooldown_hours):
            return None

        return await self._trigger(eligible[0], check, now)

    async def _trigger(self, rule: EscalationRule, check: BackgroundCheck, now: datetime) -> EscalationEvent:
        pending = days_pending(check, now, self._track_status_entry)
        event = EscalationEvent.trigger(rule, check, pending, now)
        await self._event_repo.add(event)

        await self._gateway.send_many(
            build_escalation_notifications(rule, check, event, self._base_url)
        )

        logger.warning(
            "Check escalated",
            extra={
                "check_id": check.id,
                "rule_id": rule.id,
                "days_pending": pending,
                "escalated_to": rule.escalate_to,
            }
        )
        return event


class EscalationService:
    """Operator-facing escalation administration."""

    def __init__(
        self,
        event_repository: IEscalationEventRepository,
        rule_provider: IEscalationRuleProvider
    ):
        self._event_repo = event_repository
        self._rule_provider = rule_provider

    # ========== Rules ==========

    def list_rules(self) -> List[EscalationRule]:
        return self._rule_provider.get_escalation_rules()

    def get_rule(self, rule_id: str) -> EscalationRule:
        for rule in self.list_rules():
            if rule.id == rule_id:
                return rule
        raise ResourceNotFoundException("EscalationRule", rule_id)

    def save_rule(self, rule: EscalationRule) -> EscalationRule:
        return self._rule_provider.save_escalation_rule(rule)

    def delete_rule(self, rule_id: str) -> None:
        if not self._rule_provider.delete_escalation_rule(rule_id):
            raise ResourceNotFoundException("EscalationRule", rule_id)

    # ========== Events ==========

    async def get_event(self, event_id: str) -> EscalationEvent:
        event = await self._event_repo.get_by_id(event_id)
        if event is None:
            raise ResourceNotFoundException("EscalationEvent", event_id)
        return event

    async def list_events(self, check_id: Optional[str] = None, active_only: bool = False) -> List[EscalationEvent]:
        if check_id:
            events = await self._event_repo.list_by_check(check_id)
            return [e for e in events if e.is_active] if active_only else events
        return await self._event_repo.list(active_only=active_only)

    async def acknowledge(self, event_id: str, user_id: str, now: Optional[datetime] = None) -> EscalationEvent:
        event = await self.get_event(event_id)
        event.acknowledge(user_id, now or datetime.now(timezone.utc))
        await self._event_repo.update(event)
        logger.info("Escalation acknowledged", extra={"event_id": event_id, "user_id": user_id})
        return event

    async def resolve(
        self,
        event_id: str,
        user_id: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> EscalationEvent:
        event = await self.get_event(event_id)
        event.resolve(user_id, now or datetime.now(timezone.utc), notes)
        await self._event_repo.update(event)
        logger.info("Escalation resolved", extra={"event_id": event_id, "user_id": user_id})
        return event

    async def get_stats(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        counts = await self._event_repo.get_counts(now - timedelta(days=30))

        resolution_hours = counts["resolution_hours"]
        average = round(sum(resolution_hours) / len(resolution_hours)) if resolution_hours else 0

        return {
            "total_escalations": counts["total"],
            "escalations_last_30_days": counts["since"],
            "active_escalations": counts["active"],
            "acknowledged_not_resolved": counts["acknowledged_not_resolved"],
            "average_resolution_hours": average,
        }
