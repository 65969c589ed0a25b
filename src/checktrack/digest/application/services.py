"""
Digest Application Services
===========================

Builds periodic digests from the check store and audit log, and hands due
digests to the notification gateway.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from checktrack.checks.application import ICheckRepository, IStatusHistoryRepository
from checktrack.config import (
    DigestFrequency, NotificationCategory, NotificationSeverity, Priority,
)
from checktrack.core.exceptions import ResourceNotFoundException
from checktrack.digest.domain import (
    DigestData, DigestPreferences, OverdueItem, build_digest_data, is_digest_due, window_for,
)
from checktrack.notifications import INotificationGateway, Notification
from checktrack.shared.infrastructure.logging import get_logger
from checktrack.sla.application import SLAService

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IDigestPreferencesRepository(ABC):
    """Interface for digest subscription storage."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[DigestPreferences]:
        """Preferences for one user."""

    @abstractmethod
    async def save(self, preferences: DigestPreferences) -> DigestPreferences:
        """Insert or replace preferences by user ID."""

    @abstractmethod
    async def list_enabled(self) -> List[DigestPreferences]:
        """All subscriptions whose frequency is not disabled."""


# ========== Application Services ==========

class DigestAggregator:
    """
    Read-only digest builder.

    Never mutates checks or preferences, so it is safe for previews.
    """

    def __init__(
        self,
        check_repository: ICheckRepository,
        history_repository: IStatusHistoryRepository,
        sla_service: Optional[SLAService] = None,
        consent_stale_days: int = 0,
        track_status_entry: bool = True
    ):
        self._check_repo = check_repository
        self._history_repo = history_repository
        self._sla_service = sla_service
        self._consent_stale_days = consent_stale_days
        self._track_status_entry = track_status_entry

    async def build_digest(
        self,
        user_id: str,
        frequency: DigestFrequency,
        now: Optional[datetime] = None
    ) -> Optional[DigestData]:
        """
        Build the digest for ``user_id`` over the frequency's window.

        Returns:
            DigestData, or None when the frequency is disabled
        """
        now = now or datetime.now(timezone.utc)
        window = window_for(frequency)
        if window is None:
            return None

        checks = await self._check_repo.list()
        records = await self._history_repo.list_between(now - window, now)

        return build_digest_data(
            user_id=user_id,
            frequency=frequency,
            now=now,
            checks=checks,
            records=records,
            overdue_items=await self._overdue_items(now),
            consent_stale_days=self._consent_stale_days,
            track_status_entry=self._track_status_entry,
        )

    async def _overdue_items(self, now: datetime) -> List[OverdueItem]:
        if self._sla_service is None:
            return []
        return [
            OverdueItem(
                check_id=sla_status.check_id,
                candidate_name=sla_status.candidate_name,
                status=sla_status.status.value,
                days_elapsed=sla_status.days_elapsed,
                target_days=sla_status.configuration.target_days,
                target_date=sla_status.target_date,
            )
            for sla_status in await self._sla_service.get_breached(now)
        ]


def build_digest_notification(digest: DigestData, preferences: DigestPreferences) -> Notification:
    """Digest payload for one subscriber, honouring the include flags."""
    label = "Daily" if digest.frequency == DigestFrequency.DAILY else "Weekly"
    return Notification(
        recipient=digest.user_id,
        category=NotificationCategory.DIGEST,
        severity=NotificationSeverity.INFO,
        priority=Priority.LOW,
        title=f"Background Check {label} Digest",
        message=(
            f"{len(digest.status_changes)} status changes and {len(digest.pending_actions)} "
            f"pending actions since {digest.period_from:%Y-%m-%d %H:%M}."
        ),
        metadata={
            "event_kind": "digest",
            "email_address": preferences.email_address,
            "digest": digest.to_dict(
                include_status_changes=preferences.include_status_changes,
                include_pending_actions=preferences.include_pending_actions,
                include_overdue_items=preferences.include_overdue_items,
            ),
        },
    )


class DigestDeliveryService:
    """Sends due, non-empty digests and records when they went out."""

    def __init__(
        self,
        preferences_repository: IDigestPreferencesRepository,
        aggregator: DigestAggregator,
        notification_gateway: INotificationGateway
    ):
        self._prefs_repo = preferences_repository
        self._aggregator = aggregator
        self._gateway = notification_gateway

    async def get_preferences(self, user_id: str) -> DigestPreferences:
        preferences = await self._prefs_repo.get(user_id)
        if preferences is None:
            raise ResourceNotFoundException("DigestPreferences", user_id)
        return preferences

    async def save_preferences(self, preferences: DigestPreferences) -> DigestPreferences:
        existing = await self._prefs_repo.get(preferences.user_id)
        if existing and preferences.last_sent_at is None:
            preferences.last_sent_at = existing.last_sent_at
        return await self._prefs_repo.save(preferences)

    async def preview(self, user_id: str, now: Optional[datetime] = None) -> Optional[DigestData]:
        preferences = await self.get_preferences(user_id)
        return await self._aggregator.build_digest(user_id, preferences.frequency, now)

    async def process_pending_digests(self, now: Optional[datetime] = None) -> List[DigestData]:
        """
        Run one delivery cycle.

        Empty digests are skipped without touching last_sent_at, so the
        subscriber is reconsidered on the next cycle.
        """
        now = now or datetime.now(timezone.utc)
        sent = []
        skipped_empty = 0

        for preferences in await self._prefs_repo.list_enabled():
            if not is_digest_due(preferences, now):
                continue

            digest = await self._aggregator.build_digest(preferences.user_id, preferences.frequency, now)
            if digest is None:
                continue
            if digest.is_empty:
                skipped_empty += 1
                continue

            if await self._gateway.send(build_digest_notification(digest, preferences)):
                preferences.last_sent_at = now
                await self._prefs_repo.save(preferences)
                sent.append(digest)

        logger.info(
            "Digest cycle complete",
            extra={"digests_sent": len(sent), "digests_skipped_empty": skipped_empty}
        )
        return sent
