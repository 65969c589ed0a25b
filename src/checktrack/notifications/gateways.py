"""
Notification Gateways
=====================

Delivery adapters for lifecycle notifications:
- WebhookNotificationGateway: POSTs JSON payloads with retry and a circuit breaker
- LoggingNotificationGateway: logs payloads when no webhook is configured
- InMemoryNotificationGateway: records payloads (embedding and tests)
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from checktrack.core.exceptions import NotificationDeliveryException
from checktrack.notifications.domain import Notification
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class INotificationGateway(ABC):
    """Interface for the external notification collaborator."""

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Hand one notification over for delivery. Returns True when accepted."""

    async def send_many(self, notifications: List[Notification]) -> int:
        """Send each notification; returns how many were accepted."""
        accepted = 0
        for notification in notifications:
            if await self.send(notification):
                accepted += 1
        return accepted

    async def close(self) -> None:
        """Release any held resources."""


class InMemoryNotificationGateway(INotificationGateway):
    """Collects notifications in a list."""

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    async def send(self, notification: Notification) -> bool:
        self.sent.append(notification)
        return True

    def for_recipient(self, recipient: str) -> List[Notification]:
        return [n for n in self.sent if n.recipient == recipient]

    def clear(self) -> None:
        self.sent.clear()


class LoggingNotificationGateway(INotificationGateway):
    """Writes notifications to the structured log instead of delivering them."""

    async def send(self, notification: Notification) -> bool:
        logger.info(
            "Notification issued",
            extra={
                "recipient": notification.recipient,
                "category": notification.category.value,
                "priority": notification.priority.value,
                "title": notification.title,
                "event_kind": notification.event_kind,
            }
        )
        return True


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
        return self._state

    def allow_request(self) -> bool:
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return True
        return False

    def record_success(self) -> None:
        self._failure_count = 0
        self._trial_in_flight = False
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._trial_in_flight = False
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class WebhookNotificationGateway(INotificationGateway):
    """
    Webhook client with circuit breaker and retry logic.

    Each notification is POSTed as JSON. Failures are logged and reported
    as ``False``; a failed delivery never aborts a lifecycle cycle.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._webhook_url = webhook_url
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    async def send(self, notification: Notification) -> bool:
        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping notification",
                extra={"recipient": notification.recipient, "event_kind": notification.event_kind}
            )
            return False

        payload = notification.to_dict()

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=payload)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Notification delivered",
                        extra={
                            "recipient": notification.recipient,
                            "event_kind": notification.event_kind
                        }
                    )
                    return True

                raise NotificationDeliveryException(
                    "Webhook returned non-2xx",
                    {"status_code": response.status_code}
                )

            except (httpx.HTTPError, NotificationDeliveryException) as e:
                logger.error(
                    "Notification delivery failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "recipient": notification.recipient
                    }
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


def create_notification_gateway(webhook_url: Optional[str], timeout_seconds: float = 5.0) -> INotificationGateway:
    """Webhook gateway when a URL is configured, logging gateway otherwise."""
    if webhook_url:
        return WebhookNotificationGateway(webhook_url, timeout_seconds=timeout_seconds)
    logger.info("Notification webhook not configured, notifications will be logged")
    return LoggingNotificationGateway()
