"""
SLA Infrastructure Layer
========================
"""

from checktrack.sla.infrastructure.repositories import (
    InMemorySLANotificationLogRepository,
    SQLAlchemySLANotificationLogRepository,
)

__all__ = [
    "InMemorySLANotificationLogRepository",
    "SQLAlchemySLANotificationLogRepository",
]
