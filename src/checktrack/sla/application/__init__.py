"""
SLA Application Layer
=====================

Contains:
- Services: SLA projections and threshold notifications
- DTOs: Data transfer objects for API serialization
"""

from checktrack.sla.application.dto import (
    NotificationCycleResponse,
    SLADashboardResponse,
    SLAStatsResponse,
    SLAStatusResponse,
)
from checktrack.sla.application.services import (
    SLA_TRACKED_STATUSES,
    ISLAConfigProvider,
    ISLANotificationLogRepository,
    SLAMonitorService,
    SLAService,
    build_sla_notification,
)

__all__ = [
    # DTOs
    "NotificationCycleResponse",
    "SLADashboardResponse",
    "SLAStatsResponse",
    "SLAStatusResponse",
    # Services
    "SLA_TRACKED_STATUSES",
    "SLAMonitorService",
    "SLAService",
    "build_sla_notification",
    # Repository Interfaces
    "ISLAConfigProvider",
    "ISLANotificationLogRepository",
]
