"""
Check Application Layer
=======================

Contains:
- Services: transition orchestration and audit queries
- DTOs: Data transfer objects for API serialization
"""

from checktrack.checks.application.dto import (
    CancelRequest,
    CheckCreateRequest,
    CheckResponse,
    CheckResultDTO,
    CheckTypeDTO,
    ConsentRequest,
    EvaluationSummaryResponse,
    HistoryStatsResponse,
    OperatorActionRequest,
    StatusChangeResponse,
    StatusHistoryQuery,
    TransitionResponse,
)
from checktrack.checks.application.services import (
    ICheckRepository,
    IStatusHistoryRepository,
    StatusHistoryService,
    StatusTransitionService,
    build_status_change_notifications,
)

__all__ = [
    # DTOs
    "CancelRequest",
    "CheckCreateRequest",
    "CheckResponse",
    "CheckResultDTO",
    "CheckTypeDTO",
    "ConsentRequest",
    "EvaluationSummaryResponse",
    "HistoryStatsResponse",
    "OperatorActionRequest",
    "StatusChangeResponse",
    "StatusHistoryQuery",
    "TransitionResponse",
    # Services
    "StatusHistoryService",
    "StatusTransitionService",
    "build_status_change_notifications",
    # Repository Interfaces
    "ICheckRepository",
    "IStatusHistoryRepository",
]
