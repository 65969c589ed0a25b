"""
Escalation Application Layer
============================
"""

from checktrack.escalation.application.dto import (
    AcknowledgeRequest,
    EscalationCycleResponse,
    EscalationEventResponse,
    EscalationStatsResponse,
    ResolveRequest,
)
from checktrack.escalation.application.services import (
    EscalationProcessor,
    EscalationService,
    IEscalationEventRepository,
    IEscalationRuleProvider,
    build_escalation_notifications,
)

__all__ = [
    # DTOs
    "AcknowledgeRequest",
    "EscalationCycleResponse",
    "EscalationEventResponse",
    "EscalationStatsResponse",
    "ResolveRequest",
    # Services
    "EscalationProcessor",
    "EscalationService",
    "build_escalation_notifications",
    # Repository Interfaces
    "IEscalationEventRepository",
    "IEscalationRuleProvider",
]
