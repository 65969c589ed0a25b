"""
Escalation Domain Layer
=======================
"""

from checktrack.escalation.domain.entities import EscalationEvent
from checktrack.escalation.domain.value_objects import (
    DEFAULT_ESCALATION_RULES,
    EscalationRule,
    days_pending,
    is_eligible,
    within_cooldown,
)

__all__ = [
    "EscalationEvent",
    "DEFAULT_ESCALATION_RULES",
    "EscalationRule",
    "days_pending",
    "is_eligible",
    "within_cooldown",
]
