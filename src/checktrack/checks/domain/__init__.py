"""
Check Domain Layer
==================

Entities and the status transition engine for background checks.
"""

from checktrack.checks.domain.entities import (
    BackgroundCheck,
    CheckResult,
    CheckTypeRequirement,
    StatusChangeRecord,
)
from checktrack.checks.domain.transitions import (
    STATUS_TRANSITIONS,
    SYSTEM_ACTOR,
    SYSTEM_ACTOR_NAME,
    StatusTransition,
    StatusTransitionEngine,
    TransitionOutcome,
    all_results_complete,
)

__all__ = [
    # Entities
    "BackgroundCheck",
    "CheckResult",
    "CheckTypeRequirement",
    "StatusChangeRecord",
    # Transitions
    "STATUS_TRANSITIONS",
    "SYSTEM_ACTOR",
    "SYSTEM_ACTOR_NAME",
    "StatusTransition",
    "StatusTransitionEngine",
    "TransitionOutcome",
    "all_results_complete",
]
