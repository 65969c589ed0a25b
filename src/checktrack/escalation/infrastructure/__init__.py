"""
Escalation Infrastructure Layer
===============================
"""

from checktrack.escalation.infrastructure.repositories import (
    InMemoryEscalationEventRepository,
    SQLAlchemyEscalationEventRepository,
)

__all__ = [
    "InMemoryEscalationEventRepository",
    "SQLAlchemyEscalationEventRepository",
]
