"""
Check Infrastructure Layer
==========================

ORM models and repository implementations for checks and status history.
"""

from checktrack.checks.infrastructure.repositories import (
    InMemoryCheckRepository,
    InMemoryStatusHistoryRepository,
    SQLAlchemyCheckRepository,
    SQLAlchemyStatusHistoryRepository,
)

__all__ = [
    "InMemoryCheckRepository",
    "InMemoryStatusHistoryRepository",
    "SQLAlchemyCheckRepository",
    "SQLAlchemyStatusHistoryRepository",
]
