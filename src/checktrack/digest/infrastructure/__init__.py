"""
Digest Infrastructure Layer
===========================
"""

from checktrack.digest.infrastructure.repositories import (
    InMemoryDigestPreferencesRepository,
    SQLAlchemyDigestPreferencesRepository,
)

__all__ = [
    "InMemoryDigestPreferencesRepository",
    "SQLAlchemyDigestPreferencesRepository",
]
