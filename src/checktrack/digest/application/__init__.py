"""
Digest Application Layer
========================
"""

from checktrack.digest.application.dto import (
    DigestCycleResponse,
    DigestPreferencesDTO,
    DigestPreviewResponse,
)
from checktrack.digest.application.services import (
    DigestAggregator,
    DigestDeliveryService,
    IDigestPreferencesRepository,
    build_digest_notification,
)

__all__ = [
    # DTOs
    "DigestCycleResponse",
    "DigestPreferencesDTO",
    "DigestPreviewResponse",
    # Services
    "DigestAggregator",
    "DigestDeliveryService",
    "build_digest_notification",
    # Repository Interfaces
    "IDigestPreferencesRepository",
]
