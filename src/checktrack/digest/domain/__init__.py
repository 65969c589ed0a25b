"""
Digest Domain Layer
===================
"""

from checktrack.digest.domain.aggregation import (
    build_digest_data,
    changes_in_window,
    collect_pending_actions,
    consent_priority,
    is_digest_due,
    sort_pending_actions,
    summarize,
    window_for,
)
from checktrack.digest.domain.entities import (
    DigestData,
    DigestPreferences,
    DigestSummary,
    OverdueItem,
    PendingAction,
)

__all__ = [
    "build_digest_data",
    "changes_in_window",
    "collect_pending_actions",
    "consent_priority",
    "is_digest_due",
    "sort_pending_actions",
    "summarize",
    "window_for",
    "DigestData",
    "DigestPreferences",
    "DigestSummary",
    "OverdueItem",
    "PendingAction",
]
