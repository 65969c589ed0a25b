"""
SLA Domain Layer
================

SLA configuration value objects, the pure calculator and computed projections.
"""

from checktrack.sla.domain.entities import SLAStats, SLAStatus
from checktrack.sla.domain.value_objects import (
    DEFAULT_SLA_CONFIGURATIONS,
    PERCENT_DISPLAY_CAP,
    SLACalculator,
    SLAConfiguration,
    find_configuration,
)

__all__ = [
    "SLAStats",
    "SLAStatus",
    "DEFAULT_SLA_CONFIGURATIONS",
    "PERCENT_DISPLAY_CAP",
    "SLACalculator",
    "SLAConfiguration",
    "find_configuration",
]
