"""
SLA Value Objects
=================

Immutable SLA configuration and the pure SLA calculator.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared between evaluation cycles.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from checktrack.config import CheckStatus, SLAState
from checktrack.core.calendar import (
    add_business_days, business_days_between,
    calendar_days_between, calendar_days_until,
)

PERCENT_DISPLAY_CAP = 150.0


class SLAConfiguration(BaseModel):
    """
    Service-level target for one check status.

    Thresholds are percentages of ``target_days``; warning must be below critical.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    status: CheckStatus
    name: str = Field(..., min_length=1)
    description: str = ""
    target_days: int = Field(..., ge=1, description="Allowed days in this status")
    business_days_only: bool = True
    warning_threshold_percent: float = Field(default=75, ge=0)
    critical_threshold_percent: float = Field(default=90, ge=0)
    notify_at_warning: bool = True
    notify_at_critical: bool = True
    notify_at_breached: bool = True
    enabled: bool = True

    @model_validator(mode="after")
    def validate_thresholds(self) -> "SLAConfiguration":
        """Warning threshold must be strictly below the critical threshold."""
        if self.warning_threshold_percent >= self.critical_threshold_percent:
            raise ValueError(
                f"warning_threshold_percent ({self.warning_threshold_percent}) must be below "
                f"critical_threshold_percent ({self.critical_threshold_percent})"
            )
        return self


DEFAULT_SLA_CONFIGURATIONS = (
    SLAConfiguration(
        id="sla-not-started",
        status=CheckStatus.NOT_STARTED,
        name="Check Initiation",
        description="Time allowed before consent is requested",
        target_days=2,
        warning_threshold_percent=50,
        critical_threshold_percent=80,
    ),
    SLAConfiguration(
        id="sla-pending-consent",
        status=CheckStatus.PENDING_CONSENT,
        name="Consent Collection",
        description="Time allowed for the candidate to give consent",
        target_days=3,
        warning_threshold_percent=60,
        critical_threshold_percent=85,
    ),
    SLAConfiguration(
        id="sla-in-progress",
        status=CheckStatus.IN_PROGRESS,
        name="Check Processing",
        description="Time allowed for providers to return all results",
        target_days=10,
        warning_threshold_percent=70,
        critical_threshold_percent=90,
    ),
    SLAConfiguration(
        id="sla-issues-found",
        status=CheckStatus.ISSUES_FOUND,
        name="Issue Review",
        description="Time allowed for a reviewer to act on adverse findings",
        target_days=2,
        warning_threshold_percent=50,
        critical_threshold_percent=80,
    ),
)


def find_configuration(
    configurations: Sequence[SLAConfiguration],
    status: CheckStatus
) -> Optional[SLAConfiguration]:
    """First enabled configuration for ``status``."""
    for configuration in configurations:
        if configuration.status == status and configuration.enabled:
            return configuration
    return None


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class: every method is a function of its arguments,
    including the evaluation time.
    """

    @staticmethod
    def days_elapsed(start: datetime, now: datetime, business_days_only: bool) -> int:
        if business_days_only:
            return business_days_between(start, now)
        return calendar_days_between(start, now)

    @staticmethod
    def target_date(start: datetime, target_days: int, business_days_only: bool) -> datetime:
        if business_days_only:
            return add_business_days(start, target_days)
        return start + timedelta(days=target_days)

    @staticmethod
    def days_remaining(now: datetime, target: datetime, business_days_only: bool) -> int:
        """Signed; negative once the target date has passed."""
        if business_days_only:
            return business_days_between(now, target)
        return calendar_days_until(now, target)

    @staticmethod
    def percent_complete(days_elapsed: int, target_days: int) -> float:
        """Unclamped elapsed/target percentage."""
        return (days_elapsed / target_days) * 100

    @staticmethod
    def classify(
        days_elapsed: int,
        target_days: int,
        percent_complete: float,
        warning_threshold_percent: float,
        critical_threshold_percent: float
    ) -> SLAState:
        """
        Classify an SLA position.

        Breach (elapsed strictly greater than target) overrides both thresholds.
        """
        if days_elapsed > target_days:
            return SLAState.BREACHED
        if percent_complete >= critical_threshold_percent:
            return SLAState.CRITICAL
        if percent_complete >= warning_threshold_percent:
            return SLAState.WARNING
        return SLAState.ON_TRACK

    @staticmethod
    def display_percent(percent_complete: float) -> float:
        return min(percent_complete, PERCENT_DISPLAY_CAP)
