"""
SLA Application DTOs
====================

Response models for SLA projections and statistics.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from checktrack.sla.domain import SLAStats, SLAStatus

SLAStateStr = Literal["on-track", "warning", "critical", "breached"]


class SLAStatusResponse(BaseModel):
    """SLA position of one check."""
    check_id: str
    candidate_name: str
    status: str
    configuration_id: str
    configuration_name: str
    target_days: int
    business_days_only: bool
    start_date: datetime
    target_date: datetime
    days_elapsed: int
    days_remaining: int
    percent_complete: float = Field(..., description="Capped at 150 for display")
    sla_status: SLAStateStr
    breached: bool
    breached_date: Optional[datetime] = None

    @classmethod
    def from_entity(cls, sla_status: SLAStatus) -> "SLAStatusResponse":
        configuration = sla_status.configuration
        return cls(
            check_id=sla_status.check_id,
            candidate_name=sla_status.candidate_name,
            status=sla_status.status.value,
            configuration_id=configuration.id,
            configuration_name=configuration.name,
            target_days=configuration.target_days,
            business_days_only=configuration.business_days_only,
            start_date=sla_status.start_date,
            target_date=sla_status.target_date,
            days_elapsed=sla_status.days_elapsed,
            days_remaining=sla_status.days_remaining,
            percent_complete=round(sla_status.percent_complete, 1),
            sla_status=sla_status.sla_status.value,
            breached=sla_status.breached,
            breached_date=sla_status.breached_date,
        )


class SLAStatsResponse(BaseModel):
    """Aggregate SLA counts."""
    total: int
    on_track: int
    warning: int
    critical: int
    breached: int
    average_percent_complete: float

    @classmethod
    def from_entity(cls, stats: SLAStats) -> "SLAStatsResponse":
        return cls(
            total=stats.total,
            on_track=stats.on_track,
            warning=stats.warning,
            critical=stats.critical,
            breached=stats.breached,
            average_percent_complete=stats.average_percent_complete,
        )


class SLADashboardResponse(BaseModel):
    """Stats plus the checks that need attention."""
    stats: SLAStatsResponse
    breached: List[SLAStatusResponse] = Field(default_factory=list)
    critical: List[SLAStatusResponse] = Field(default_factory=list)
    checks: List[SLAStatusResponse] = Field(default_factory=list)


class NotificationCycleResponse(BaseModel):
    """Result of a manually triggered SLA notification cycle."""
    notifications_sent: int
    check_ids: List[str] = Field(default_factory=list)
