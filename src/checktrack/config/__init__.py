"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="checktrack", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)
    app_base_url: str = Field(
        default="/background-checks",
        description="Prefix used for check links handed to notification recipients"
    )

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/checktrack",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Lifecycle Policy ==========
    policy_config_path: Path = Field(
        default=Path("lifecycle_policy.yaml"),
        description="YAML file holding SLA configurations and escalation rules"
    )
    track_status_entry: bool = Field(
        default=True,
        description="Count SLA and escalation days from status entry instead of initiation"
    )
    designated_reviewers: List[str] = Field(
        default=["hr-director"],
        description="Users notified when a check enters issues-found"
    )

    # ========== Background Cycles ==========
    transition_interval: int = Field(
        default=300,
        description="Seconds between transition sweeps (0 disables)",
        ge=0
    )
    sla_notification_interval: int = Field(
        default=900,
        description="Seconds between SLA notification cycles (0 disables)",
        ge=0
    )
    escalation_interval: int = Field(
        default=3600,
        description="Seconds between escalation scans (0 disables)",
        ge=0
    )
    digest_interval: int = Field(
        default=3600,
        description="Seconds between digest delivery cycles (0 disables)",
        ge=0
    )
    escalation_cooldown_hours: int = Field(
        default=24,
        description="Per-check escalation cooldown window",
        ge=1
    )
    digest_consent_stale_days: int = Field(
        default=0,
        description="Days a check may wait for consent before it appears as a pending action",
        ge=0
    )

    # ========== Notification Delivery ==========
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook receiving notification payloads"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for notification webhook calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class CheckStatus(str, Enum):
    """Background check lifecycle statuses."""
    NOT_STARTED = "not-started"
    PENDING_CONSENT = "pending-consent"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ISSUES_FOUND = "issues-found"
    CANCELLED = "cancelled"


class ResultStatus(str, Enum):
    """Classification of a single check type result."""
    PENDING = "pending"
    CLEAR = "clear"
    REVIEW_REQUIRED = "review-required"
    NOT_CLEAR = "not-clear"


class Verdict(str, Enum):
    """Aggregate verdict over all results of a check."""
    CLEAR = "clear"
    CONDITIONAL = "conditional"
    NOT_CLEAR = "not-clear"


class SLAState(str, Enum):
    """SLA classification states."""
    ON_TRACK = "on-track"
    WARNING = "warning"
    CRITICAL = "critical"
    BREACHED = "breached"


class Priority(str, Enum):
    """Priority used by escalation rules, notifications and pending actions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DigestFrequency(str, Enum):
    """Digest subscription frequencies."""
    DAILY = "daily"
    WEEKLY = "weekly"
    DISABLED = "disabled"


class PendingActionType(str, Enum):
    """Kinds of outstanding work surfaced in digests."""
    PENDING_CONSENT = "pending-consent"
    REQUIRES_REVIEW = "requires-review"
    INCOMPLETE_CHECK = "incomplete-check"


class NotificationCategory(str, Enum):
    """Notification categories handed to the delivery collaborator."""
    STATUS_CHANGE = "status-change"
    SLA = "sla"
    ESCALATION = "escalation"
    DIGEST = "digest"


class NotificationSeverity(str, Enum):
    """Notification severities."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# ========== Lists for validation ==========

VALID_STATUSES = [status.value for status in CheckStatus]
TERMINAL_STATUSES = [CheckStatus.COMPLETED, CheckStatus.ISSUES_FOUND, CheckStatus.CANCELLED]
VERDICT_STATUSES = [CheckStatus.COMPLETED, CheckStatus.ISSUES_FOUND]
TERMINAL_RESULT_STATUSES = [
    ResultStatus.CLEAR, ResultStatus.REVIEW_REQUIRED, ResultStatus.NOT_CLEAR
]
VALID_PRIORITIES = [priority.value for priority in Priority]
