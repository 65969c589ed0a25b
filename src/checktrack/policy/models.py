"""
Lifecycle Policy Model
======================

The administrative policy document: SLA configurations and escalation
rules, as stored in the YAML policy file.
"""

from collections import Counter
from typing import List

from pydantic import BaseModel, Field, model_validator

from checktrack.escalation.domain import DEFAULT_ESCALATION_RULES, EscalationRule
from checktrack.sla.domain import DEFAULT_SLA_CONFIGURATIONS, SLAConfiguration


class LifecyclePolicy(BaseModel):
    """One immutable snapshot of the lifecycle policy."""

    sla_configurations: List[SLAConfiguration] = Field(
        default_factory=lambda: list(DEFAULT_SLA_CONFIGURATIONS)
    )
    escalation_rules: List[EscalationRule] = Field(
        default_factory=lambda: list(DEFAULT_ESCALATION_RULES)
    )

    @model_validator(mode="after")
    def validate_identifiers(self) -> "LifecyclePolicy":
        """IDs are unique and each status has at most one enabled SLA configuration."""
        duplicate_sla = [k for k, n in Counter(c.id for c in self.sla_configurations).items() if n > 1]
        if duplicate_sla:
            raise ValueError(f"duplicate SLA configuration ids: {sorted(duplicate_sla)}")

        duplicate_rules = [k for k, n in Counter(r.id for r in self.escalation_rules).items() if n > 1]
        if duplicate_rules:
            raise ValueError(f"duplicate escalation rule ids: {sorted(duplicate_rules)}")

        enabled_statuses = Counter(c.status.value for c in self.sla_configurations if c.enabled)
        conflicting = [status for status, n in enabled_statuses.items() if n > 1]
        if conflicting:
            raise ValueError(f"more than one enabled SLA configuration for: {sorted(conflicting)}")

        return self

    def to_document(self) -> dict:
        """Plain data suitable for yaml.safe_dump."""
        return self.model_dump(mode="json")
