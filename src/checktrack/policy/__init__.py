"""
Lifecycle Policy
================

SLA configurations and escalation rules as administrative data.
"""

from checktrack.policy.manager import PolicyConfigManager
from checktrack.policy.models import LifecyclePolicy

__all__ = ["LifecyclePolicy", "PolicyConfigManager"]
