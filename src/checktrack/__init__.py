"""
Checktrack
==========

Background check lifecycle engine.

Bounded contexts:
- checks: status transition engine and audit trail
- sla: SLA calculation, dashboards and threshold notifications
- escalation: rule-based escalation of stalled checks
- digest: daily/weekly summaries of status changes and pending actions
"""

__version__ = "1.0.0"
