"""
Notification Payloads
=====================

Structured notifications handed to the external delivery collaborator.
The lifecycle core never delivers email/SMS/push itself.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from checktrack.config import NotificationCategory, NotificationSeverity, Priority


@dataclass(frozen=True)
class Notification:
    """
    One message for one recipient.

    ``metadata`` always carries ``check_id``, ``candidate_name`` and
    ``event_kind`` when the notification concerns a single check.
    """

    recipient: str
    category: NotificationCategory
    severity: NotificationSeverity
    priority: Priority
    title: str
    message: str
    link: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_kind(self) -> str:
        return self.metadata.get("event_kind", "")

    def to_dict(self) -> dict:
        """Convert to the wire payload."""
        return {
            "recipient": self.recipient,
            "category": self.category.value,
            "severity": self.severity.value,
            "priority": self.priority.value,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "metadata": dict(self.metadata),
        }


def build_check_link(base_url: str, check_id: str) -> str:
    """Reference link to a check, relative to the configured base URL."""
    return f"{base_url.rstrip('/')}/{check_id}"
