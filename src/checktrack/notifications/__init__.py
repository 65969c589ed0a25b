"""
Notifications
=============

Outbound notification contract: payload type plus delivery gateways.
"""

from checktrack.notifications.domain import Notification, build_check_link
from checktrack.notifications.gateways import (
    INotificationGateway,
    InMemoryNotificationGateway,
    LoggingNotificationGateway,
    WebhookNotificationGateway,
    create_notification_gateway,
)

__all__ = [
    "Notification",
    "build_check_link",
    "INotificationGateway",
    "InMemoryNotificationGateway",
    "LoggingNotificationGateway",
    "WebhookNotificationGateway",
    "create_notification_gateway",
]
