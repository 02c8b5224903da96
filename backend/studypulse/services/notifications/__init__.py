"""
Notification Services

Modules:
- generator: daily study-reminder creation
- delivery: due-notification push loop with retry and dead-lettering
- push: PushSender protocol and the httpx gateway client
- inbox: device registration, inbox listing, read tracking, test push

Usage:
    from studypulse.services.notifications import (
        NotificationGenerator,
        NotificationDeliveryService,
        HttpPushSender,
    )
"""

from studypulse.services.notifications.delivery import NotificationDeliveryService
from studypulse.services.notifications.generator import NotificationGenerator
from studypulse.services.notifications.inbox import NotificationInboxService
from studypulse.services.notifications.push import HttpPushSender, PushSender, send_many

__all__ = [
    "HttpPushSender",
    "NotificationDeliveryService",
    "NotificationGenerator",
    "NotificationInboxService",
    "PushSender",
    "send_many",
]
