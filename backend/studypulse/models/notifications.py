"""
Notification API Models (Pydantic)

Request/response schemas for the notification inbox, device registration
and delivery reports.

API Contract:
    Request models use StrictRequest (extra="forbid") to reject unknown fields.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from studypulse.enums.learning import DevicePlatform
from studypulse.models.base import StrictRequest, StrictResponse


class RegisterDeviceRequest(StrictRequest):
    """Register (or replace) the learner's push token."""

    token: str = Field(..., min_length=1, max_length=512)
    platform: Optional[DevicePlatform] = None


class NotificationConfigRequest(StrictRequest):
    """Enable or disable push delivery for a learner."""

    enabled: bool


class NotificationItem(StrictResponse):
    """One notification as shown in the learner's inbox."""

    id: int
    notification_type: int
    title: str
    body: str
    scheduled_for: datetime
    read: bool = False
    delivered: bool = False
    action_taken: bool = False


class NotificationListResponse(StrictResponse):
    """Most recent notifications of a learner with the unread count."""

    success: bool = True
    total: int
    unread: int
    data: list[NotificationItem] = Field(default_factory=list)


class UnreadCountResponse(StrictResponse):
    success: bool = True
    unread: int


class DeliveryReport(StrictResponse):
    """
    Outcome of one delivery loop iteration.

    Attributes:
        selected: Due notifications picked for this iteration.
        delivered: Sent and marked delivered.
        skipped: Learner has no usable device registration.
        failed: Send failed; left pending for a later retry.
        dead_lettered: Failed for the last allowed time; will not be retried.
    """

    selected: int = 0
    delivered: int = 0
    skipped: int = 0
    failed: int = 0
    dead_lettered: int = 0
