"""
Notifications API Router

Endpoints for device registration and the learner's notification inbox.

Endpoints:
- POST /api/notifications/{learner_id}/register-device - Store push token
- PUT /api/notifications/{learner_id}/config - Enable/disable push
- POST /api/notifications/{learner_id}/test-push - Send a test notification
- GET /api/notifications/{learner_id} - Recent notifications + unread count
- GET /api/notifications/{learner_id}/unread-count - Unread counter
- PUT /api/notifications/{notification_id}/read - Mark as read
- PUT /api/notifications/{notification_id}/action - Mark action taken
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.db.base import get_db
from studypulse.dependencies import get_clock, get_push_sender
from studypulse.middleware.error_handling import NotFoundError, handle_endpoint_errors
from studypulse.models.base import SuccessResponse
from studypulse.models.notifications import (
    NotificationConfigRequest,
    NotificationListResponse,
    RegisterDeviceRequest,
    UnreadCountResponse,
)
from studypulse.services.clock import Clock
from studypulse.services.notifications import NotificationInboxService
from studypulse.services.notifications.push import PushSender

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/notifications", tags=["notifications"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_inbox_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> NotificationInboxService:
    """Get notification inbox service."""
    return NotificationInboxService(db, clock)


# ===========================================
# Device Endpoints
# ===========================================


@router.post("/{learner_id}/register-device", response_model=SuccessResponse)
@handle_endpoint_errors("Register device")
async def register_device(
    learner_id: int,
    request: RegisterDeviceRequest,
    service: NotificationInboxService = Depends(get_inbox_service),
) -> SuccessResponse:
    """Register (or replace) the learner's push token."""
    await service.register_device(learner_id, request.token, request.platform)
    return SuccessResponse(message="Device registered")


@router.put("/{learner_id}/config", response_model=SuccessResponse)
@handle_endpoint_errors("Update notification config")
async def update_notification_config(
    learner_id: int,
    request: NotificationConfigRequest,
    service: NotificationInboxService = Depends(get_inbox_service),
) -> SuccessResponse:
    """Enable or disable push notifications for the learner."""
    await service.set_notifications_enabled(learner_id, request.enabled)
    state = "enabled" if request.enabled else "disabled"
    return SuccessResponse(message=f"Notifications {state}")


@router.post("/{learner_id}/test-push", response_model=SuccessResponse)
@handle_endpoint_errors("Send test push")
async def send_test_push(
    learner_id: int,
    service: NotificationInboxService = Depends(get_inbox_service),
    sender: PushSender = Depends(get_push_sender),
) -> SuccessResponse:
    """
    Send a test notification to the learner's registered device.

    404 when no device is registered, 502 when the gateway rejects it.
    """
    await service.send_test_push(learner_id, sender)
    return SuccessResponse(message="Test notification sent")


# ===========================================
# Inbox Endpoints
# ===========================================


@router.get("/{learner_id}", response_model=NotificationListResponse)
@handle_endpoint_errors("List notifications")
async def list_notifications(
    learner_id: int,
    limit: Optional[int] = Query(None, ge=1, le=200, description="Max notifications"),
    service: NotificationInboxService = Depends(get_inbox_service),
) -> NotificationListResponse:
    """Most recent notifications of the learner, newest first."""
    return await service.list_recent(learner_id, limit=limit)


@router.get("/{learner_id}/unread-count", response_model=UnreadCountResponse)
@handle_endpoint_errors("Count unread notifications")
async def unread_count(
    learner_id: int,
    service: NotificationInboxService = Depends(get_inbox_service),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await service.unread_count(learner_id))


@router.put("/{notification_id}/read", response_model=SuccessResponse)
@handle_endpoint_errors("Mark notification read")
async def mark_read(
    notification_id: int,
    service: NotificationInboxService = Depends(get_inbox_service),
) -> SuccessResponse:
    if not await service.mark_read(notification_id):
        raise NotFoundError(f"Notification {notification_id} not found")
    return SuccessResponse(message="Marked as read")


@router.put("/{notification_id}/action", response_model=SuccessResponse)
@handle_endpoint_errors("Mark notification action")
async def mark_action_taken(
    notification_id: int,
    service: NotificationInboxService = Depends(get_inbox_service),
) -> SuccessResponse:
    if not await service.mark_action_taken(notification_id):
        raise NotFoundError(f"Notification {notification_id} not found")
    return SuccessResponse(message="Action recorded")
