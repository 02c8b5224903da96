"""
Notification Inbox Service

Learner-facing side of notifications:

- device registration (one token per learner, latest wins)
- push on/off configuration
- recent notification list and unread counter
- read / action-taken tracking
- test push to the registered device

Usage:
    from studypulse.services.notifications.inbox import NotificationInboxService

    service = NotificationInboxService(db, clock)
    await service.register_device(learner_id, token, DevicePlatform.ANDROID)
    listing = await service.list_recent(learner_id)
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.config import settings, yaml_config
from studypulse.db.models import DeviceRegistration, Learner, Notification
from studypulse.enums.learning import DevicePlatform, NotificationType
from studypulse.middleware.error_handling import (
    DeliveryError,
    NotFoundError,
    ValidationError,
)
from studypulse.models.notifications import NotificationItem, NotificationListResponse
from studypulse.services.clock import Clock
from studypulse.services.notifications.push import PushSender

logger = logging.getLogger(__name__)

TEST_TITLE: str = yaml_config.get("notifications", {}).get(
    "test_title", "🎯 Test notification"
)
TEST_BODY = "Push notifications are working correctly! 🎉"


class NotificationInboxService:
    """Service for device registration and the learner's notification inbox."""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    # -------------------------------------------------------------------------
    # Device registration
    # -------------------------------------------------------------------------

    async def register_device(
        self,
        learner_id: int,
        token: str,
        platform: Optional[DevicePlatform] = None,
    ) -> DeviceRegistration:
        """
        Store the learner's push token, replacing any previous one.

        The first registration enables push notifications; later ones only
        refresh the token and keep the learner's on/off choice.

        Raises:
            ValidationError: If the token is blank.
            NotFoundError: If the learner doesn't exist.
        """
        token = (token or "").strip()
        if not token:
            raise ValidationError("Device token is required")

        device, created = await self._get_or_create_device(learner_id)
        if created:
            device.notifications_enabled = True

        device.device_token = token
        device.platform = platform.value if platform else None
        device.updated_at = self.clock.now()

        await self.db.commit()
        logger.info(
            f"Device registered for learner {learner_id} "
            f"({device.platform or 'unknown platform'})"
        )
        return device

    async def set_notifications_enabled(
        self, learner_id: int, enabled: bool
    ) -> DeviceRegistration:
        """
        Turn push delivery on or off for a learner.

        Raises:
            NotFoundError: If the learner doesn't exist.
        """
        device, _ = await self._get_or_create_device(learner_id)
        device.notifications_enabled = enabled
        device.updated_at = self.clock.now()

        await self.db.commit()
        logger.info(
            f"Notifications {'enabled' if enabled else 'disabled'} for learner {learner_id}"
        )
        return device

    # -------------------------------------------------------------------------
    # Inbox
    # -------------------------------------------------------------------------

    async def list_recent(
        self, learner_id: int, limit: Optional[int] = None
    ) -> NotificationListResponse:
        """Most recent notifications of a learner (newest first) plus unread count."""
        limit = limit or settings.NOTIFICATION_HISTORY_LIMIT
        result = await self.db.execute(
            select(Notification)
            .where(Notification.learner_id == learner_id)
            .order_by(Notification.scheduled_for.desc(), Notification.id.desc())
            .limit(limit)
        )
        items = [NotificationItem.model_validate(n) for n in result.scalars().all()]
        unread = await self.unread_count(learner_id)
        return NotificationListResponse(total=len(items), unread=unread, data=items)

    async def unread_count(self, learner_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.learner_id == learner_id,
                Notification.read.is_(False),
            )
        )
        return int(result.scalar() or 0)

    async def mark_read(self, notification_id: int) -> bool:
        """Mark a notification as read; False if it doesn't exist."""
        return await self._set_flag(
            notification_id, read=True, read_at=self.clock.now()
        )

    async def mark_action_taken(self, notification_id: int) -> bool:
        """Record that the learner acted on a notification (also marks it read)."""
        now = self.clock.now()
        return await self._set_flag(
            notification_id, action_taken=True, action_at=now, read=True
        )

    async def _set_flag(self, notification_id: int, **values) -> bool:
        result = await self.db.execute(
            update(Notification).where(Notification.id == notification_id).values(**values)
        )
        if not result.rowcount:
            await self.db.rollback()
            logger.info(f"Notification {notification_id} not found")
            return False
        await self.db.commit()
        return True

    # -------------------------------------------------------------------------
    # Test push
    # -------------------------------------------------------------------------

    async def send_test_push(self, learner_id: int, sender: PushSender) -> None:
        """
        Send a test notification to the learner's registered device.

        Raises:
            NotFoundError: If the learner has no registered token.
            DeliveryError: If the push gateway did not accept the message.
        """
        device = await self._get_device(learner_id)
        if device is None or not (device.device_token or "").strip():
            raise NotFoundError(f"No device registered for learner {learner_id}")

        sent = await sender.send(
            device.device_token,
            TEST_TITLE,
            TEST_BODY,
            {"type": str(NotificationType.SYSTEM.value), "test": "true"},
        )
        if not sent:
            raise DeliveryError("Test notification could not be sent")
        logger.info(f"Test push sent to learner {learner_id}")

    async def _get_device(self, learner_id: int) -> Optional[DeviceRegistration]:
        result = await self.db.execute(
            select(DeviceRegistration).where(DeviceRegistration.learner_id == learner_id)
        )
        return result.scalar_one_or_none()

    async def _get_or_create_device(
        self, learner_id: int
    ) -> tuple[DeviceRegistration, bool]:
        """Existing registration, or a new one added to the session (created=True)."""
        device = await self._get_device(learner_id)
        if device is not None:
            return device, False

        if not await self._learner_exists(learner_id):
            raise NotFoundError(f"Learner {learner_id} not found")
        device = DeviceRegistration(learner_id=learner_id)
        self.db.add(device)
        return device, True

    async def _learner_exists(self, learner_id: int) -> bool:
        result = await self.db.execute(select(Learner.id).where(Learner.id == learner_id))
        return result.scalar_one_or_none() is not None
