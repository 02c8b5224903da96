"""
Notification Delivery Loop

Pushes due notifications to learners' devices and records the outcome.

Each iteration:
    1. select up to NOTIFICATION_BATCH_SIZE due notifications (not delivered,
       not dead-lettered, scheduled_for <= now, retry window elapsed), oldest
       first, for learners with a usable device registration
    2. resolve the learner's device token (skip if none / disabled / blank)
    3. send through the PushSender
    4. success → mark delivered (one UPDATE + commit)
       failure → bump delivery_attempts, back off, dead-letter after
       NOTIFICATION_MAX_RETRIES

Delivery is at-least-once: a crash between a successful send and the
delivered UPDATE re-sends the notification on the next iteration. A failed
send is never marked delivered.

Usage:
    from studypulse.services.notifications.delivery import NotificationDeliveryService

    service = NotificationDeliveryService(db, sender, clock)
    report = await service.deliver_due()
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.config import settings
from studypulse.db.models import DeviceRegistration, Notification
from studypulse.models.notifications import DeliveryReport
from studypulse.services.clock import Clock
from studypulse.services.notifications.push import PushSender

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingNotification:
    """Column snapshot of a due notification, safe to use across rollbacks."""

    id: int
    learner_id: int
    notification_type: int
    title: str
    body: str
    delivery_attempts: int


class NotificationDeliveryService:
    """Service delivering due notifications through a PushSender."""

    def __init__(
        self,
        db: AsyncSession,
        sender: PushSender,
        clock: Clock,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay_minutes: Optional[int] = None,
    ):
        """
        Initialize the delivery service.

        Args:
            db: SQLAlchemy async database session.
            sender: Messaging capability used for every push.
            clock: Source of "now" for due-ness and retry back-off.
            batch_size: Max notifications per iteration (default from settings).
            max_retries: Failed sends before dead-lettering (default from settings).
            retry_delay_minutes: Back-off after a failed send (default from settings).
        """
        self.db = db
        self.sender = sender
        self.clock = clock
        self.batch_size = (
            batch_size if batch_size is not None else settings.NOTIFICATION_BATCH_SIZE
        )
        self.max_retries = (
            max_retries if max_retries is not None else settings.NOTIFICATION_MAX_RETRIES
        )
        self.retry_delay = timedelta(
            minutes=retry_delay_minutes
            if retry_delay_minutes is not None
            else settings.NOTIFICATION_RETRY_DELAY_MINUTES
        )

    async def deliver_due(self) -> DeliveryReport:
        """
        Run one delivery iteration.

        Every selected notification is attempted; an error on one of them is
        rolled back and does not stop the rest. Only send errors count as a
        delivery attempt; a failed device lookup leaves the row untouched.
        """
        now = self.clock.now()
        pending = await self._fetch_due(now)
        report = DeliveryReport(selected=len(pending))

        if not pending:
            logger.debug("No due notifications")
            return report

        logger.info(f"Delivering {len(pending)} due notifications")

        for item in pending:
            try:
                token = await self._resolve_token(item.learner_id)
            except Exception as e:
                # Not a send attempt; picked up again next iteration
                await self.db.rollback()
                report.failed += 1
                logger.error(
                    f"Could not look up device for notification {item.id}: {e}",
                    exc_info=True,
                )
                continue

            if token is None:
                report.skipped += 1
                logger.debug(
                    f"Notification {item.id} skipped: learner {item.learner_id} "
                    f"has no usable device"
                )
                continue

            try:
                sent = await self.sender.send(
                    token,
                    item.title,
                    item.body,
                    {"notification_id": str(item.id), "type": str(item.notification_type)},
                )
                error = None if sent else "push rejected by provider"
            except Exception as e:
                await self.db.rollback()
                sent = False
                error = f"{type(e).__name__}: {e}"
                logger.error(f"Delivery of notification {item.id} raised: {error}", exc_info=True)

            if sent:
                try:
                    await self._mark_delivered(item.id, now)
                    report.delivered += 1
                except Exception as e:
                    # Sent but not recorded; the next iteration sends it again
                    await self.db.rollback()
                    report.failed += 1
                    logger.error(
                        f"Notification {item.id} sent but not marked delivered: {e}",
                        exc_info=True,
                    )
                continue

            try:
                dead = await self._record_failure(item, error or "unknown error", now)
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    f"Could not record failed attempt for notification {item.id}: {e}",
                    exc_info=True,
                )
                report.failed += 1
                continue

            if dead:
                report.dead_lettered += 1
            else:
                report.failed += 1

        logger.info(
            f"Delivery complete: {report.delivered} delivered, {report.failed} failed, "
            f"{report.dead_lettered} dead-lettered, {report.skipped} skipped"
        )
        return report

    async def _mark_delivered(self, notification_id: int, now: datetime) -> None:
        await self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(delivered=True, delivered_at=now, last_error=None)
        )
        await self.db.commit()
        logger.info(f"Notification {notification_id} delivered")

    async def _record_failure(
        self, item: PendingNotification, error: str, now: datetime
    ) -> bool:
        """
        Record a failed send attempt.

        Returns:
            True if the notification was dead-lettered by this failure.
        """
        attempts = item.delivery_attempts + 1
        dead = attempts >= self.max_retries

        await self.db.execute(
            update(Notification)
            .where(Notification.id == item.id)
            .values(
                delivery_attempts=attempts,
                last_error=error[:1000],
                next_attempt_at=now + self.retry_delay,
                failed=dead,
            )
        )
        await self.db.commit()

        if dead:
            logger.warning(
                f"Notification {item.id} dead-lettered after {attempts} failed attempts: {error}"
            )
        else:
            logger.warning(
                f"Notification {item.id} failed (attempt {attempts}/{self.max_retries}), "
                f"retrying after {self.retry_delay}: {error}"
            )
        return dead

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def _fetch_due(self, now: datetime) -> list[PendingNotification]:
        usable_device = exists().where(
            DeviceRegistration.learner_id == Notification.learner_id,
            DeviceRegistration.notifications_enabled.is_(True),
            DeviceRegistration.device_token.is_not(None),
            func.length(func.trim(DeviceRegistration.device_token)) > 0,
        )
        result = await self.db.execute(
            select(
                Notification.id,
                Notification.learner_id,
                Notification.notification_type,
                Notification.title,
                Notification.body,
                Notification.delivery_attempts,
            )
            .where(
                Notification.delivered.is_(False),
                Notification.failed.is_(False),
                Notification.scheduled_for <= now,
                or_(
                    Notification.next_attempt_at.is_(None),
                    Notification.next_attempt_at <= now,
                ),
                usable_device,
            )
            .order_by(Notification.scheduled_for.asc(), Notification.id.asc())
            .limit(self.batch_size)
        )
        return [
            PendingNotification(
                id=row.id,
                learner_id=row.learner_id,
                notification_type=row.notification_type,
                title=row.title,
                body=row.body,
                delivery_attempts=row.delivery_attempts or 0,
            )
            for row in result.all()
        ]

    async def _resolve_token(self, learner_id: int) -> Optional[str]:
        """Device token of the learner, or None when it can't receive pushes."""
        result = await self.db.execute(
            select(DeviceRegistration.device_token, DeviceRegistration.notifications_enabled)
            .where(DeviceRegistration.learner_id == learner_id)
        )
        row = result.first()
        if row is None or not row.notifications_enabled:
            return None
        token = (row.device_token or "").strip()
        return token or None
