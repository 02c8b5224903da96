"""
Daily Reminder Generation

Creates at most one study-reminder notification per learner per civil day.

Flow (once per day, see services/scheduler.py):
    for each active learner with reminders enabled:
        today's weekday → Day Classifier → skip if not a study day
        reminder already scheduled for today? → skip
        otherwise insert a reminder due at today + reminder time

Idempotency:
    The existence check is backed by the unique constraint
    (learner_id, notification_type, scheduled_date). If two runs race past
    the check, the loser's insert fails with IntegrityError and is counted
    as "already exists", so a retry or a double trigger never produces a
    second reminder.

Failure semantics:
    Each learner is committed on its own. An error for one learner is
    logged, rolled back and counted; the batch moves on. Failing to load
    the learner list is fatal for the run and propagates to the caller.

Usage:
    from studypulse.services.notifications.generator import NotificationGenerator

    generator = NotificationGenerator(db, clock)
    result = await generator.generate_for_today()
    print(f"{result.created} created")
"""

import logging
import random
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.config import settings, yaml_config
from studypulse.db.models import Learner, Notification
from studypulse.enums.learning import NotificationType, Weekday
from studypulse.models.metrics import BatchResult
from studypulse.services.clock import Clock
from studypulse.services.scheduling.day_classifier import (
    LearnerPreference,
    is_study_day,
)

logger = logging.getLogger(__name__)

REMINDER_TITLE: str = yaml_config.get("notifications", {}).get(
    "reminder_title", "⏰ Study reminder"
)

REMINDER_TEMPLATES: tuple[str, ...] = (
    "Hi {name}! It's time for today's study session 📚",
    "{name}, don't forget today's practice! 💪",
    "Reminder: your study session is waiting for you, {name} 🎯",
    "Time to practice, {name}! Keep your streak alive 🔥",
    "Your daily learning is ready, {name} ✨",
)


def default_reminder_time() -> time:
    """DEFAULT_REMINDER_TIME as a time object (19:00 unless configured)."""
    return time.fromisoformat(settings.DEFAULT_REMINDER_TIME)


class NotificationGenerator:
    """
    Daily batch job creating study-reminder notifications.

    Run a single instance at a time; the scheduler guarantees this with
    max_instances=1 and the unique constraint catches anything that slips
    through.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the generator.

        Args:
            db: SQLAlchemy async database session.
            clock: Source of today's civil date.
            rng: Random source for picking the reminder text (seeded in tests).
        """
        self.db = db
        self.clock = clock
        self.rng = rng or random.Random()

    async def generate_for_today(self) -> BatchResult:
        """
        Create today's reminders for every eligible learner.

        Returns:
            BatchResult with created / skipped / failed counts.
        """
        today = self.clock.today()
        weekday = Weekday.from_date(today)
        logger.info(f"Generating study reminders for {today.isoformat()} ({weekday.value})")

        preferences = await self._fetch_reminder_learners()

        result = BatchResult()
        for preference in preferences:
            result.processed += 1
            try:
                if await self._process_learner(preference, today, weekday):
                    result.created += 1
                else:
                    result.skipped += 1
            except Exception as e:
                await self.db.rollback()
                result.failed += 1
                result.failed_ids.append(preference.learner_id)
                logger.error(
                    f"Reminder generation failed for learner {preference.learner_id}: {e}",
                    exc_info=True,
                )

        logger.info(
            f"Reminder generation complete: {result.created} created, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    async def _process_learner(
        self, preference: LearnerPreference, today: date, weekday: Weekday
    ) -> bool:
        """Create today's reminder for one learner; False when skipped."""
        if not is_study_day(weekday, preference):
            logger.debug(
                f"Learner {preference.learner_id} has no study session on {weekday.value}"
            )
            return False

        if await self._reminder_exists(preference.learner_id, today):
            logger.debug(f"Learner {preference.learner_id} already has a reminder for today")
            return False

        notification = self.build_reminder(preference, today, weekday)
        self.db.add(notification)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another run inserted the same (learner, type, date) first
            await self.db.rollback()
            logger.info(
                f"Reminder for learner {preference.learner_id} on {today} already exists"
            )
            return False

        logger.info(
            f"Reminder created for learner {preference.learner_id} "
            f"at {notification.extra_data['local_time']}"
        )
        return True

    def build_reminder(
        self, preference: LearnerPreference, today: date, weekday: Weekday
    ) -> Notification:
        """
        Build (without persisting) the reminder notification for one learner.

        scheduled_for is today's civil date at the learner's reminder time in
        the local timezone, stored as a UTC instant.
        """
        reminder_time = preference.reminder_time or default_reminder_time()
        local_due = datetime.combine(today, reminder_time, tzinfo=self.clock.tz)

        return Notification(
            learner_id=preference.learner_id,
            notification_type=NotificationType.STUDY_REMINDER.value,
            title=REMINDER_TITLE,
            body=self.pick_message(preference.name),
            extra_data={
                "kind": "study_reminder",
                "weekday": weekday.value,
                "frequency": preference.weekly_frequency,
                "local_time": reminder_time.strftime("%H:%M"),
            },
            scheduled_for=local_due.astimezone(timezone.utc),
            scheduled_date=today,
            delivered=False,
            read=False,
            action_taken=False,
            delivery_attempts=0,
            failed=False,
            created_at=self.clock.now(),
        )

    def pick_message(self, name: str) -> str:
        """Pseudo-randomly chosen reminder text personalised with the name."""
        template = self.rng.choice(REMINDER_TEMPLATES)
        return template.format(name=name or "there")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def _fetch_reminder_learners(self) -> list[LearnerPreference]:
        """
        Preferences of active learners with reminders enabled.

        Parsed into plain LearnerPreference values up front so a rollback
        inside the loop cannot expire the rows being iterated.
        """
        result = await self.db.execute(
            select(Learner)
            .where(Learner.is_active.is_(True), Learner.reminders_enabled.is_(True))
            .order_by(Learner.id)
        )
        return [LearnerPreference.from_learner(learner) for learner in result.scalars().all()]

    async def _reminder_exists(self, learner_id: int, today: date) -> bool:
        result = await self.db.execute(
            select(Notification.id)
            .where(
                Notification.learner_id == learner_id,
                Notification.notification_type == NotificationType.STUDY_REMINDER.value,
                Notification.scheduled_date == today,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
