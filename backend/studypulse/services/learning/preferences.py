"""
Learner Preference Service

Reads and updates the study preferences that drive reminder generation:
weekly frequency, preferred weekdays, reminder switch and reminder time.

Validation happens here, on write, so that every value persisted through
the API is one the Day Classifier understands:

- weekly_frequency must be 1-7
- preferred_days must be 1-7 known weekday names (accents and case ignored);
  names are normalised and deduplicated before saving, and the study goal
  becomes "daily" for all seven days, "specific" otherwise
- reminder_time must be HH:MM (24h)

Usage:
    from studypulse.services.learning.preferences import PreferenceService

    service = PreferenceService(db)
    prefs = await service.update_frequency(learner_id, 4)
"""

import logging
from datetime import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.db.models import Learner
from studypulse.enums.learning import StudyGoal, Weekday
from studypulse.middleware.error_handling import NotFoundError, ValidationError
from studypulse.models.preferences import PreferencesResponse, UpdatePreferencesRequest
from studypulse.services.notifications.generator import default_reminder_time
from studypulse.services.scheduling.day_classifier import (
    MAX_FREQUENCY,
    MIN_FREQUENCY,
    is_valid_frequency,
    parse_preferred_days,
    resolve_frequency,
)

logger = logging.getLogger(__name__)

VALID_DAY_NAMES = [day.value for day in Weekday]


def parse_reminder_time(value: str) -> time:
    """
    Parse an "HH:MM" (or "HH:MM:SS") reminder time.

    Raises:
        ValidationError: If the value is not a valid time of day.
    """
    try:
        return time.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        raise ValidationError(
            f"Invalid reminder time {value!r}, expected HH:MM",
            details={"reminder_time": value},
        )


def normalize_days(names: list[str]) -> list[Weekday]:
    """
    Validate and normalise a list of weekday names.

    Returns:
        Distinct Weekday members in Monday..Sunday order.

    Raises:
        ValidationError: If the list is empty, too long or has unknown names.
    """
    if not names:
        raise ValidationError("At least one study day is required")
    if len(names) > len(VALID_DAY_NAMES):
        raise ValidationError(f"At most {len(VALID_DAY_NAMES)} study days are allowed")

    invalid = [name for name in names if Weekday.parse(name) is None]
    if invalid:
        raise ValidationError(
            f"Invalid days: {', '.join(invalid)}",
            details={"invalid_days": invalid, "valid_days": VALID_DAY_NAMES},
        )

    days = {Weekday.parse(name) for name in names}
    return sorted(days, key=lambda d: d.ordinal)


def study_goal_for(days: list[Weekday]) -> StudyGoal:
    return StudyGoal.DAILY if len(days) == len(VALID_DAY_NAMES) else StudyGoal.SPECIFIC


def _check_frequency(value: int) -> None:
    if not is_valid_frequency(value):
        raise ValidationError(
            f"Weekly frequency must be between {MIN_FREQUENCY} and {MAX_FREQUENCY}",
            details={"weekly_frequency": value},
        )


class PreferenceService:
    """Service for learner study preferences."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_preferences(self, learner_id: int) -> PreferencesResponse:
        learner = await self._get_learner(learner_id)
        return self._to_response(learner)

    async def update_frequency(self, learner_id: int, frequency: int) -> PreferencesResponse:
        _check_frequency(frequency)
        learner = await self._get_learner(learner_id)

        learner.weekly_frequency = frequency
        await self.db.commit()

        logger.info(f"Weekly frequency for learner {learner_id} set to {frequency}")
        return self._to_response(learner)

    async def update_preferred_days(
        self, learner_id: int, names: list[str]
    ) -> PreferencesResponse:
        days = normalize_days(names)
        learner = await self._get_learner(learner_id)

        self._apply_days(learner, days)
        await self.db.commit()

        logger.info(
            f"Preferred days for learner {learner_id} set to "
            f"{[d.value for d in days]} ({learner.study_goal})"
        )
        return self._to_response(learner)

    async def update_reminders(
        self, learner_id: int, enabled: bool, reminder_time: Optional[str] = None
    ) -> PreferencesResponse:
        parsed_time = parse_reminder_time(reminder_time) if reminder_time else None
        learner = await self._get_learner(learner_id)

        learner.reminders_enabled = enabled
        if parsed_time is not None:
            learner.reminder_time = parsed_time
        await self.db.commit()

        logger.info(
            f"Reminders {'enabled' if enabled else 'disabled'} for learner {learner_id}"
            + (f" at {parsed_time.strftime('%H:%M')}" if parsed_time else "")
        )
        return self._to_response(learner)

    async def update_all(
        self, learner_id: int, request: UpdatePreferencesRequest
    ) -> PreferencesResponse:
        """
        Apply a partial update of all preference fields at once.

        Every provided field is validated first and all problems are reported
        together; nothing is saved unless the whole request is valid.
        """
        errors: list[str] = []
        days: Optional[list[Weekday]] = None
        parsed_time: Optional[time] = None

        if request.weekly_frequency is not None:
            try:
                _check_frequency(request.weekly_frequency)
            except ValidationError as e:
                errors.append(e.message)

        if request.preferred_days:
            try:
                days = normalize_days(request.preferred_days)
            except ValidationError as e:
                errors.append(e.message)

        if request.reminder_time:
            try:
                parsed_time = parse_reminder_time(request.reminder_time)
            except ValidationError as e:
                errors.append(e.message)

        if errors:
            raise ValidationError("Invalid preferences", details={"errors": errors})

        learner = await self._get_learner(learner_id)

        if request.weekly_frequency is not None:
            learner.weekly_frequency = request.weekly_frequency
        if days is not None:
            self._apply_days(learner, days)
        if request.reminders_enabled is not None:
            learner.reminders_enabled = request.reminders_enabled
        if parsed_time is not None:
            learner.reminder_time = parsed_time

        await self.db.commit()
        logger.info(f"Preferences updated for learner {learner_id}")
        return self._to_response(learner)

    @staticmethod
    def _apply_days(learner: Learner, days: list[Weekday]) -> None:
        learner.preferred_days = [d.value for d in days]
        learner.study_goal = study_goal_for(days).value

    async def _get_learner(self, learner_id: int) -> Learner:
        result = await self.db.execute(select(Learner).where(Learner.id == learner_id))
        learner = result.scalar_one_or_none()
        if learner is None:
            raise NotFoundError(f"Learner {learner_id} not found")
        return learner

    @staticmethod
    def _to_response(learner: Learner) -> PreferencesResponse:
        days = sorted(
            parse_preferred_days(learner.preferred_days, learner_id=learner.id),
            key=lambda d: d.ordinal,
        )
        reminder_time = learner.reminder_time or default_reminder_time()
        return PreferencesResponse(
            learner_id=learner.id,
            name=learner.name or "",
            email=learner.email,
            weekly_frequency=resolve_frequency(learner.weekly_frequency),
            study_goal=learner.study_goal or StudyGoal.FLEXIBLE.value,
            preferred_days=[d.value for d in days],
            reminders_enabled=bool(learner.reminders_enabled),
            reminder_time=reminder_time.strftime("%H:%M"),
        )
