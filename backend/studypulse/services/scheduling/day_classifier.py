"""
Study Day Classifier

Decides whether a calendar day is a study day for a learner, based on the
learner's explicit preferred weekdays or, when none are set, on a fixed
distribution derived from the weekly frequency target.

The classifier is total: malformed preference payloads degrade to "no
preferred days" and out-of-range frequencies map to the default 3-day
distribution. It never raises, so one learner's bad configuration cannot
fail the daily generation batch.

Usage:
    from studypulse.services.scheduling.day_classifier import (
        LearnerPreference,
        is_study_day,
    )

    pref = LearnerPreference.from_learner(learner)
    if is_study_day(Weekday.from_date(today), pref):
        ...
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Optional

from studypulse.config import settings
from studypulse.enums.learning import Weekday

logger = logging.getLogger(__name__)

MIN_FREQUENCY = 1
MAX_FREQUENCY = 7

W = Weekday

# Canonical weekday distribution for each weekly frequency target.
FREQUENCY_DISTRIBUTION: dict[int, frozenset[Weekday]] = {
    1: frozenset({W.WEDNESDAY}),
    2: frozenset({W.TUESDAY, W.THURSDAY}),
    3: frozenset({W.MONDAY, W.WEDNESDAY, W.FRIDAY}),
    4: frozenset({W.MONDAY, W.TUESDAY, W.THURSDAY, W.FRIDAY}),
    5: frozenset({W.MONDAY, W.TUESDAY, W.WEDNESDAY, W.THURSDAY, W.FRIDAY}),
    6: frozenset(
        {W.MONDAY, W.TUESDAY, W.WEDNESDAY, W.THURSDAY, W.FRIDAY, W.SATURDAY}
    ),
    7: frozenset(Weekday),
}

DEFAULT_DISTRIBUTION: frozenset[Weekday] = FREQUENCY_DISTRIBUTION[3]


@dataclass(frozen=True)
class LearnerPreference:
    """
    Reminder-relevant preferences of one learner, already parsed.

    Attributes:
        learner_id: Learner identifier.
        name: Display name for reminder text.
        weekly_frequency: Study days per week (1-7 for valid data).
        preferred_days: Explicit study weekdays; empty means "use frequency".
        reminders_enabled: Whether reminders are generated at all.
        reminder_time: Local time-of-day of the reminder, None for default.
    """

    learner_id: int
    name: str = ""
    weekly_frequency: int = 3
    preferred_days: frozenset[Weekday] = field(default_factory=frozenset)
    reminders_enabled: bool = True
    reminder_time: Optional[time] = None

    @classmethod
    def from_learner(cls, learner: Any) -> "LearnerPreference":
        """Build from a Learner row (or any object with the same attributes)."""
        return cls(
            learner_id=learner.id,
            name=learner.name or "",
            weekly_frequency=resolve_frequency(learner.weekly_frequency),
            preferred_days=parse_preferred_days(
                learner.preferred_days, learner_id=learner.id
            ),
            reminders_enabled=bool(learner.reminders_enabled),
            reminder_time=learner.reminder_time,
        )


def resolve_frequency(value: Optional[int]) -> int:
    """
    Weekly frequency to classify with; None means the default frequency.

    Values are range-checked when written (see PreferenceService), so an
    out-of-range value here comes from legacy data and is passed through for
    distribute_days to map onto the default distribution.
    """
    if value is None:
        return settings.DEFAULT_WEEKLY_FREQUENCY
    return int(value)


def is_valid_frequency(value: int) -> bool:
    """Whether value is an accepted weekly frequency (1-7)."""
    return MIN_FREQUENCY <= value <= MAX_FREQUENCY


def parse_preferred_days(
    raw: Any, learner_id: Optional[int] = None
) -> frozenset[Weekday]:
    """
    Parse a persisted preferred-days payload into Weekday members.

    Accepts a JSON-encoded string or an already-decoded list. Anything else,
    or a list containing a non-string, is treated as no preference. Unknown
    names inside an otherwise valid list are dropped.

    Args:
        raw: Persisted payload (None, JSON text, or list of names).
        learner_id: Only used for log context.

    Returns:
        frozenset of Weekday members, empty when there is no usable preference.
    """
    if raw is None or raw == "" or raw == []:
        return frozenset()

    payload = raw
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except (ValueError, TypeError):
            logger.warning(
                f"Unparseable preferred days for learner {learner_id}: {raw!r}"
            )
            return frozenset()

    if not isinstance(payload, list) or not all(isinstance(d, str) for d in payload):
        logger.warning(
            f"Preferred days for learner {learner_id} is not a list of names: {raw!r}"
        )
        return frozenset()

    days = set()
    for name in payload:
        day = Weekday.parse(name)
        if day is None:
            logger.warning(f"Ignoring unknown weekday {name!r} for learner {learner_id}")
            continue
        days.add(day)
    return frozenset(days)


def distribute_days(frequency: int) -> frozenset[Weekday]:
    """Weekdays for a frequency target; out-of-range values get the 3-day set."""
    return FREQUENCY_DISTRIBUTION.get(frequency, DEFAULT_DISTRIBUTION)


def is_study_day(weekday: Weekday, preference: LearnerPreference) -> bool:
    """
    Decide whether weekday is a study day for this learner.

    Explicit preferred days always win over the frequency distribution.
    """
    if preference.preferred_days:
        return weekday in preference.preferred_days
    return weekday in distribute_days(preference.weekly_frequency)
