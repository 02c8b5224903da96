"""
Learning System Enums

Defines the closed vocabularies used by reminder scheduling and
learner preferences.
"""

import unicodedata
from datetime import date
from enum import Enum
from typing import Optional


class Weekday(str, Enum):
    """
    Civil weekday as persisted in learner preferences.

    Values are the lowercase names stored by the mobile client. Raw strings
    are parsed into this enum once at the boundary (see
    services/scheduling/day_classifier.py); core logic only ever handles
    Weekday members.
    """

    MONDAY = "lunes"
    TUESDAY = "martes"
    WEDNESDAY = "miercoles"
    THURSDAY = "jueves"
    FRIDAY = "viernes"
    SATURDAY = "sabado"
    SUNDAY = "domingo"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Weekday of a civil date (Monday == date.weekday() 0)."""
        return _WEEKDAY_ORDER[day.weekday()]

    @classmethod
    def parse(cls, value: str) -> Optional["Weekday"]:
        """
        Parse a weekday name, ignoring case, surrounding whitespace and accents.

        Returns None for anything that is not one of the seven names.
        """
        if not isinstance(value, str):
            return None
        normalized = unicodedata.normalize("NFKD", value.strip().lower())
        normalized = "".join(c for c in normalized if not unicodedata.combining(c))
        try:
            return cls(normalized)
        except ValueError:
            return None

    @property
    def ordinal(self) -> int:
        """0 for Monday through 6 for Sunday."""
        return _WEEKDAY_ORDER.index(self)


_WEEKDAY_ORDER: tuple[Weekday, ...] = (
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
)


class NotificationType(int, Enum):
    """
    Notification categories.

    Only STUDY_REMINDER is generated by this service; the others are written
    by neighbouring features and share the inbox endpoints.
    """

    STUDY_REMINDER = 1
    ACHIEVEMENT = 2
    SYSTEM = 3


class StudyGoal(str, Enum):
    """
    How a learner's study days are chosen.

    - FLEXIBLE: no explicit days, distribution derived from weekly frequency
    - SPECIFIC: explicit subset of weekdays
    - DAILY: all seven weekdays selected
    """

    FLEXIBLE = "flexible"
    SPECIFIC = "specific"
    DAILY = "daily"


class DevicePlatform(str, Enum):
    """Mobile platform of a registered device."""

    IOS = "ios"
    ANDROID = "android"
