"""
Centralized enum definitions for the application.

Usage:
    from studypulse.enums import Weekday, NotificationType

    # Or import from the specific module
    from studypulse.enums.learning import StudyGoal
"""

from studypulse.enums.learning import (
    DevicePlatform,
    NotificationType,
    StudyGoal,
    Weekday,
)

__all__ = [
    "DevicePlatform",
    "NotificationType",
    "StudyGoal",
    "Weekday",
]
