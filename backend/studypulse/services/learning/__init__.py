"""
Learning Progress Services

Modules:
- streak_tracking: pure streak analysis over civil study dates
- metrics_service: per-learner metrics snapshot recomputation
- preferences: study frequency, preferred days and reminder settings

Usage:
    from studypulse.services.learning import MetricsService, PreferenceService
"""

from studypulse.services.learning.metrics_service import MetricsService
from studypulse.services.learning.preferences import PreferenceService
from studypulse.services.learning.streak_tracking import (
    StreakSummary,
    analyze_streaks,
    calculate_current_streak,
    calculate_max_streak,
    to_civil_date,
)

__all__ = [
    "MetricsService",
    "PreferenceService",
    "StreakSummary",
    "analyze_streaks",
    "calculate_current_streak",
    "calculate_max_streak",
    "to_civil_date",
]
