"""
Streak Tracking

Pure streak calculations over the set of civil dates on which a learner
completed at least one study session.

Responsibilities:
- Convert UTC activity timestamps into civil dates in the configured timezone
- Calculate the longest streak ever achieved
- Calculate the current streak, which is forced to 0 once stale

Runs are found with the "gaps and islands" trick: after sorting the distinct
dates ascending, date - rank(date) is constant within a run of consecutive
days, so grouping by that key yields the runs.

Usage:
    from studypulse.services.learning.streak_tracking import (
        analyze_streaks,
        to_civil_date,
    )

    days = {to_civil_date(s.created_at, tz) for s in completed_sessions}
    summary = analyze_streaks(days, today=clock.today())
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StreakSummary:
    """
    Streak figures derived from one learner's activity dates.

    Attributes:
        current_streak: Length of the run ending at the most recent study day,
            or 0 if that day is older than yesterday.
        max_streak: Length of the longest run.
        first_study_date: Earliest study day, None without activity.
        last_study_date: Most recent study day, None without activity.
        total_study_days: Number of distinct study days.
        is_active_today: Whether the learner already studied today.
    """

    current_streak: int = 0
    max_streak: int = 0
    first_study_date: Optional[date] = None
    last_study_date: Optional[date] = None
    total_study_days: int = 0
    is_active_today: bool = False


def to_civil_date(instant: datetime, tz: ZoneInfo) -> date:
    """
    Civil date of a stored instant in timezone tz.

    Naive datetimes are interpreted as UTC, which is how every timestamp in
    this application is written.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


def _group_runs(dates: Iterable[date]) -> dict[date, int]:
    """
    Map each run's group key (date - rank) to the run length.

    Duplicate dates are collapsed first so rank counts distinct days.
    """
    ordered = sorted(set(dates))
    return Counter(d - timedelta(days=rank) for rank, d in enumerate(ordered))


def calculate_max_streak(dates: Iterable[date]) -> int:
    """Length of the longest run of consecutive days (0 for no dates)."""
    runs = _group_runs(dates)
    return max(runs.values(), default=0)


def calculate_current_streak(dates: Iterable[date], today: date) -> int:
    """
    Length of the run containing the most recent study day.

    A streak stays alive through yesterday: if the most recent study day is
    more than one day before today, the current streak is 0 regardless of
    how long that run was.
    """
    distinct = set(dates)
    if not distinct:
        return 0

    most_recent = max(distinct)
    if (today - most_recent).days > 1:
        return 0

    ordered = sorted(distinct)
    runs = _group_runs(ordered)
    key = most_recent - timedelta(days=len(ordered) - 1)
    return runs[key]


def analyze_streaks(dates: Iterable[date], today: date) -> StreakSummary:
    """
    Full streak summary for a set of study days.

    Args:
        dates: Civil dates with at least one completed session (any order,
            duplicates allowed).
        today: Current civil date in the same timezone as dates.

    Returns:
        StreakSummary; all zero / None for an empty input.
    """
    distinct = set(dates)
    if not distinct:
        return StreakSummary()

    return StreakSummary(
        current_streak=calculate_current_streak(distinct, today),
        max_streak=calculate_max_streak(distinct),
        first_study_date=min(distinct),
        last_study_date=max(distinct),
        total_study_days=len(distinct),
        is_active_today=today in distinct,
    )
