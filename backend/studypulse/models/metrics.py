"""
Metrics API Models (Pydantic)

Response schemas for learner engagement metrics and batch job reports.

ARCHITECTURE NOTE:
    There is a corresponding SQLAlchemy model: studypulse.db.models.LearnerMetrics
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from studypulse.models.base import StrictResponse


class MetricsResponse(StrictResponse):
    """
    Current engagement snapshot of a learner.

    Streaks are counted in civil days of the configured timezone. The maximum
    streak never decreases; the current streak drops to 0 when the learner
    misses more than one day.
    """

    learner_id: int
    current_streak: int = 0
    max_streak: int = 0
    last_study_date: Optional[date] = None
    first_study_date: Optional[date] = None
    total_study_days: int = 0
    avg_items_per_day: float = 0.0
    avg_correct_pct: float = Field(0.0, ge=0, le=100)
    computed_at: Optional[datetime] = None
    calculation_version: int = 1


class BatchResult(StrictResponse):
    """
    Outcome of a per-learner batch job (reminder generation, metrics sweep).

    Attributes:
        processed: Learners examined.
        created: Items written (reminders created / snapshots rebuilt).
        skipped: Learners intentionally left untouched (not a study day,
            reminder already exists).
        failed: Learners whose processing raised; logged and isolated.
    """

    processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list[int] = Field(default_factory=list)
