"""
Learner Metrics Service

Rebuilds each learner's engagement snapshot (streaks, active days, averages)
from raw study history.

Every recomputation is a full rebuild from study_sessions / session_answers,
never an incremental patch of the previous snapshot, so metrics cannot drift.
The single exception is the maximum streak, which is floored at the
previously stored value: a record once verified is never lost to a transient
gap in history.

Usage:
    from studypulse.services.learning.metrics_service import MetricsService

    service = MetricsService(db, clock)
    snapshot = await service.recompute_for_learner(learner_id)  # after a session
    result = await service.recompute_all()  # nightly maintenance
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.config import settings
from studypulse.db.models import Learner, LearnerMetrics, SessionAnswer, StudySession
from studypulse.models.metrics import BatchResult, MetricsResponse
from studypulse.services.clock import Clock
from studypulse.services.learning.streak_tracking import analyze_streaks, to_civil_date

logger = logging.getLogger(__name__)


def average_items_per_day(total_items: int, active_days: int) -> float:
    """Answered items per active day, 0 when there are no active days."""
    if active_days <= 0:
        return 0.0
    return round(total_items / active_days, 2)


def average_correct_pct(correct: int, total: int) -> float:
    """Correct answers as a percentage (2 decimals), 0 when nothing was answered."""
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 2)


class MetricsService:
    """
    Service computing and persisting LearnerMetrics snapshots.

    All day boundaries are civil days in the clock's timezone.
    """

    def __init__(self, db: AsyncSession, clock: Clock):
        """
        Initialize the metrics service.

        Args:
            db: SQLAlchemy async database session.
            clock: Source of "today" for streak validity.
        """
        self.db = db
        self.clock = clock

    async def recompute_for_learner(self, learner_id: int) -> Optional[LearnerMetrics]:
        """
        Rebuild and persist the snapshot of one learner.

        Idempotent: calling it twice without new activity yields the same
        snapshot (apart from computed_at).

        Args:
            learner_id: Learner to recompute.

        Returns:
            The persisted LearnerMetrics row, or None if the learner doesn't exist.
        """
        if not await self._learner_exists(learner_id):
            logger.info(f"Metrics recompute skipped: learner {learner_id} not found")
            return None

        logger.info(f"Recomputing metrics for learner {learner_id}")

        # 1. Study days (civil dates of completed sessions)
        instants = await self._fetch_activity_instants(learner_id)
        study_days = {to_civil_date(instant, self.clock.tz) for instant in instants}

        # 2. Streaks
        summary = analyze_streaks(study_days, today=self.clock.today())

        # 3-4. Averages
        total_answers, correct_answers = await self._fetch_answer_counts(learner_id)
        avg_items = average_items_per_day(total_answers, summary.total_study_days)
        avg_correct = average_correct_pct(correct_answers, total_answers)

        # 5. Upsert
        metrics = await self._get_snapshot(learner_id)
        now = self.clock.now()
        if metrics is None:
            metrics = LearnerMetrics(
                learner_id=learner_id,
                max_streak=summary.max_streak,
            )
            self.db.add(metrics)
        else:
            metrics.max_streak = max(summary.max_streak, metrics.max_streak or 0)

        metrics.current_streak = summary.current_streak
        metrics.last_study_date = summary.last_study_date
        metrics.first_study_date = summary.first_study_date
        metrics.total_study_days = summary.total_study_days
        metrics.avg_items_per_day = avg_items
        metrics.avg_correct_pct = avg_correct
        metrics.computed_at = now
        metrics.calculation_version = settings.METRICS_CALCULATION_VERSION

        await self.db.commit()

        logger.info(
            f"Metrics updated for learner {learner_id}: "
            f"streak={metrics.current_streak} (max {metrics.max_streak}), "
            f"days={metrics.total_study_days}, correct={avg_correct}%"
        )
        return metrics

    async def get_metrics(self, learner_id: int) -> Optional[MetricsResponse]:
        """
        Current snapshot of a learner, computing it on first access.

        Returns:
            MetricsResponse, or None if the learner doesn't exist.
        """
        metrics = await self._get_snapshot(learner_id)
        if metrics is None:
            metrics = await self.recompute_for_learner(learner_id)
            if metrics is None:
                return None
        return MetricsResponse.model_validate(metrics)

    async def recompute_all(self) -> BatchResult:
        """
        Recompute every active learner's snapshot.

        A failure for one learner is logged, rolled back and counted; the
        sweep continues. Failing to load the learner list aborts the sweep
        (the next scheduled run starts over).
        """
        logger.info("Starting global metrics recomputation")
        learner_ids = await self._fetch_active_learner_ids()

        result = BatchResult()
        for learner_id in learner_ids:
            result.processed += 1
            try:
                await self.recompute_for_learner(learner_id)
                result.created += 1
            except Exception as e:
                await self.db.rollback()
                result.failed += 1
                result.failed_ids.append(learner_id)
                logger.error(
                    f"Metrics recompute failed for learner {learner_id}: {e}",
                    exc_info=True,
                )

        logger.info(
            f"Global metrics recomputation complete: "
            f"{result.created} succeeded, {result.failed} failed"
        )
        return result

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def _learner_exists(self, learner_id: int) -> bool:
        result = await self.db.execute(select(Learner.id).where(Learner.id == learner_id))
        return result.scalar_one_or_none() is not None

    async def _fetch_active_learner_ids(self) -> list[int]:
        result = await self.db.execute(
            select(Learner.id).where(Learner.is_active.is_(True)).order_by(Learner.id)
        )
        return list(result.scalars().all())

    async def _fetch_activity_instants(self, learner_id: int) -> list[datetime]:
        """
        Start timestamps of the learner's completed sessions.

        Conversion to civil dates happens in Python (to_civil_date) so the
        same timezone rule applies to the current and the maximum streak.
        """
        result = await self.db.execute(
            select(StudySession.created_at).where(
                StudySession.learner_id == learner_id,
                StudySession.completed.is_(True),
            )
        )
        return list(result.scalars().all())

    async def _fetch_answer_counts(self, learner_id: int) -> tuple[int, int]:
        """Total and correct answered items across the learner's sessions."""
        result = await self.db.execute(
            select(
                func.count(SessionAnswer.id),
                func.coalesce(
                    func.sum(case((SessionAnswer.is_correct.is_(True), 1), else_=0)), 0
                ),
            )
            .join(StudySession, StudySession.id == SessionAnswer.session_id)
            .where(StudySession.learner_id == learner_id)
        )
        total, correct = result.one()
        return int(total or 0), int(correct or 0)

    async def _get_snapshot(self, learner_id: int) -> Optional[LearnerMetrics]:
        result = await self.db.execute(
            select(LearnerMetrics).where(LearnerMetrics.learner_id == learner_id)
        )
        return result.scalar_one_or_none()
