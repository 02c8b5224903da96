"""
Unit tests for NotificationGenerator.

Tests:
- Reminder content and scheduling (local reminder time stored as UTC)
- Skipping non-study days and learners already reminded today
- Idempotence across repeated runs
- Duplicate inserts rejected by the unique constraint
- Per-learner failure isolation
"""

import random
from datetime import datetime, time, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from studypulse.db.models import Notification
from studypulse.enums.learning import NotificationType, Weekday
from studypulse.services.notifications.generator import (
    REMINDER_TEMPLATES,
    REMINDER_TITLE,
    NotificationGenerator,
)
from studypulse.services.scheduling.day_classifier import LearnerPreference

# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def generator(mock_db_session, frozen_clock):
    """Generator on Wednesday 2025-03-05 with stubbed queries."""
    gen = NotificationGenerator(mock_db_session, frozen_clock, rng=random.Random(7))
    gen._fetch_reminder_learners = AsyncMock(return_value=[])
    gen._reminder_exists = AsyncMock(return_value=False)
    return gen


@pytest.fixture
def store(mock_db_session, generator):
    """
    In-memory stand-in for the notifications table.

    db.add records the row; the existence check looks at recorded rows.
    """
    rows: list[Notification] = []
    mock_db_session.add.side_effect = rows.append

    async def exists(learner_id, today):
        return any(r.learner_id == learner_id and r.scheduled_date == today for r in rows)

    generator._reminder_exists = AsyncMock(side_effect=exists)
    return rows


def pref(learner_id: int = 1, **kwargs) -> LearnerPreference:
    kwargs.setdefault("name", "Ana")
    return LearnerPreference(learner_id=learner_id, **kwargs)


# ============================================================================
# build_reminder
# ============================================================================


class TestBuildReminder:
    """Tests for reminder construction."""

    def test_default_time(self, generator, frozen_clock) -> None:
        today = frozen_clock.today()
        notification = generator.build_reminder(pref(), today, Weekday.WEDNESDAY)

        # 19:00 in Santiago (UTC-3 in March) is 22:00 UTC
        assert notification.scheduled_for == datetime(2025, 3, 5, 22, 0, tzinfo=timezone.utc)
        assert notification.scheduled_date == today
        assert notification.notification_type == NotificationType.STUDY_REMINDER.value
        assert notification.title == REMINDER_TITLE
        assert notification.delivered is False
        assert notification.read is False
        assert notification.action_taken is False
        assert notification.extra_data["kind"] == "study_reminder"
        assert notification.extra_data["weekday"] == "miercoles"
        assert notification.extra_data["frequency"] == 3

    def test_custom_time(self, generator, frozen_clock) -> None:
        notification = generator.build_reminder(
            pref(reminder_time=time(7, 15)), frozen_clock.today(), Weekday.WEDNESDAY
        )
        assert notification.scheduled_for == datetime(2025, 3, 5, 10, 15, tzinfo=timezone.utc)
        assert notification.extra_data["local_time"] == "07:15"

    def test_body_is_personalised(self, generator) -> None:
        body = generator.pick_message("Ana")
        assert "Ana" in body
        assert any(body == t.format(name="Ana") for t in REMINDER_TEMPLATES)

    def test_seeded_rng_is_deterministic(self, mock_db_session, frozen_clock) -> None:
        a = NotificationGenerator(mock_db_session, frozen_clock, rng=random.Random(1))
        b = NotificationGenerator(mock_db_session, frozen_clock, rng=random.Random(1))
        assert [a.pick_message("X") for _ in range(5)] == [b.pick_message("X") for _ in range(5)]


# ============================================================================
# generate_for_today
# ============================================================================


class TestGenerateForToday:
    """Tests for the daily generation run."""

    @pytest.mark.asyncio
    async def test_creates_for_study_day(self, generator, mock_db_session, store) -> None:
        generator._fetch_reminder_learners.return_value = [pref(1), pref(2, weekly_frequency=5)]

        result = await generator.generate_for_today()

        assert result.created == 2
        assert result.skipped == 0
        assert len(store) == 2
        assert mock_db_session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_non_study_day_creates_nothing(self, generator, mock_db_session, store) -> None:
        # Frequency 2 → Tuesday and Thursday; today is Wednesday
        generator._fetch_reminder_learners.return_value = [pref(1, weekly_frequency=2)]

        result = await generator.generate_for_today()

        assert result.created == 0
        assert result.skipped == 1
        assert store == []
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_preferred_days_override(self, generator, store) -> None:
        generator._fetch_reminder_learners.return_value = [
            pref(1, weekly_frequency=7, preferred_days=frozenset({Weekday.MONDAY})),
            pref(2, weekly_frequency=1, preferred_days=frozenset({Weekday.WEDNESDAY})),
        ]

        result = await generator.generate_for_today()

        assert result.created == 1
        assert [r.learner_id for r in store] == [2]

    @pytest.mark.asyncio
    async def test_second_run_same_day_is_noop(self, generator, store) -> None:
        generator._fetch_reminder_learners.return_value = [pref(1), pref(2)]

        first = await generator.generate_for_today()
        second = await generator.generate_for_today()

        assert first.created == 2
        assert second.created == 0
        assert second.skipped == 2
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_next_study_day_creates_again(self, generator, store, frozen_clock) -> None:
        generator._fetch_reminder_learners.return_value = [pref(1, weekly_frequency=7)]

        await generator.generate_for_today()
        frozen_clock.advance(days=1)
        result = await generator.generate_for_today()

        assert result.created == 1
        assert [r.scheduled_date.day for r in store] == [5, 6]

    @pytest.mark.asyncio
    async def test_unique_violation_counts_as_existing(self, generator, mock_db_session) -> None:
        generator._fetch_reminder_learners.return_value = [pref(1)]
        mock_db_session.commit.side_effect = IntegrityError(
            "INSERT INTO notifications", {}, Exception("duplicate key")
        )

        result = await generator.generate_for_today()

        assert result.created == 0
        assert result.skipped == 1
        assert result.failed == 0
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, generator, mock_db_session, store) -> None:
        generator._fetch_reminder_learners.return_value = [pref(1), pref(2), pref(3)]
        mock_db_session.commit.side_effect = [None, RuntimeError("connection reset"), None]

        result = await generator.generate_for_today()

        assert result.processed == 3
        assert result.created == 2
        assert result.failed == 1
        assert result.failed_ids == [2]
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loading_learners_failure_is_fatal(self, generator) -> None:
        generator._fetch_reminder_learners.side_effect = ConnectionError("db down")

        with pytest.raises(ConnectionError):
            await generator.generate_for_today()
