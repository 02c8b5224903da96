"""
SQLAlchemy Database Models

Tables:
- learners: Learner profile subset used for reminders (frequency, days, time)
- study_sessions: One row per study session; completed ones count as activity
- session_answers: Individual answered items within a session
- notifications: Reminder (and other) notifications queued for push delivery
- learner_metrics: One up-to-date engagement snapshot per learner
- device_registrations: Latest push token per learner

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: studypulse/models/

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database

    All timestamps are stored timezone-aware in UTC. Civil (local) dates are
    derived in Python with an explicit timezone conversion, see
    services/learning/streak_tracking.to_civil_date.
"""

from datetime import date, datetime, time, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studypulse.db.base import Base
from studypulse.enums.learning import NotificationType, StudyGoal


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ===========================================
# Learners
# ===========================================


class Learner(Base):
    """
    Learner profile fields relevant to study reminders.

    Attributes:
        id: Primary key.
        name: Display name used to personalise reminder text.
        email: Contact email. Optional.
        is_active: Inactive learners are ignored by every batch job.
        weekly_frequency: Target study days per week (1-7). Null means the
            default frequency. Validated on write; legacy out-of-range values
            classify with the default 3-day distribution.
        preferred_days: Raw persisted list of weekday names (e.g.
            ["lunes", "jueves"]). Takes precedence over weekly_frequency when
            non-empty. Parsed into Weekday members at the boundary.
        study_goal: flexible / specific / daily, derived from preferred_days.
        reminders_enabled: Whether daily study reminders are generated.
        reminder_time: Local time-of-day for the reminder. Null means
            DEFAULT_REMINDER_TIME.
    """

    __tablename__ = "learners"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(320))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Study preferences
    weekly_frequency: Mapped[Optional[int]] = mapped_column(Integer)
    preferred_days: Mapped[Optional[list]] = mapped_column(JSON)
    study_goal: Mapped[str] = mapped_column(String(20), default=StudyGoal.FLEXIBLE.value)
    reminders_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    reminder_time: Mapped[Optional[time]] = mapped_column(Time)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    # Relationships
    sessions: Mapped[List["StudySession"]] = relationship(back_populates="learner")
    notifications: Mapped[List["Notification"]] = relationship(
        back_populates="learner"
    )


# ===========================================
# Study Activity
# ===========================================


class StudySession(Base):
    """
    A study session (practice test) taken by a learner.

    Only completed sessions count toward streaks and metrics.

    Attributes:
        id: Primary key.
        learner_id: Owning learner.
        created_at: When the session was started (UTC). The local civil date
            derived from this timestamp is the session's study day.
        completed: Whether the learner finished the session.
        answers: Answered items in this session.
    """

    __tablename__ = "study_sessions"
    __table_args__ = (Index("ix_study_sessions_learner_completed", "learner_id", "completed"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    completed: Mapped[bool] = mapped_column(Boolean, default=False)

    learner: Mapped["Learner"] = relationship(back_populates="sessions")
    answers: Mapped[List["SessionAnswer"]] = relationship(
        back_populates="session", cascade="all, delete-orphan"
    )


class SessionAnswer(Base):
    """One answered item within a study session."""

    __tablename__ = "session_answers"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("study_sessions.id"), index=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    answered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    session: Mapped["StudySession"] = relationship(back_populates="answers")


# ===========================================
# Notifications
# ===========================================


class Notification(Base):
    """
    A notification queued for (or already pushed to) a learner's device.

    The unique constraint on (learner_id, notification_type, scheduled_date)
    backs the generator's existence check: at most one reminder per learner
    per civil day, even if two generator runs race.

    Attributes:
        id: Primary key.
        learner_id: Recipient.
        notification_type: NotificationType value (1 = study reminder).
        title: Push title.
        body: Push body.
        extra_data: JSON metadata (kind, weekday, frequency).
        scheduled_for: UTC instant at which the notification becomes due.
        scheduled_date: Local civil date the notification belongs to.
        delivered / read / action_taken: Lifecycle flags.
        delivery_attempts: Failed send attempts so far.
        next_attempt_at: Earliest retry time after a failed send.
        last_error: Reason of the last failed send.
        failed: Dead-lettered after NOTIFICATION_MAX_RETRIES failures; never
            selected for delivery again.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint(
            "learner_id",
            "notification_type",
            "scheduled_date",
            name="uq_notification_learner_type_date",
        ),
        Index("ix_notifications_pending", "delivered", "failed", "scheduled_for"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), index=True)
    notification_type: Mapped[int] = mapped_column(
        Integer, default=NotificationType.STUDY_REMINDER.value
    )

    # Content
    title: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text)
    extra_data: Mapped[Optional[dict]] = mapped_column(JSON)

    # Scheduling
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    scheduled_date: Mapped[date] = mapped_column(Date)

    # Lifecycle flags
    delivered: Mapped[bool] = mapped_column(Boolean, default=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    action_taken: Mapped[bool] = mapped_column(Boolean, default=False)

    # Delivery bookkeeping
    delivery_attempts: Mapped[int] = mapped_column(Integer, default=0)
    next_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_error: Mapped[Optional[str]] = mapped_column(Text)
    failed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    action_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    learner: Mapped["Learner"] = relationship(back_populates="notifications")


class DeviceRegistration(Base):
    """
    Latest push token for a learner.

    One row per learner, upserted on every registration call; previous
    tokens are not retained.
    """

    __tablename__ = "device_registrations"

    id: Mapped[int] = mapped_column(primary_key=True)
    learner_id: Mapped[int] = mapped_column(
        ForeignKey("learners.id"), unique=True, index=True
    )
    device_token: Mapped[Optional[str]] = mapped_column(String(512))
    platform: Mapped[Optional[str]] = mapped_column(String(20))
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


# ===========================================
# Metrics
# ===========================================


class LearnerMetrics(Base):
    """
    Engagement snapshot for one learner, rebuilt from history on every
    recomputation.

    Attributes:
        current_streak: Consecutive study days ending today or yesterday;
            0 once the learner has missed more than one day.
        max_streak: Longest run ever observed. Never decreases.
        last_study_date / first_study_date: Civil dates of activity bounds.
        total_study_days: Distinct civil days with a completed session.
        avg_items_per_day: Answered items per active day.
        avg_correct_pct: Percentage of correct answers (0-100).
        computed_at: When the snapshot was last rebuilt.
        calculation_version: Formula version, bumped when metrics change meaning.
    """

    __tablename__ = "learner_metrics"

    id: Mapped[int] = mapped_column(primary_key=True)
    learner_id: Mapped[int] = mapped_column(
        ForeignKey("learners.id"), unique=True, index=True
    )

    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    max_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_study_date: Mapped[Optional[date]] = mapped_column(Date)
    first_study_date: Mapped[Optional[date]] = mapped_column(Date)
    total_study_days: Mapped[int] = mapped_column(Integer, default=0)
    avg_items_per_day: Mapped[float] = mapped_column(Float, default=0.0)
    avg_correct_pct: Mapped[float] = mapped_column(Float, default=0.0)

    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    calculation_version: Mapped[int] = mapped_column(Integer, default=1)
