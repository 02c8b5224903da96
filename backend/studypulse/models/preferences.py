"""
Learner Preference API Models (Pydantic)

Request/response schemas for study frequency, preferred days and reminder
settings. Range and name validation lives in PreferenceService so that the
same rules apply to every caller, not only HTTP clients.
"""

from typing import Optional

from pydantic import Field

from studypulse.models.base import StrictRequest, StrictResponse


class PreferencesResponse(StrictResponse):
    """Current study preferences of a learner."""

    learner_id: int
    name: str
    email: Optional[str] = None
    weekly_frequency: int
    study_goal: str
    preferred_days: list[str] = Field(default_factory=list)
    reminders_enabled: bool
    reminder_time: str  # HH:MM


class UpdateFrequencyRequest(StrictRequest):
    weekly_frequency: int


class UpdatePreferredDaysRequest(StrictRequest):
    preferred_days: list[str]


class UpdateRemindersRequest(StrictRequest):
    enabled: bool
    reminder_time: Optional[str] = None  # HH:MM


class UpdatePreferencesRequest(StrictRequest):
    """Partial update; only provided fields are changed."""

    weekly_frequency: Optional[int] = None
    preferred_days: Optional[list[str]] = None
    reminders_enabled: Optional[bool] = None
    reminder_time: Optional[str] = None
