"""
Learner Preferences API Router

Endpoints for the study preferences that drive reminder generation.

Endpoints:
- GET /api/learners/{learner_id}/preferences - Current preferences
- PUT /api/learners/{learner_id}/preferences - Partial update of all fields
- PUT /api/learners/{learner_id}/preferences/frequency - Weekly frequency (1-7)
- PUT /api/learners/{learner_id}/preferences/preferred-days - Explicit weekdays
- PUT /api/learners/{learner_id}/preferences/reminders - Reminder switch and time
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.db.base import get_db
from studypulse.middleware.error_handling import handle_endpoint_errors
from studypulse.models.preferences import (
    PreferencesResponse,
    UpdateFrequencyRequest,
    UpdatePreferencesRequest,
    UpdatePreferredDaysRequest,
    UpdateRemindersRequest,
)
from studypulse.services.learning import PreferenceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/learners", tags=["preferences"])


async def get_preference_service(
    db: AsyncSession = Depends(get_db),
) -> PreferenceService:
    """Get preference service."""
    return PreferenceService(db)


@router.get("/{learner_id}/preferences", response_model=PreferencesResponse)
@handle_endpoint_errors("Get preferences")
async def get_preferences(
    learner_id: int,
    service: PreferenceService = Depends(get_preference_service),
) -> PreferencesResponse:
    return await service.get_preferences(learner_id)


@router.put("/{learner_id}/preferences", response_model=PreferencesResponse)
@handle_endpoint_errors("Update preferences")
async def update_preferences(
    learner_id: int,
    request: UpdatePreferencesRequest,
    service: PreferenceService = Depends(get_preference_service),
) -> PreferencesResponse:
    """
    Update several preferences at once.

    All provided fields are validated together; a 422 lists every problem.
    """
    return await service.update_all(learner_id, request)


@router.put("/{learner_id}/preferences/frequency", response_model=PreferencesResponse)
@handle_endpoint_errors("Update study frequency")
async def update_frequency(
    learner_id: int,
    request: UpdateFrequencyRequest,
    service: PreferenceService = Depends(get_preference_service),
) -> PreferencesResponse:
    return await service.update_frequency(learner_id, request.weekly_frequency)


@router.put("/{learner_id}/preferences/preferred-days", response_model=PreferencesResponse)
@handle_endpoint_errors("Update preferred days")
async def update_preferred_days(
    learner_id: int,
    request: UpdatePreferredDaysRequest,
    service: PreferenceService = Depends(get_preference_service),
) -> PreferencesResponse:
    """
    Set explicit study weekdays (e.g. ["lunes", "miércoles"]).

    Explicit days take precedence over the weekly frequency.
    """
    return await service.update_preferred_days(learner_id, request.preferred_days)


@router.put("/{learner_id}/preferences/reminders", response_model=PreferencesResponse)
@handle_endpoint_errors("Update reminders")
async def update_reminders(
    learner_id: int,
    request: UpdateRemindersRequest,
    service: PreferenceService = Depends(get_preference_service),
) -> PreferencesResponse:
    return await service.update_reminders(learner_id, request.enabled, request.reminder_time)
