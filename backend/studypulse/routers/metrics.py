"""
Metrics API Router

Endpoints for learner engagement metrics (streaks, active days, averages).

Endpoints:
- GET /api/metrics/{learner_id} - Current snapshot (computed on first access)
- POST /api/metrics/{learner_id}/recompute - Rebuild after a completed session
- POST /api/metrics/recompute-all - Maintenance sweep over all active learners
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.db.base import get_db
from studypulse.dependencies import get_clock
from studypulse.middleware.error_handling import NotFoundError, handle_endpoint_errors
from studypulse.models.metrics import BatchResult, MetricsResponse
from studypulse.services.clock import Clock
from studypulse.services.learning import MetricsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/metrics", tags=["metrics"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_metrics_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MetricsService:
    """Get metrics service."""
    return MetricsService(db, clock)


# ===========================================
# Endpoints
# ===========================================


@router.post("/recompute-all", response_model=BatchResult)
@handle_endpoint_errors("Recompute all metrics")
async def recompute_all_metrics(
    service: MetricsService = Depends(get_metrics_service),
) -> BatchResult:
    """
    Recompute the snapshot of every active learner.

    Per-learner failures are reported in the counts; they don't fail the call.
    """
    return await service.recompute_all()


@router.get("/{learner_id}", response_model=MetricsResponse)
@handle_endpoint_errors("Get metrics")
async def get_metrics(
    learner_id: int,
    service: MetricsService = Depends(get_metrics_service),
) -> MetricsResponse:
    """
    Get the learner's engagement snapshot.

    Returns current and maximum streak, first/last study date, active days,
    average items per day and average correctness.
    """
    metrics = await service.get_metrics(learner_id)
    if metrics is None:
        raise NotFoundError(f"Learner {learner_id} not found")
    return metrics


@router.post("/{learner_id}/recompute", response_model=MetricsResponse)
@handle_endpoint_errors("Recompute metrics")
async def recompute_metrics(
    learner_id: int,
    service: MetricsService = Depends(get_metrics_service),
) -> MetricsResponse:
    """Rebuild the learner's snapshot from full study history."""
    metrics = await service.recompute_for_learner(learner_id)
    if metrics is None:
        raise NotFoundError(f"Learner {learner_id} not found")
    return MetricsResponse.model_validate(metrics)
