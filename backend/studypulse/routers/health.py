"""
Health Check Endpoints

Provides health check endpoints for monitoring and orchestration.

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Database and push gateway connectivity
- GET /api/health/scheduler - Scheduler state and next job runs
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from studypulse.config import settings
from studypulse.db.base import get_db
from studypulse.dependencies import get_push_sender, get_scheduler
from studypulse.services.notifications.push import HttpPushSender
from studypulse.services.scheduler import NotificationScheduler

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns a simple status response indicating the API is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@router.get("/detailed")
async def detailed_health_check(
    db: AsyncSession = Depends(get_db),
    sender: HttpPushSender = Depends(get_push_sender),
):
    """Health check including PostgreSQL and push gateway connectivity."""
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    try:
        await db.execute(text("SELECT 1"))
        health["dependencies"]["postgres"] = {"status": "healthy"}
    except Exception as e:
        health["dependencies"]["postgres"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    if await sender.check_connection():
        health["dependencies"]["push_gateway"] = {"status": "healthy"}
    else:
        health["dependencies"]["push_gateway"] = {"status": "unhealthy"}
        health["status"] = "degraded"

    return health


@router.get("/scheduler")
async def scheduler_status(
    scheduler: Optional[NotificationScheduler] = Depends(get_scheduler),
):
    """
    Scheduler status.

    Lists the registered jobs with their next run time and the civil date
    of the last successful reminder generation.
    """
    if scheduler is None:
        return {"running": False, "enabled": settings.SCHEDULER_ENABLED, "jobs": []}

    last = scheduler.last_generated_on
    return {
        "running": scheduler.running,
        "enabled": settings.SCHEDULER_ENABLED,
        "timezone": settings.LOCAL_TIMEZONE,
        "last_generated_on": last.isoformat() if last else None,
        "jobs": scheduler.get_jobs(),
    }
