"""
Study Pulse API

FastAPI application exposing metrics, notification and preference endpoints
and owning the background scheduler for the periodic batch jobs.

Run:
    uvicorn studypulse.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studypulse import __version__
from studypulse.config import settings
from studypulse.db.base import async_session_maker, init_db
from studypulse.middleware.error_handling import setup_error_handling
from studypulse.routers import (
    health_router,
    metrics_router,
    notifications_router,
    preferences_router,
)
from studypulse.services.clock import SystemClock
from studypulse.services.notifications.push import HttpPushSender
from studypulse.services.scheduler import NotificationScheduler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, start the scheduler on startup; stop it on shutdown."""
    await init_db()

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = NotificationScheduler(
            session_factory=async_session_maker,
            sender_factory=HttpPushSender.from_settings,
            clock=SystemClock(settings.local_tz),
            settings=settings,
        )
        scheduler.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop(wait=True)


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_error_handling(app, debug=settings.DEBUG)

app.include_router(health_router.router)
app.include_router(metrics_router.router)
app.include_router(notifications_router.router)
app.include_router(preferences_router.router)


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API", "version": __version__}
