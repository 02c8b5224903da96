"""
FastAPI Dependencies

Common dependencies shared by the routers: clock, push sender and the
running scheduler.
"""

from collections.abc import AsyncIterator
from typing import Optional

from fastapi import Request

from studypulse.config import settings
from studypulse.services.clock import Clock, SystemClock
from studypulse.services.notifications.push import HttpPushSender, PushSender
from studypulse.services.scheduler import NotificationScheduler


def get_clock() -> Clock:
    """Wall clock in the configured local timezone."""
    return SystemClock(settings.local_tz)


async def get_push_sender() -> AsyncIterator[PushSender]:
    """Push sender for the duration of one request."""
    async with HttpPushSender.from_settings() as sender:
        yield sender


def get_scheduler(request: Request) -> Optional[NotificationScheduler]:
    """The scheduler owned by the app lifespan, None when disabled."""
    return getattr(request.app.state, "scheduler", None)
