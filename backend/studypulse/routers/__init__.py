"""API Routers package."""

from studypulse.routers import health as health_router
from studypulse.routers import metrics as metrics_router
from studypulse.routers import notifications as notifications_router
from studypulse.routers import preferences as preferences_router

__all__ = ["health_router", "metrics_router", "notifications_router", "preferences_router"]
