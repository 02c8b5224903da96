"""
Middleware Package

Provides FastAPI middleware and helpers for error handling.
"""

from studypulse.middleware.error_handling import (
    DeliveryError,
    ErrorHandlingMiddleware,
    NotFoundError,
    ServiceError,
    ValidationError,
    handle_endpoint_errors,
    setup_error_handling,
)

__all__ = [
    "DeliveryError",
    "ErrorHandlingMiddleware",
    "NotFoundError",
    "ServiceError",
    "ValidationError",
    "handle_endpoint_errors",
    "setup_error_handling",
]
