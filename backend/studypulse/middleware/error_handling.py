"""
Error Handling Middleware

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for different error types

Usage:
    from studypulse.middleware.error_handling import ErrorHandlingMiddleware, ServiceError

    # Add middleware to app
    app.add_middleware(ErrorHandlingMiddleware)

    # Raise custom exceptions from services
    raise NotFoundError(f"Learner {learner_id} not found")

    # Wrap endpoints
    @router.get("/{learner_id}")
    @handle_endpoint_errors("Get metrics")
    async def get_metrics(...): ...

Exception handling hierarchy:
    - HTTPException: Re-raised for FastAPI's built-in handler
    - ServiceError: Custom exceptions → structured JSON response
    - Exception: Catch-all for unexpected errors → sanitized response

Background jobs never reach this layer: batch failures are logged by the
scheduler and surface to learners only as missing notifications or stale
metrics.
"""

import functools
import logging
import traceback
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Database connection failed", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation (e.g. frequency outside 1-7,
    unknown weekday names, malformed reminder time).
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a requested learner or notification doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


class DeliveryError(ServiceError):
    """
    Push gateway error.

    Raised when a push cannot be handed to the messaging provider.
    """

    status_code = 502
    error_code = "delivery_error"


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            response = await call_next(request)
            return response

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except ServiceError as e:
            logger.error(
                f"[{error_id}] {e.error_code}: {e.message}",
                extra={
                    "error_id": error_id,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                    "details": e.details,
                },
            )

            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.error_code,
                    "message": e.message,
                    "error_id": error_id,
                    "details": e.details if self.debug else None,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

        except Exception as e:
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            content = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

            if self.debug:
                content["details"] = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(status_code=500, content=content)


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")


# =============================================================================
# Endpoint Decorator
# =============================================================================


def handle_endpoint_errors(
    operation: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Translate service exceptions raised inside an endpoint into HTTP errors.

    - HTTPException passes through untouched
    - ServiceError becomes HTTPException with the error's status code, body
      {"success": false, "error": ..., "message": ...}
    - anything else is logged with the operation name and becomes a 500

    Args:
        operation: Human-readable operation name for log messages.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except ServiceError as e:
                logger.warning(f"{operation} failed: {e.error_code}: {e.message}")
                raise HTTPException(
                    status_code=e.status_code,
                    detail={
                        "success": False,
                        "error": e.error_code,
                        "message": e.message,
                        "details": e.details,
                    },
                )
            except Exception as e:
                logger.error(f"{operation} failed: {type(e).__name__}: {e}", exc_info=True)
                raise HTTPException(
                    status_code=500,
                    detail={
                        "success": False,
                        "error": "internal_server_error",
                        "message": f"{operation} failed",
                    },
                )

        return wrapper

    return decorator


def create_error_response(
    error_code: str,
    message: str,
    status_code: int = 500,
    details: Optional[dict] = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error_code: Error code for categorization
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional details

    Returns:
        JSONResponse with standardized error format
    """
    error_id = str(uuid4())[:8]

    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "message": message,
            "error_id": error_id,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
