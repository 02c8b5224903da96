"""
Strict Base Model for API Request/Response Validation

Usage:
    # For request bodies (strictest validation)
    class ItemCreate(StrictRequest):
        name: str

    # For response bodies (allows extra fields from DB)
    class ItemResponse(StrictResponse):
        id: int
        name: str

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → API Response
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    client typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
        from_attributes=True,  # Enable ORM conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    Features:
        - extra="ignore": Silently ignores extra fields (DB may have more columns)
        - from_attributes=True: Allows ORM model conversion
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in responses
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable ORM conversion
    )


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    error: str  # Error code (e.g., "validation_error")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None  # Additional context
    timestamp: datetime


class SuccessResponse(StrictResponse):
    """
    Simple success response for operations without complex output.

    Example usage:
        @router.put("/items/{id}/read", response_model=SuccessResponse)
        async def mark_read(id: int):
            return SuccessResponse(message="Marked as read")
    """

    success: bool = True
    message: str
