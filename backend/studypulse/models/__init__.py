"""
Pydantic API models.

Usage:
    from studypulse.models import MetricsResponse, NotificationListResponse
"""

from studypulse.models.base import ErrorDetail, StrictRequest, StrictResponse, SuccessResponse
from studypulse.models.metrics import BatchResult, MetricsResponse
from studypulse.models.notifications import (
    DeliveryReport,
    NotificationConfigRequest,
    NotificationItem,
    NotificationListResponse,
    RegisterDeviceRequest,
    UnreadCountResponse,
)
from studypulse.models.preferences import (
    PreferencesResponse,
    UpdateFrequencyRequest,
    UpdatePreferencesRequest,
    UpdatePreferredDaysRequest,
    UpdateRemindersRequest,
)

__all__ = [
    "BatchResult",
    "DeliveryReport",
    "ErrorDetail",
    "MetricsResponse",
    "NotificationConfigRequest",
    "NotificationItem",
    "NotificationListResponse",
    "PreferencesResponse",
    "RegisterDeviceRequest",
    "StrictRequest",
    "StrictResponse",
    "SuccessResponse",
    "UnreadCountResponse",
    "UpdateFrequencyRequest",
    "UpdatePreferencesRequest",
    "UpdatePreferredDaysRequest",
    "UpdateRemindersRequest",
]
