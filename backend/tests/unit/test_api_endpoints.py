"""
Unit Tests for the API routers.

Services are replaced through FastAPI dependency overrides, so these tests
check routing, status codes and response shapes without a database.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from studypulse.db.base import get_db
from studypulse.dependencies import get_push_sender, get_scheduler
from studypulse.main import app
from studypulse.middleware.error_handling import DeliveryError, NotFoundError, ValidationError
from studypulse.models.metrics import BatchResult, MetricsResponse
from studypulse.models.notifications import NotificationItem, NotificationListResponse
from studypulse.models.preferences import PreferencesResponse
from studypulse.routers.metrics import get_metrics_service
from studypulse.routers.notifications import get_inbox_service
from studypulse.routers.preferences import get_preference_service

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def metrics_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def inbox_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def preference_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(metrics_service, inbox_service, preference_service, mock_sender):
    app.dependency_overrides[get_metrics_service] = lambda: metrics_service
    app.dependency_overrides[get_inbox_service] = lambda: inbox_service
    app.dependency_overrides[get_preference_service] = lambda: preference_service
    app.dependency_overrides[get_push_sender] = lambda: mock_sender
    app.dependency_overrides[get_scheduler] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def preferences(**overrides) -> PreferencesResponse:
    values = dict(
        learner_id=1,
        name="Ana",
        email=None,
        weekly_frequency=3,
        study_goal="flexible",
        preferred_days=[],
        reminders_enabled=True,
        reminder_time="19:00",
    )
    values.update(overrides)
    return PreferencesResponse(**values)


# =============================================================================
# Metrics
# =============================================================================


class TestMetricsEndpoints:
    """Tests for /api/metrics."""

    def test_get_metrics(self, client, metrics_service) -> None:
        metrics_service.get_metrics = AsyncMock(
            return_value=MetricsResponse(learner_id=1, current_streak=2, max_streak=4)
        )

        response = client.get("/api/metrics/1")

        assert response.status_code == 200
        assert response.json()["current_streak"] == 2
        assert response.json()["max_streak"] == 4

    def test_unknown_learner(self, client, metrics_service) -> None:
        metrics_service.get_metrics = AsyncMock(return_value=None)

        response = client.get("/api/metrics/999")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_recompute_unknown_learner(self, client, metrics_service) -> None:
        metrics_service.recompute_for_learner = AsyncMock(return_value=None)

        assert client.post("/api/metrics/999/recompute").status_code == 404

    def test_recompute_all(self, client, metrics_service) -> None:
        metrics_service.recompute_all = AsyncMock(
            return_value=BatchResult(processed=3, created=2, failed=1, failed_ids=[7])
        )

        response = client.post("/api/metrics/recompute-all")

        assert response.status_code == 200
        assert response.json()["failed_ids"] == [7]


# =============================================================================
# Notifications
# =============================================================================


class TestNotificationEndpoints:
    """Tests for /api/notifications."""

    def test_register_device(self, client, inbox_service) -> None:
        inbox_service.register_device = AsyncMock()

        response = client.post(
            "/api/notifications/1/register-device",
            json={"token": "ExponentPushToken[abc]", "platform": "android"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        args = inbox_service.register_device.await_args.args
        assert args[0] == 1
        assert args[1] == "ExponentPushToken[abc]"

    def test_register_device_rejects_unknown_fields(self, client, inbox_service) -> None:
        inbox_service.register_device = AsyncMock()

        response = client.post(
            "/api/notifications/1/register-device", json={"token": "t", "extra": 1}
        )

        assert response.status_code == 422
        inbox_service.register_device.assert_not_awaited()

    def test_register_device_blank_token(self, client, inbox_service) -> None:
        inbox_service.register_device = AsyncMock(side_effect=ValidationError("Device token is required"))

        response = client.post("/api/notifications/1/register-device", json={"token": " x "})

        assert response.status_code == 422

    def test_config(self, client, inbox_service) -> None:
        inbox_service.set_notifications_enabled = AsyncMock()

        response = client.put("/api/notifications/1/config", json={"enabled": False})

        assert response.status_code == 200
        inbox_service.set_notifications_enabled.assert_awaited_once_with(1, False)

    def test_device_endpoints_unknown_learner(self, client, inbox_service) -> None:
        inbox_service.register_device = AsyncMock(side_effect=NotFoundError("Learner 999 not found"))
        inbox_service.set_notifications_enabled = AsyncMock(
            side_effect=NotFoundError("Learner 999 not found")
        )

        register = client.post("/api/notifications/999/register-device", json={"token": "t"})
        config = client.put("/api/notifications/999/config", json={"enabled": True})

        assert register.status_code == 404
        assert config.status_code == 404
        assert register.json()["detail"]["error"] == "not_found"

    def test_list(self, client, inbox_service) -> None:
        item = NotificationItem(
            id=5,
            notification_type=1,
            title="⏰ Study reminder",
            body="Hi Ana!",
            scheduled_for=datetime(2025, 3, 5, 22, tzinfo=timezone.utc),
        )
        inbox_service.list_recent = AsyncMock(
            return_value=NotificationListResponse(total=1, unread=1, data=[item])
        )

        response = client.get("/api/notifications/1")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["unread"] == 1
        assert body["data"][0]["id"] == 5

    def test_unread_count(self, client, inbox_service) -> None:
        inbox_service.unread_count = AsyncMock(return_value=3)

        response = client.get("/api/notifications/1/unread-count")

        assert response.json() == {"success": True, "unread": 3}

    @pytest.mark.parametrize("action", ["read", "action"])
    def test_mark_unknown_notification(self, client, inbox_service, action: str) -> None:
        inbox_service.mark_read = AsyncMock(return_value=False)
        inbox_service.mark_action_taken = AsyncMock(return_value=False)

        response = client.put(f"/api/notifications/404/{action}")

        assert response.status_code == 404

    def test_mark_read(self, client, inbox_service) -> None:
        inbox_service.mark_read = AsyncMock(return_value=True)

        assert client.put("/api/notifications/5/read").status_code == 200

    def test_test_push_without_device(self, client, inbox_service) -> None:
        inbox_service.send_test_push = AsyncMock(side_effect=NotFoundError("No device"))

        assert client.post("/api/notifications/1/test-push").status_code == 404

    def test_test_push_gateway_failure(self, client, inbox_service) -> None:
        inbox_service.send_test_push = AsyncMock(side_effect=DeliveryError("rejected"))

        assert client.post("/api/notifications/1/test-push").status_code == 502


# =============================================================================
# Preferences
# =============================================================================


class TestPreferenceEndpoints:
    """Tests for /api/learners/{id}/preferences."""

    def test_get(self, client, preference_service) -> None:
        preference_service.get_preferences = AsyncMock(return_value=preferences())

        response = client.get("/api/learners/1/preferences")

        assert response.status_code == 200
        assert response.json()["reminder_time"] == "19:00"

    def test_update_frequency_validation(self, client, preference_service) -> None:
        preference_service.update_frequency = AsyncMock(
            side_effect=ValidationError("Weekly frequency must be between 1 and 7")
        )

        response = client.put(
            "/api/learners/1/preferences/frequency", json={"weekly_frequency": 9}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "validation_error"

    def test_update_days(self, client, preference_service) -> None:
        preference_service.update_preferred_days = AsyncMock(
            return_value=preferences(preferred_days=["lunes"], study_goal="specific")
        )

        response = client.put(
            "/api/learners/1/preferences/preferred-days", json={"preferred_days": ["Lunes"]}
        )

        assert response.status_code == 200
        assert response.json()["study_goal"] == "specific"
        preference_service.update_preferred_days.assert_awaited_once_with(1, ["Lunes"])

    def test_update_reminders(self, client, preference_service) -> None:
        preference_service.update_reminders = AsyncMock(return_value=preferences())

        response = client.put(
            "/api/learners/1/preferences/reminders",
            json={"enabled": True, "reminder_time": "07:30"},
        )

        assert response.status_code == 200
        preference_service.update_reminders.assert_awaited_once_with(1, True, "07:30")

    def test_unknown_learner(self, client, preference_service) -> None:
        preference_service.get_preferences = AsyncMock(side_effect=NotFoundError("missing"))

        assert client.get("/api/learners/9/preferences").status_code == 404


# =============================================================================
# Health
# =============================================================================


class TestHealthEndpoints:
    """Tests for /api/health."""

    def test_health(self, client) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_scheduler_disabled(self, client) -> None:
        response = client.get("/api/health/scheduler")

        assert response.status_code == 200
        assert response.json()["running"] is False
        assert response.json()["jobs"] == []

    def test_detailed_reports_degraded_gateway(self, client, mock_db_session, mock_sender) -> None:
        async def override_db():
            yield mock_db_session

        app.dependency_overrides[get_db] = override_db
        mock_sender.check_connection = AsyncMock(return_value=False)

        response = client.get("/api/health/detailed")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["dependencies"]["postgres"]["status"] == "healthy"
        assert body["dependencies"]["push_gateway"]["status"] == "unhealthy"
