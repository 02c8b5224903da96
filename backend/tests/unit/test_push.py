"""
Unit tests for the push sender.

Uses httpx.MockTransport so no request leaves the process.

Tests:
- Message payload sent to the gateway
- Ticket handling (ok / error / invalid token)
- HTTP and transport failures reported as False, never raised
- Bulk sending helper
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from studypulse.services.notifications.push import HttpPushSender, send_many

GATEWAY = "https://push.test/send"
TOKEN = "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"


def make_sender(handler) -> HttpPushSender:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPushSender(GATEWAY, client=client, android_channel_id="study_reminders")


def ok_ticket(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"data": [{"status": "ok", "id": "ticket-1"}]})


# ============================================================================
# send
# ============================================================================


class TestHttpPushSender:
    """Tests for HttpPushSender.send."""

    @pytest.mark.asyncio
    async def test_payload(self) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return ok_ticket(request)

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "Title", "Body", {"notification_id": "42"})

        assert captured["url"] == GATEWAY
        message = captured["body"][0]
        assert message["to"] == TOKEN
        assert message["title"] == "Title"
        assert message["body"] == "Body"
        assert message["data"] == {"notification_id": "42"}
        assert message["priority"] == "high"
        assert message["channelId"] == "study_reminders"

    @pytest.mark.asyncio
    async def test_single_ticket_object(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"status": "ok", "id": "t"}})

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is True

    @pytest.mark.asyncio
    async def test_error_ticket(self, caplog) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "status": "error",
                            "message": "not registered",
                            "details": {"error": "DeviceNotRegistered"},
                        }
                    ]
                },
            )

        with caplog.at_level(logging.WARNING):
            async with make_sender(handler) as sender:
                assert await sender.send(TOKEN, "T", "B") is False

        assert "Invalid or unregistered token" in caplog.text
        assert TOKEN[:20] in caplog.text
        assert TOKEN not in caplog.text

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="gateway exploded")

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is False

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is False

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is False

    @pytest.mark.asyncio
    async def test_missing_ticket(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": []})

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"data": ["oops"]},
            {"data": "oops"},
            {"data": [{"status": "error", "details": "DeviceNotRegistered"}]},
        ],
    )
    async def test_malformed_ticket(self, payload: dict, caplog) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        async with make_sender(handler) as sender:
            assert await sender.send(TOKEN, "T", "B") is False
        assert any(r.levelname == "ERROR" for r in caplog.records)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["", "   "])
    async def test_blank_token_not_sent(self, token: str) -> None:
        handler = MagicMock(side_effect=ok_ticket)

        async with make_sender(handler) as sender:
            assert await sender.send(token, "T", "B") is False

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_connection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"errors": [{"code": "VALIDATION_ERROR"}]})

        async with make_sender(handler) as sender:
            assert await sender.check_connection() is True

    def test_from_settings(self) -> None:
        sender = HttpPushSender.from_settings()
        assert sender.gateway_url
        assert sender.timeout > 0


# ============================================================================
# send_many
# ============================================================================


class TestSendMany:
    """Tests for the bulk helper."""

    @pytest.mark.asyncio
    async def test_counts(self) -> None:
        sender = MagicMock()
        sender.send = AsyncMock(side_effect=[True, False, True])
        messages = [("a", "T", "B"), ("b", "T", "B"), ("c", "T", "B")]

        with patch("studypulse.services.notifications.push.asyncio.sleep", new=AsyncMock()) as sleep:
            success, failed = await send_many(sender, messages, delay_seconds=0.1)

        assert (success, failed) == (2, 1)
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_no_delay(self) -> None:
        sender = MagicMock()
        sender.send = AsyncMock(return_value=True)

        with patch("studypulse.services.notifications.push.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await send_many(sender, [("a", "T", "B")], delay_seconds=0) == (1, 0)

        sleep.assert_not_awaited()
