"""
Push Messaging

The messaging capability used by the delivery loop. Core batch logic only
depends on the PushSender protocol (a single async send); the concrete
HttpPushSender talks to an Expo-compatible HTTP push gateway with httpx.

Senders never raise: any provider or transport problem is logged and
reported as False, which leaves the notification pending for retry.

Usage:
    from studypulse.services.notifications.push import HttpPushSender, send_many

    async with HttpPushSender.from_settings() as sender:
        ok = await sender.send(token, "Title", "Body", {"notification_id": "42"})
        success, failed = await send_many(sender, [(token, "T", "B"), ...])
"""

import asyncio
import logging
from typing import Optional, Protocol

import httpx

from studypulse.config import settings

logger = logging.getLogger(__name__)

# Provider error codes meaning the token will never work again
INVALID_TOKEN_ERRORS = frozenset({"DeviceNotRegistered", "InvalidCredentials"})


class PushSender(Protocol):
    """Anything that can push one notification to one device token."""

    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[dict[str, str]] = None,
    ) -> bool:
        """Push a notification; True if the provider accepted it."""
        ...


async def send_many(
    sender: PushSender,
    messages: list[tuple[str, str, str]],
    delay_seconds: Optional[float] = None,
) -> tuple[int, int]:
    """
    Send several (token, title, body) notifications one by one.

    A fixed pause between sends keeps bursts from overwhelming the provider.

    Returns:
        (success_count, failed_count)
    """
    delay = settings.PUSH_SEND_DELAY_SECONDS if delay_seconds is None else delay_seconds
    success = 0
    failed = 0

    for i, (token, title, body) in enumerate(messages):
        if await sender.send(token, title, body):
            success += 1
        else:
            failed += 1
        if delay > 0 and i < len(messages) - 1:
            await asyncio.sleep(delay)

    logger.info(f"Bulk push complete: {success} succeeded, {failed} failed")
    return success, failed


def _mask_token(token: str) -> str:
    return token[:20]


class HttpPushSender:
    """
    Push sender for an Expo-compatible HTTP push gateway.

    Each message is POSTed as a one-element JSON list; the gateway answers
    with one ticket per message ({"status": "ok"} or {"status": "error"}).
    """

    DEFAULT_TIMEOUT_SECONDS: float = 10.0

    def __init__(
        self,
        gateway_url: str,
        access_token: str = "",
        timeout: Optional[float] = None,
        android_channel_id: str = "study_reminders",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the sender.

        Args:
            gateway_url: Push endpoint URL.
            access_token: Optional bearer token for the gateway.
            timeout: HTTP timeout in seconds (default: DEFAULT_TIMEOUT_SECONDS).
            android_channel_id: Android notification channel.
            client: Pre-built httpx client (tests pass one with MockTransport).
        """
        self.gateway_url = gateway_url
        self.android_channel_id = android_channel_id
        self.timeout: float = timeout if timeout is not None else self.DEFAULT_TIMEOUT_SECONDS

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self.client: httpx.AsyncClient = client or httpx.AsyncClient(
            headers=headers, timeout=self.timeout
        )

    @classmethod
    def from_settings(cls) -> "HttpPushSender":
        return cls(
            gateway_url=settings.PUSH_GATEWAY_URL,
            access_token=settings.PUSH_ACCESS_TOKEN,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            android_channel_id=settings.PUSH_ANDROID_CHANNEL_ID,
        )

    async def __aenter__(self) -> "HttpPushSender":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def _build_message(
        self, token: str, title: str, body: str, data: Optional[dict[str, str]]
    ) -> dict:
        return {
            "to": token,
            "title": title,
            "body": body,
            "data": data or {},
            "sound": "default",
            "priority": "high",
            "channelId": self.android_channel_id,
            "badge": 1,
        }

    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[dict[str, str]] = None,
    ) -> bool:
        """
        Push one notification.

        Returns:
            True if the gateway accepted the message, False otherwise.
        """
        if not token or not token.strip():
            logger.warning("Push skipped: empty device token")
            return False

        message = self._build_message(token, title, body, data)
        try:
            response = await self.client.post(self.gateway_url, json=[message])
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Push gateway rejected request: HTTP {e.response.status_code}"
            )
            return False
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Push gateway request failed: {type(e).__name__}: {e}")
            return False

        tickets = payload.get("data") if isinstance(payload, dict) else None
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not tickets or not isinstance(tickets, list):
            logger.error(f"Push gateway returned no ticket: {payload!r}")
            return False

        ticket = tickets[0]
        if not isinstance(ticket, dict):
            logger.error(f"Push gateway returned a malformed ticket: {ticket!r}")
            return False
        if ticket.get("status") != "ok":
            details = ticket.get("details")
            error_code = details.get("error") if isinstance(details, dict) else None
            logger.error(
                f"Push rejected by provider: {ticket.get('message')} (code={error_code})"
            )
            if error_code in INVALID_TOKEN_ERRORS:
                logger.warning(f"Invalid or unregistered token: {_mask_token(token)}")
            return False

        logger.info(f"Push sent, ticket id {ticket.get('id')}")
        return True

    async def check_connection(self) -> bool:
        """
        Verify the gateway answers.

        Sends a message to a dummy token: a provider-level rejection still
        proves the gateway is reachable and configured.
        """
        try:
            response = await self.client.post(
                self.gateway_url,
                json=[self._build_message("connection-check", "Test", "Test", None)],
            )
        except httpx.HTTPError as e:
            logger.error(f"Push gateway unreachable: {e}")
            return False
        return response.status_code < 500
