"""Telegram Bot API adapter."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import httpx

from wibot.errors import TelegramError
from wibot.models import Message

LOGGER = logging.getLogger(__name__)

PARSE_MODE = "MarkdownV2"


class TelegramAdapter:
    """Adapter around the Telegram Bot API JSON methods."""

    def __init__(
        self,
        token: str,
        poll_timeout_seconds: int,
        request_timeout_seconds: float,
        base_url: str = "https://api.telegram.org",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"{base_url.rstrip('/')}/bot{token}/"
        self._poll_timeout_seconds = poll_timeout_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._transport = transport
        self._offset = 0

    async def _call(self, method: str, payload: dict[str, Any], timeout: float | None = None) -> Any:
        timeout_config = httpx.Timeout(timeout or self._request_timeout_seconds)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=timeout_config,
                transport=self._transport,
            ) as client:
                response = await client.post(method, json=payload)
                data = response.json()
        except httpx.HTTPError as exc:
            # The token is part of the URL, so only the method name is reported.
            raise TelegramError(f"Telegram {method} request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise TelegramError(f"Telegram {method} returned a non-JSON body") from exc

        if not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description") if isinstance(data, dict) else None
            raise TelegramError(f"Telegram {method} failed: {description or response.status_code}")
        return data.get("result")

    async def get_me(self) -> dict[str, Any]:
        """Identity probe used to verify the token and connectivity."""

        return await self._call("getMe", {})

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a MarkdownV2 message to a chat."""

        await self._call(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "parse_mode": PARSE_MODE},
        )

    async def get_updates(self) -> list[dict[str, Any]]:
        """Long-poll for new updates and advance the offset past them."""

        updates = await self._call(
            "getUpdates",
            {
                "offset": self._offset,
                "timeout": self._poll_timeout_seconds,
                "allowed_updates": ["message"],
            },
            timeout=self._poll_timeout_seconds + self._request_timeout_seconds,
        )
        if not isinstance(updates, list):
            return []
        if updates:
            LOGGER.debug("Received %d Telegram updates", len(updates))
        for update in updates:
            update_id = update.get("update_id") if isinstance(update, dict) else None
            if isinstance(update_id, int):
                self._offset = max(self._offset, update_id + 1)
        return updates

    async def poll_messages(self) -> AsyncIterator[Message]:
        """Poll getUpdates and yield normalized command messages.

        Raises TelegramError when polling fails so the session supervisor can
        restart the connection.
        """

        while True:
            for update in await self.get_updates():
                message = _to_message(update)
                if message is not None:
                    yield message


def _to_message(update: Any) -> Message | None:
    if not isinstance(update, dict):
        return None
    payload = update.get("message")
    if not isinstance(payload, dict):
        return None

    text = payload.get("text")
    if not isinstance(text, str) or not text.strip().startswith("/"):
        return None

    chat = payload.get("chat")
    if not isinstance(chat, dict) or not isinstance(chat.get("id"), int):
        return None

    sender = payload.get("from")
    user_id: int | None = None
    username: str | None = None
    if isinstance(sender, dict):
        user_id = sender.get("id") if isinstance(sender.get("id"), int) else None
        username = sender.get("username") if isinstance(sender.get("username"), str) else None

    timestamp = datetime.fromtimestamp(int(payload.get("date") or 0), tz=timezone.utc)

    return Message(
        chat_id=chat["id"],
        text=text.strip(),
        timestamp=timestamp,
        user_id=user_id,
        username=username,
        message_id=payload.get("message_id"),
    )
