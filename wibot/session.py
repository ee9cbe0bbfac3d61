"""Telegram session connector and crash-only restart supervisor."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from wibot.errors import BotError, TelegramError
from wibot.telegram_adapter import TelegramAdapter

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RetrySession:
    """Attempt bookkeeping for one connect() call."""

    max_attempts: int
    fixed_delay: float
    attempt_count: int = 0

    def record_failure(self) -> bool:
        """Count a failed attempt; True once the budget is spent."""

        self.attempt_count += 1
        return self.attempt_count >= self.max_attempts

    def reset(self) -> None:
        self.attempt_count = 0


class SessionSupervisor:
    """Connects to Telegram with bounded retries and restarts serving forever.

    The delay between attempts and between restarts is fixed, not exponential.
    Only stop() or task cancellation ends run_forever().
    """

    def __init__(self, adapter: TelegramAdapter, max_attempts: int, retry_delay_seconds: float) -> None:
        self._adapter = adapter
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._stop_event = asyncio.Event()
        self.identity: dict[str, Any] | None = None

    async def connect(self) -> dict[str, Any]:
        """Probe the bot identity until it succeeds or the attempts run out.

        Raises:
            TelegramError: after ``max_attempts`` consecutive failures.
        """
        session = RetrySession(max_attempts=self._max_attempts, fixed_delay=self._retry_delay_seconds)
        while True:
            try:
                identity = await self._adapter.get_me()
            except TelegramError as exc:
                if session.record_failure():
                    raise
                LOGGER.warning(
                    "Failed to connect to Telegram API (attempt %d/%d): %r",
                    session.attempt_count,
                    session.max_attempts,
                    exc,
                )
                await asyncio.sleep(session.fixed_delay)
                continue
            session.reset()
            self.identity = identity
            LOGGER.info("Successfully connected to Telegram API as @%s", identity.get("username"))
            return identity

    async def run_forever(self, serve: Callable[[], Awaitable[None]]) -> None:
        """Connect and serve, restarting after every exit of ``serve``."""

        while not self._stop_event.is_set():
            LOGGER.info("Attempting to start bot...")
            try:
                await self.connect()
            except TelegramError as exc:
                LOGGER.error(
                    "Failed to connect to Telegram API after %d attempts: %r",
                    self._max_attempts,
                    exc,
                )
            else:
                try:
                    await serve()
                except BotError as exc:
                    LOGGER.error("Bot crashed: %r", exc)
                except Exception:  # noqa: BLE001
                    LOGGER.exception("Bot crashed with an unexpected error")
                else:
                    LOGGER.info("Bot serving loop returned")

            if self._stop_event.is_set():
                break
            LOGGER.info("Restarting in %s seconds...", self._retry_delay_seconds)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._retry_delay_seconds)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        """Signal run_forever() to stop after the current step."""

        self._stop_event.set()
