"""Async scheduler for recurring questions."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from wibot.db import Database
from wibot.errors import BotError, DateParseError
from wibot.llm.base import AnswerProvider
from wibot.messages import format_xai_response
from wibot.models import Task

LOGGER = logging.getLogger(__name__)

_MINUTE = timedelta(minutes=1)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored RFC 3339 watermark; naive values are taken as UTC."""

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DateParseError(f"Invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_due(task: Task, now: datetime) -> bool:
    """Whole minutes elapsed since ``last_run`` (truncated) reach the interval.

    Wall-clock based: a clock adjustment can make a task run early or late.
    """

    elapsed_minutes = int((now - parse_timestamp(task.last_run)) / _MINUTE)
    return elapsed_minutes >= task.interval


class TaskScheduler:
    """Polls the task store on a fixed cadence and runs due tasks.

    A task whose answer or delivery fails keeps its watermark, so it is retried
    on the next cycle.
    """

    def __init__(
        self,
        db: Database,
        llm: AnswerProvider,
        deliver: Callable[[int, str], Awaitable[None]],
        poll_interval_seconds: float = 60.0,
    ) -> None:
        self._db = db
        self._llm = llm
        self._deliver = deliver
        self._poll_interval_seconds = poll_interval_seconds
        self._stop_event = asyncio.Event()

    async def run_forever(self) -> None:
        """Run scheduler cycles until stop() is called."""

        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except BotError as exc:
                LOGGER.error("Error checking tasks: %r", exc)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Unexpected error checking tasks")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def run_once(self, now: datetime | None = None) -> int:
        """Run one cycle; returns the number of tasks executed and delivered."""

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        executed = 0
        for task in self._db.list_tasks():
            try:
                due = is_due(task, now)
            except DateParseError as exc:
                LOGGER.error("Skipping task %r in chat %s: %r", task.name, task.chat_id, exc)
                continue
            if not due:
                continue
            if await self._execute(task, now):
                executed += 1
        return executed

    async def _execute(self, task: Task, now: datetime) -> bool:
        LOGGER.info("Running task %r with question: %s", task.name, task.question)
        try:
            answer = await self._llm.ask(task.question)
        except BotError as exc:
            LOGGER.error("Failed to get X.AI response for task %r: %r", task.name, exc)
            return False
        except Exception:  # noqa: BLE001
            LOGGER.exception("Unexpected error answering task %r", task.name)
            return False

        try:
            await self._deliver(task.chat_id, format_xai_response(task.name, task.question, answer))
        except BotError as exc:
            LOGGER.error("Failed to send task response for %r: %r", task.name, exc)
            return False
        except Exception:  # noqa: BLE001
            LOGGER.exception("Unexpected error delivering task %r", task.name)
            return False

        # Keyed on the watermark read this cycle: a task deleted or re-created
        # meanwhile is left untouched.
        try:
            advanced = self._db.update_last_run(task.chat_id, task.name, now, previous=task.last_run)
        except BotError as exc:
            LOGGER.error("Failed to update last run for task %r: %r", task.name, exc)
            return True
        except Exception:  # noqa: BLE001
            LOGGER.exception("Unexpected error updating last run for task %r", task.name)
            return True
        if not advanced:
            LOGGER.info("Task %r changed during execution; watermark not advanced", task.name)
        return True

    def stop(self) -> None:
        """Signal the loop to stop."""

        self._stop_event.set()
