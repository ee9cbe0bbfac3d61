"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Message:
    """Command message normalized by the Telegram adapter."""

    chat_id: int
    text: str
    timestamp: datetime
    user_id: int | None = None
    username: str | None = None
    message_id: int | None = None


@dataclass(slots=True)
class Task:
    """A recurring question persisted per chat.

    ``last_run`` keeps the stored RFC 3339 text so the scheduler can use it as
    the watermark of a conditional update.
    """

    name: str
    question: str
    interval: int
    last_run: str
    chat_id: int


@dataclass(slots=True)
class UserStats:
    """Usage aggregated over one user's commands."""

    total_commands: int
    active_days: int
    avg_execution_time_ms: float
    error_rate: float


@dataclass(slots=True)
class CommandStats:
    """Usage aggregated per command name."""

    command: str
    usage_count: int
    avg_execution_time_ms: float
    error_rate: float
