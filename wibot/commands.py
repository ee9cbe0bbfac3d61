"""Command dispatcher for /-prefixed Telegram messages.

Each handler replies through the ``send`` callback. Errors surface to the
user as the error's ``user_message``; detail goes to the log only.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable

from wibot.errors import BotError, InvalidParametersError, PermissionDeniedError, TaskNotFoundError
from wibot.messages import (
    format_bot_stats,
    format_help_message,
    format_task_created,
    format_task_deleted,
    format_task_list,
    format_user_info,
    format_user_stats,
    format_xai_response,
)
from wibot.models import Message

if TYPE_CHECKING:
    from wibot.db import Database
    from wibot.llm.base import AnswerProvider

LOGGER = logging.getLogger(__name__)

COMMANDS = ("help", "myid", "create", "list", "delete", "ask", "stats", "botstats")

_UNEXPECTED_ERROR = BotError.user_message


def parse_command(text: str, bot_username: str | None = None) -> tuple[str, str] | None:
    """Split a /-prefixed message into (command, args).

    ``/create@wibot weather 60 Hi`` gives ``("create", "weather 60 Hi")``.
    When ``bot_username`` is known, a command addressed to a different bot
    (``/delete@otherbot x``) is not ours and gives None.

    Returns:
        A (command, args) tuple where command is lowercased, or None if text
        is not a /command for this bot.
    """
    text = text.strip()
    if not text.startswith("/"):
        return None
    head, _, args = text[1:].partition(" ")
    command, _, mention = head.partition("@")
    if not command:
        return None
    if mention and bot_username and mention.lower() != bot_username.lstrip("@").lower():
        return None
    return command.lower(), args.strip()


def parse_create_command(args: str) -> tuple[str, int, str] | None:
    """Parse ``<name> <interval_minutes> <question>``.

    The input is split on the first two single spaces, so the question keeps
    its own spacing. The interval must be a positive integer.
    """
    parts = args.split(" ", 2)
    if len(parts) != 3:
        return None
    name, interval_raw, question = parts
    if not name or not question.strip():
        return None
    if not (interval_raw.isascii() and interval_raw.isdigit()):
        return None
    interval = int(interval_raw)
    if interval <= 0:
        return None
    return name, interval, question


class CommandDispatcher:
    """Routes /commands to handlers and records every interaction."""

    def __init__(
        self,
        db: Database,
        llm: AnswerProvider,
        send: Callable[[int, str], Awaitable[None]],
        owner_id: int,
        bot_username: str | None = None,
    ) -> None:
        self._db = db
        self._llm = llm
        self._send = send
        self._owner_id = owner_id
        # Set from getMe once connected; commands for other bots are ignored.
        self.bot_username = bot_username

    async def handle(self, message: Message) -> None:
        """Run one command message to completion; never raises BotError."""

        parsed = parse_command(message.text, self.bot_username)
        if parsed is None:
            return
        command, args = parsed
        if command not in COMMANDS:
            LOGGER.debug("Ignoring unknown command %r", command)
            return

        LOGGER.info("Command dispatch: command=%r chat=%s user=%s", command, message.chat_id, message.user_id)
        started = time.monotonic()
        error: Exception | None = None
        try:
            await self.dispatch(command, args, message)
        except BotError as exc:
            error = exc
            LOGGER.error("Command %r failed: %r", command, exc, exc_info=exc.__cause__ is not None)
            await self._reply_error(message.chat_id, exc.user_message)
        except Exception as exc:  # noqa: BLE001
            error = exc
            LOGGER.exception("Unexpected error handling command %r", command)
            await self._reply_error(message.chat_id, _UNEXPECTED_ERROR)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._record(message, command, args, error, elapsed_ms)

    async def dispatch(self, command: str, args: str, message: Message) -> None:
        chat_id = message.chat_id
        if command == "help":
            await self._send(chat_id, format_help_message())
        elif command == "myid":
            await self._handle_myid(message)
        elif command == "create":
            await self._handle_create(args, chat_id)
        elif command == "list":
            await self._send(chat_id, format_task_list(self._db.list_tasks(chat_id)))
        elif command == "delete":
            await self._handle_delete(args, chat_id)
        elif command == "ask":
            await self._handle_ask(args, chat_id)
        elif command == "stats":
            await self._handle_stats(message)
        elif command == "botstats":
            await self._handle_botstats(message)

    async def _handle_myid(self, message: Message) -> None:
        if message.user_id is None:
            return
        is_owner = message.user_id == self._owner_id
        await self._send(message.chat_id, format_user_info(message.user_id, message.username, is_owner))

    async def _handle_create(self, args: str, chat_id: int) -> None:
        parsed = parse_create_command(args)
        if parsed is None:
            raise InvalidParametersError(f"Cannot parse create arguments {args!r}")
        name, interval, question = parsed

        # Ask before persisting so an unreachable service leaves no task behind.
        answer = await self._llm.ask(question)
        self._db.create_task(name=name, question=question, interval=interval, chat_id=chat_id)
        LOGGER.info("Created task %r in chat %s every %d minutes", name, chat_id, interval)

        await self._send(chat_id, format_task_created(name, question, interval))
        await self._send(chat_id, format_xai_response(name, question, answer))

    async def _handle_delete(self, args: str, chat_id: int) -> None:
        name = args.strip()
        if not name:
            raise InvalidParametersError("Missing task name")
        if not self._db.delete_task(name, chat_id):
            raise TaskNotFoundError(name)
        LOGGER.info("Deleted task %r in chat %s", name, chat_id)
        await self._send(chat_id, format_task_deleted(name))

    async def _handle_ask(self, args: str, chat_id: int) -> None:
        question = args.strip()
        if not question:
            raise InvalidParametersError("Missing question")
        answer = await self._llm.ask(question)
        await self._send(chat_id, format_xai_response(None, question, answer))

    async def _handle_stats(self, message: Message) -> None:
        if message.user_id is None:
            return
        stats = self._db.get_user_stats(message.user_id)
        await self._send(message.chat_id, format_user_stats(stats))

    async def _handle_botstats(self, message: Message) -> None:
        if message.user_id is None:
            return
        if message.user_id != self._owner_id:
            raise PermissionDeniedError(f"user {message.user_id} is not the owner")
        await self._send(message.chat_id, format_bot_stats(self._db.get_command_stats()))

    async def _reply_error(self, chat_id: int, text: str) -> None:
        try:
            await self._send(chat_id, text)
        except BotError as exc:
            LOGGER.error("Failed to deliver error reply to chat %s: %r", chat_id, exc)

    def _record(
        self,
        message: Message,
        command: str,
        args: str,
        error: Exception | None,
        elapsed_ms: int,
    ) -> None:
        if message.user_id is None:
            return
        try:
            self._db.log_interaction(
                chat_id=message.chat_id,
                user_id=message.user_id,
                username=message.username,
                command=command,
                args=args or None,
                response=None,
                error=(str(error) or type(error).__name__) if error is not None else None,
                execution_time_ms=elapsed_ms,
            )
        except BotError as exc:
            LOGGER.error("Failed to log interaction: %r", exc)
