"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging

from wibot.commands import CommandDispatcher
from wibot.config import load_settings
from wibot.db import Database
from wibot.llm.xai import XaiProvider
from wibot.scheduler import TaskScheduler
from wibot.session import SessionSupervisor
from wibot.telegram_adapter import TelegramAdapter

LOGGER = logging.getLogger(__name__)


async def run() -> None:
    """Initialize app layers and keep the bot session alive."""

    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())
    LOGGER.info("Starting task bot...")

    db = Database(settings.database_path)
    db.initialize()

    provider = XaiProvider(settings)
    telegram = TelegramAdapter(
        token=settings.telegram_bot_token,
        poll_timeout_seconds=settings.telegram_poll_timeout_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
        base_url=settings.telegram_api_base_url,
    )
    dispatcher = CommandDispatcher(
        db=db,
        llm=provider,
        send=telegram.send_message,
        owner_id=settings.bot_owner_id,
    )
    scheduler = TaskScheduler(
        db=db,
        llm=provider,
        deliver=telegram.send_message,
        poll_interval_seconds=settings.scheduler_interval_seconds,
    )
    supervisor = SessionSupervisor(
        adapter=telegram,
        max_attempts=settings.connect_max_retries,
        retry_delay_seconds=settings.connect_retry_delay_seconds,
    )

    handlers: set[asyncio.Task[None]] = set()

    async def serve() -> None:
        if supervisor.identity is not None:
            dispatcher.bot_username = supervisor.identity.get("username")
        async for message in telegram.poll_messages():
            handler = asyncio.create_task(dispatcher.handle(message), name=f"command-{message.message_id}")
            handlers.add(handler)
            handler.add_done_callback(handlers.discard)

    scheduler_task = asyncio.create_task(scheduler.run_forever(), name="task-scheduler")
    LOGGER.info("Bot started successfully!")

    try:
        await supervisor.run_forever(serve)
    except asyncio.CancelledError:
        raise
    finally:
        supervisor.stop()
        scheduler.stop()
        scheduler_task.cancel()
        for handler in handlers:
            handler.cancel()
        LOGGER.info("Bot shutdown complete")


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")


if __name__ == "__main__":
    main()
