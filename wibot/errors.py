"""Bot error hierarchy.

Every error carries a ``user_message`` that is safe to send as Telegram
MarkdownV2. Internal detail stays in the exception chain and the log.

    BotError
    ├── TaskExistsError
    ├── TaskNotFoundError
    ├── XaiServiceError
    ├── DatabaseError
    ├── TelegramError
    ├── InvalidParametersError
    ├── DateParseError
    └── PermissionDeniedError
"""

from __future__ import annotations


class BotError(Exception):
    """Base class for all bot errors."""

    user_message = "❌ An unexpected error occurred\\. Please try again later\\."


class TaskExistsError(BotError):
    """A task with the same name already exists in the chat."""

    user_message = "❌ A task with this name already exists\\. Please choose a different name\\."


class TaskNotFoundError(BotError):
    """No task with the given name exists in the chat."""

    user_message = "❌ Task not found\\. Use /list to see all available tasks\\."


class XaiServiceError(BotError):
    """The X.AI service could not be reached or returned an unusable reply."""

    user_message = "❌ Unable to reach X\\.AI service\\. Please try again later\\."


class DatabaseError(BotError):
    """The task store failed."""

    user_message = "❌ Unable to process your request\\. Please try again later\\."


class TelegramError(BotError):
    """A Telegram Bot API call failed."""

    user_message = "❌ Unable to send message\\. Please try again later\\."


class InvalidParametersError(BotError):
    """Command arguments did not match the expected format."""

    user_message = (
        "❌ Invalid parameters provided\\. Please check the command format and try again\\."
    )


class DateParseError(BotError):
    """A stored timestamp could not be parsed."""

    user_message = "❌ Error processing date information\\. Please try again later\\."


class PermissionDeniedError(BotError):
    """The command is restricted to the bot owner."""

    user_message = "❌ This command is restricted to the bot owner\\."
