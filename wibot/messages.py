"""User-facing MarkdownV2 message templates."""

from __future__ import annotations

from wibot.formatting import escape_markdown_v2, format_response_content
from wibot.models import CommandStats, Task, UserStats


def format_xai_response(task_name: str | None, question: str, response: str) -> str:
    """Render a model answer, labelled with the task name when there is one."""

    body = format_response_content(response)
    if task_name is not None:
        return (
            "🤖 *Task Response*\n\n"
            f"📌 *Task:* {escape_markdown_v2(task_name)}\n"
            f"❓ *Question:* `{escape_markdown_v2(question)}`\n\n"
            f"📝 *Answer:*\n\n{body}"
        )
    return (
        "🤖 *X\\.AI Response*\n\n"
        f"❓ *Question:* `{escape_markdown_v2(question)}`\n\n"
        f"📝 *Answer:*\n\n{body}"
    )


def format_help_message() -> str:
    return (
        "*Available Commands:*\n\n"
        "📌 */help* \\- Show this help message\n\n"
        "📝 */create* \\<name\\> \\<interval\\_minutes\\> \\<question\\>\n"
        "Creates a recurring X\\.AI query task\n"
        "Example: `/create weather 60 What's the weather in New York?`\n\n"
        "📋 */list* \\- Show all active tasks\n\n"
        "🗑 */delete* \\<name\\> \\- Remove a task\n\n"
        "❓ */ask* \\<question\\> \\- Ask X\\.AI a one\\-time question\n\n"
        "🆔 */myid* \\- Show your Telegram ID\n\n"
        "📊 */stats* \\- Show your usage statistics"
    )


def format_task_list(tasks: list[Task]) -> str:
    if not tasks:
        return "📭 *No tasks found*"

    lines = ["*📋 Active Tasks:*\n"]
    for task in tasks:
        lines.append(
            f"🔷 *Task:* {escape_markdown_v2(task.name)}\n"
            f"📝 *Question:* `{escape_markdown_v2(task.question)}`\n"
            f"⏱ *Interval:* {task.interval} minutes\n"
            f"🕒 *Last run:* _{escape_markdown_v2(task.last_run)}_\n"
        )
    return "\n".join(lines)


def format_task_created(name: str, question: str, interval: int) -> str:
    return (
        "✅ *Task Created Successfully*\n\n"
        f"📌 *Name:* {escape_markdown_v2(name)}\n"
        f"❓ *Question:* `{escape_markdown_v2(question)}`\n"
        f"⏱ *Interval:* {interval} minutes\n\n"
        "🔄 First response coming shortly\\.\\.\\."
    )


def format_task_deleted(name: str) -> str:
    return f"✅ Task *{escape_markdown_v2(name)}* deleted successfully"


def format_user_info(user_id: int, username: str | None, is_owner: bool) -> str:
    owner = "Yes ✅" if is_owner else "No ❌"
    return (
        "👤 *Your Telegram Info:*\n\n"
        f"🆔 *User ID:* `{user_id}`\n"
        f"📝 *Username:* @{escape_markdown_v2(username or 'none')}\n"
        f"👑 *Bot Owner:* {owner}\n"
    )


def format_user_stats(stats: UserStats) -> str:
    return (
        "*📊 Your Usage Statistics*\n\n"
        f"📈 *Total Commands:* {stats.total_commands}\n"
        f"📅 *Active Days:* {stats.active_days}\n"
        f"⚡ *Average Response Time:* {escape_markdown_v2(f'{stats.avg_execution_time_ms:.2f}ms')}\n"
        f"❌ *Error Rate:* {escape_markdown_v2(f'{stats.error_rate:.2f}%')}"
    )


def format_bot_stats(stats: list[CommandStats]) -> str:
    """Render per-command usage as a tree block per command."""

    blocks = ["*📊 Bot Usage Statistics*\n"]
    for entry in stats:
        blocks.append(
            f"🔷 *{escape_markdown_v2(entry.command)}*\n"
            f"  ├ Usage Count: {entry.usage_count}\n"
            f"  ├ Avg Response: {escape_markdown_v2(f'{entry.avg_execution_time_ms:.2f}')}ms\n"
            f"  └ Error Rate: {escape_markdown_v2(f'{entry.error_rate:.2f}')}%\n"
        )
    return "\n".join(blocks)
