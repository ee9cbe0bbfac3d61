"""SQLite persistence layer."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from wibot.errors import DatabaseError, TaskExistsError
from wibot.models import CommandStats, Task, UserStats

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class Database:
    """Small SQLite wrapper with explicit schema management.

    Every public method runs a single statement in its own connection, so the
    store is safe to share between the scheduler and concurrent command
    handlers.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to open database {self._path}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as exc:
            if "UNIQUE constraint failed" in str(exc):
                raise TaskExistsError() from exc
            raise DatabaseError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise DatabaseError(str(exc)) from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        if not self._path.parent.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            LOGGER.info("Created data directory %s", self._path.parent)

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )
        LOGGER.info("Database initialized at %s", self._path)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                chat_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                question TEXT NOT NULL,
                interval INTEGER NOT NULL CHECK (interval > 0),
                last_run TEXT NOT NULL,
                PRIMARY KEY (chat_id, name)
            );

            CREATE TABLE IF NOT EXISTS bot_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                chat_id INTEGER NOT NULL,
                user_id INTEGER,
                username TEXT,
                command TEXT NOT NULL,
                args TEXT,
                response TEXT,
                error TEXT,
                execution_time_ms INTEGER NOT NULL
            );
            """
        )

    def create_task(
        self,
        name: str,
        question: str,
        interval: int,
        chat_id: int,
        last_run: datetime | None = None,
    ) -> Task:
        """Insert a task; raises TaskExistsError when the chat already has ``name``."""

        last_run_iso = _to_iso(last_run) if last_run is not None else _utc_now_iso()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO tasks(chat_id, name, question, interval, last_run) VALUES (?, ?, ?, ?, ?)",
                (chat_id, name, question, interval, last_run_iso),
            )
        return Task(name=name, question=question, interval=interval, last_run=last_run_iso, chat_id=chat_id)

    def delete_task(self, name: str, chat_id: int) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE name = ? AND chat_id = ?", (name, chat_id))
            return cur.rowcount > 0

    def list_tasks(self, chat_id: int | None = None) -> list[Task]:
        with self._connect() as conn:
            if chat_id is None:
                rows = conn.execute(
                    "SELECT name, question, interval, last_run, chat_id FROM tasks ORDER BY chat_id, name"
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT name, question, interval, last_run, chat_id
                    FROM tasks
                    WHERE chat_id = ?
                    ORDER BY name
                    """,
                    (chat_id,),
                ).fetchall()
        return [
            Task(
                name=row["name"],
                question=row["question"],
                interval=int(row["interval"]),
                last_run=row["last_run"],
                chat_id=int(row["chat_id"]),
            )
            for row in rows
        ]

    def update_last_run(
        self,
        chat_id: int,
        name: str,
        timestamp: datetime,
        previous: str | None = None,
    ) -> bool:
        """Advance a task's watermark.

        With ``previous`` the row only changes while it still holds that
        watermark. Returns False when no row matched.
        """

        with self._connect() as conn:
            if previous is None:
                cur = conn.execute(
                    "UPDATE tasks SET last_run = ? WHERE chat_id = ? AND name = ?",
                    (_to_iso(timestamp), chat_id, name),
                )
            else:
                cur = conn.execute(
                    "UPDATE tasks SET last_run = ? WHERE chat_id = ? AND name = ? AND last_run = ?",
                    (_to_iso(timestamp), chat_id, name, previous),
                )
            return cur.rowcount > 0

    def log_interaction(
        self,
        chat_id: int,
        user_id: int | None,
        username: str | None,
        command: str,
        args: str | None,
        response: str | None,
        error: str | None,
        execution_time_ms: int,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO bot_logs
                    (timestamp, chat_id, user_id, username, command, args, response, error, execution_time_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    _utc_now_iso(),
                    chat_id,
                    user_id,
                    username,
                    command,
                    args,
                    response,
                    error,
                    execution_time_ms,
                ),
            )

    def get_user_stats(self, user_id: int) -> UserStats:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total_commands,
                    COUNT(DISTINCT DATE(timestamp)) AS active_days,
                    AVG(execution_time_ms) AS avg_execution_time,
                    COUNT(CASE WHEN error IS NOT NULL THEN 1 END) AS error_count
                FROM bot_logs
                WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
        total = int(row["total_commands"])
        return UserStats(
            total_commands=total,
            active_days=int(row["active_days"]),
            avg_execution_time_ms=float(row["avg_execution_time"] or 0.0),
            error_rate=_percentage(int(row["error_count"]), total),
        )

    def get_command_stats(self) -> list[CommandStats]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT
                    command,
                    COUNT(*) AS usage_count,
                    AVG(execution_time_ms) AS avg_execution_time,
                    COUNT(CASE WHEN error IS NOT NULL THEN 1 END) AS error_count
                FROM bot_logs
                GROUP BY command
                ORDER BY usage_count DESC, command ASC
                """
            ).fetchall()
        return [
            CommandStats(
                command=row["command"],
                usage_count=int(row["usage_count"]),
                avg_execution_time_ms=float(row["avg_execution_time"] or 0.0),
                error_rate=_percentage(int(row["error_count"]), int(row["usage_count"])),
            )
            for row in rows
        ]


def _percentage(part: int, total: int) -> float:
    return part / total * 100.0 if total else 0.0


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
