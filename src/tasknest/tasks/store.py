"""SQLite storage for local tasks — ~/.tasknest/tasks.db."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from tasknest.config import TASKS_DB
from tasknest.models import LocalTask

logger = logging.getLogger(__name__)

_COLUMNS = "id, title, completed, priority, category, due_date, position"


class TaskStore:
    """Task table access.  Each method opens its own connection."""

    def __init__(self, db_path: str | Path = TASKS_DB) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    # ── public ──────────────────────────────────────────────────────

    def get_tasks(self) -> list[LocalTask]:
        """All tasks in display order."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM tasks ORDER BY position ASC"
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def get_task_by_id(self, task_id: str) -> LocalTask | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
        return _row_to_task(row) if row else None

    def add_task(self, task: LocalTask) -> LocalTask:
        """Insert at the end of the display order.

        The position on ``task`` is ignored; the stored one is returned.
        """
        with self._connect() as conn:
            (max_pos,) = conn.execute(
                "SELECT COALESCE(MAX(position), -1) FROM tasks"
            ).fetchone()
            position = max_pos + 1
            conn.execute(
                f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    task.id,
                    task.title,
                    task.completed,
                    task.priority,
                    task.category,
                    task.due_date,
                    position,
                ),
            )
        return replace(task, position=position)

    def update_task(self, task: LocalTask) -> None:
        """Overwrite every column of the task with the same id."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE tasks SET title = ?, completed = ?, priority = ?, "
                "category = ?, due_date = ?, position = ? WHERE id = ?",
                (
                    task.title,
                    task.completed,
                    task.priority,
                    task.category,
                    task.due_date,
                    task.position,
                    task.id,
                ),
            )

    def delete_task(self, task_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        return cur.rowcount > 0

    def update_task_order(self, ordered_ids: Iterable[str]) -> None:
        """Rewrite positions 0..n-1 following ``ordered_ids``, atomically."""
        with self._connect() as conn:
            conn.executemany(
                "UPDATE tasks SET position = ? WHERE id = ?",
                [(index, task_id) for index, task_id in enumerate(ordered_ids)],
            )

    def count(self) -> int:
        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return total

    # ── private ─────────────────────────────────────────────────────

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Transaction scope: commit or roll back, then close."""
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    completed BOOLEAN NOT NULL,
                    priority TEXT NOT NULL,
                    category TEXT NOT NULL,
                    due_date TEXT
                )
                """
            )
            # Databases created before manual ordering lack the position column.
            cols = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)")}
            if "position" not in cols:
                conn.execute("ALTER TABLE tasks ADD COLUMN position INTEGER DEFAULT 0")
                logger.info("TaskStore migration: added column position")


def _row_to_task(row: sqlite3.Row) -> LocalTask:
    return LocalTask(
        id=row["id"],
        title=row["title"],
        completed=bool(row["completed"]),
        priority=row["priority"],
        category=row["category"],
        due_date=row["due_date"],
        position=row["position"] if row["position"] is not None else 0,
    )
