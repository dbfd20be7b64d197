# src/quest_tracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Callable, Iterator
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any

from ..core.errors import StorageError
from .civil_date import from_millis, to_millis
from .progress import ProgressDelta
from .task_models import Task, TaskCategory, TaskFilter, TaskOrder, TaskStatus

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3

_CREATE_TASKS_V3 = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT DEFAULT 'inProgress',
    category TEXT DEFAULT 'other',
    createdAt INTEGER NOT NULL,
    goalDays INTEGER DEFAULT 30,
    currentProgress INTEGER DEFAULT 0,
    lastProgressDate INTEGER,
    streak INTEGER DEFAULT 0
)
"""

_COLUMNS = (
    "title",
    "description",
    "status",
    "category",
    "createdAt",
    "goalDays",
    "currentProgress",
    "lastProgressDate",
    "streak",
)

_ORDER_BY = {
    TaskOrder.CREATED_DESC: "createdAt DESC",
    TaskOrder.LAST_PROGRESS_DESC: "lastProgressDate DESC, createdAt DESC",
}


def _migrate_v1_to_v2(add_col: Callable[[str, str], None]) -> None:
    add_col("status", "TEXT DEFAULT 'inProgress'")
    add_col("createdAt", "INTEGER DEFAULT 0")


def _migrate_v2_to_v3(add_col: Callable[[str, str], None]) -> None:
    add_col("category", "TEXT DEFAULT 'other'")
    add_col("goalDays", "INTEGER DEFAULT 30")
    add_col("currentProgress", "INTEGER DEFAULT 0")
    add_col("lastProgressDate", "INTEGER")
    add_col("streak", "INTEGER DEFAULT 0")


# target version -> step that brings the table from (target - 1) to target
_MIGRATIONS: dict[int, Callable[[Callable[[str, str], None]], None]] = {
    2: _migrate_v1_to_v2,
    3: _migrate_v2_to_v3,
}


class TaskStore:
    """
    SQLite task store.

    Schema evolution:
    - the schema version lives in PRAGMA user_version
    - a fresh file gets the current table and version directly
    - an older file is upgraded one version at a time; each step only adds
      columns (skipping ones already present) and bumps the version in the
      same transaction

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, tz: tzinfo | None = None) -> None:
        self._db_path = Path(db_path)
        self._tz = tz
        self._closed = False
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory for {self._db_path}") from e
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StorageError:
            total = -1
        logger.info(
            "TaskStore ready db=%s version=%s total=%s", self._db_path, SCHEMA_VERSION, total
        )

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Mark the store as shut down; later calls raise StorageError."""
        if not self._closed:
            self._closed = True
            logger.info("TaskStore closed db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageError(f"TaskStore is closed (db={self._db_path})")
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"SQLite error on {self._db_path}: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.isolation_level = None
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                version = int(cur.execute("PRAGMA user_version").fetchone()[0])
                has_table = (
                    cur.execute(
                        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'tasks'"
                    ).fetchone()
                    is not None
                )

                if version > SCHEMA_VERSION:
                    raise StorageError(
                        f"{self._db_path} has schema version {version}, "
                        f"newer than supported {SCHEMA_VERSION}"
                    )

                if not has_table:
                    cur.execute(_CREATE_TASKS_V3)
                    logger.info("TaskStore created schema v%s", SCHEMA_VERSION)
                else:
                    # A tasks table without a recorded version predates versioning.
                    self._upgrade(cur, max(version, 1))

                cur.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status, createdAt)")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_progress ON tasks(lastProgressDate)")
                cur.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    cur.execute("ROLLBACK")
                raise

    @staticmethod
    def _upgrade(cur: sqlite3.Cursor, from_version: int) -> None:
        cur.execute("PRAGMA table_info(tasks)")
        cols = {row["name"] for row in cur.fetchall()}

        def add_col(name: str, decl: str) -> None:
            if name in cols:
                return
            cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
            cols.add(name)
            logger.info("TaskStore migration: added column %s", name)

        for target in range(from_version + 1, SCHEMA_VERSION + 1):
            _MIGRATIONS[target](add_col)
            logger.info("TaskStore migration: v%s -> v%s", target - 1, target)

    def _task_to_params(self, task: Task) -> tuple[Any, ...]:
        return (
            task.title,
            task.description,
            task.status.value,
            task.category.value,
            to_millis(task.created_at),
            int(task.goal_days),
            int(task.current_progress),
            to_millis(task.last_progress_date) if task.last_progress_date is not None else None,
            int(task.streak),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        last = row["lastProgressDate"]
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            category=TaskCategory.from_db(row["category"]),
            created_at=from_millis(row["createdAt"] or 0, self._tz),
            goal_days=int(row["goalDays"] if row["goalDays"] is not None else 30),
            current_progress=int(row["currentProgress"] or 0),
            last_progress_date=from_millis(last, self._tz) if last is not None else None,
            streak=int(row["streak"] or 0),
        )

    # ---- public API ----

    def schema_version(self) -> int:
        with self._connection() as conn:
            (v,) = conn.execute("PRAGMA user_version").fetchone()
            return int(v)

    def count_tasks(self) -> int:
        with self._connection() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def insert(self, task: Task) -> int:
        """
        Persist a task and return its id.

        A task without id gets a new one. A task with an id replaces any
        existing row with that id.
        """
        params = self._task_to_params(task)
        cols = ", ".join(_COLUMNS)
        marks = ", ".join("?" for _ in _COLUMNS)

        with self._connection() as conn:
            cur = conn.cursor()
            if task.id is None:
                cur.execute(f"INSERT INTO tasks({cols}) VALUES ({marks})", params)
            else:
                cur.execute(
                    f"INSERT OR REPLACE INTO tasks(id, {cols}) VALUES (?, {marks})",
                    (int(task.id), *params),
                )
            conn.commit()
            rowid = cur.lastrowid if task.id is None else task.id
            if rowid is None:
                raise StorageError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug(
                "Task inserted id=%s category=%s status=%s goal_days=%s",
                task_id,
                task.category.value,
                task.status.value,
                task.goal_days,
            )
            return task_id

    def get_by_id(self, task_id: int) -> Task | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def update(self, task: Task) -> int:
        """
        Replace every field of the row with `task.id`.

        Returns the affected row count (0 when the id does not exist). Callers
        must not treat 0 as a "not found" signal; use get_by_id() for that.
        """
        if task.id is None:
            return 0
        assignments = ", ".join(f"{c} = ?" for c in _COLUMNS)
        with self._connection() as conn:
            cur = conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",
                (*self._task_to_params(task), int(task.id)),
            )
            conn.commit()
            if cur.rowcount == 0:
                logger.debug("Task update matched no row id=%s", task.id)
            return cur.rowcount

    def update_status(self, task_id: int, new_status: TaskStatus) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE tasks SET status = ? WHERE id = ?",
                (new_status.value, int(task_id)),
            )
            conn.commit()

    def apply_progress(
        self,
        task_id: int,
        delta: ProgressDelta,
        *,
        expected_last_progress: datetime | None,
    ) -> bool:
        """
        Persist a progress delta (currentProgress, streak, lastProgressDate only).

        Atomically transitions the row only if its lastProgressDate still equals
        `expected_last_progress` (the value the delta was computed from).
        Returns True if the row was updated by this caller.
        """
        expected = to_millis(expected_last_progress) if expected_last_progress is not None else None
        with self._connection() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET currentProgress = ?,
                    streak = ?,
                    lastProgressDate = ?
                WHERE id = ?
                  AND lastProgressDate IS ?
                """,
                (
                    int(delta.new_progress),
                    int(delta.new_streak),
                    to_millis(delta.new_last_progress_date),
                    int(task_id),
                    expected,
                ),
            )
            conn.commit()
            return cur.rowcount == 1

    def delete(self, task_id: int) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()

    def list_tasks(
        self,
        task_filter: TaskFilter | None = None,
        order: TaskOrder = TaskOrder.CREATED_DESC,
    ) -> list[Task]:
        """Return a fresh list of tasks matching `task_filter`, sorted by `order`."""
        f = task_filter or TaskFilter()
        where: list[str] = []
        params: list[Any] = []

        if f.status is not None:
            where.append("status = ?")
            params.append(f.status.value)

        if f.category is not None:
            where.append("category = ?")
            params.append(f.category.value)

        if f.goal_not_reached:
            where.append("currentProgress < goalDays")

        if f.progress_since is not None:
            where.append("lastProgressDate >= ?")
            params.append(to_millis(f.progress_since))

        if f.progress_before is not None:
            where.append("lastProgressDate < ?")
            params.append(to_millis(f.progress_before))

        sql = "SELECT * FROM tasks"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {_ORDER_BY[order]}"

        with self._connection() as conn:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def list_all(self) -> list[Task]:
        return self.list_tasks()

    def list_by_status(self, status: TaskStatus) -> list[Task]:
        return self.list_tasks(TaskFilter(status=status))

    def list_by_category(self, category: TaskCategory) -> list[Task]:
        return self.list_tasks(TaskFilter(category=category))

    def list_active_with_progress(self) -> list[Task]:
        """In-progress tasks whose goal is not reached yet, most recently progressed first."""
        return self.list_tasks(
            TaskFilter(status=TaskStatus.IN_PROGRESS, goal_not_reached=True),
            TaskOrder.LAST_PROGRESS_DESC,
        )

    def list_progressed_between(self, since: datetime, before: datetime) -> list[Task]:
        return self.list_tasks(
            TaskFilter(progress_since=since, progress_before=before),
            TaskOrder.LAST_PROGRESS_DESC,
        )
