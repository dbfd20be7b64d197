# tests/test_migrations.py

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from quest_tracker.core.errors import StorageError
from quest_tracker.tasks.task_models import Task, TaskCategory, TaskStatus
from quest_tracker.tasks.task_store import SCHEMA_VERSION, TaskStore

UTC = timezone.utc
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _make_db(path: Path, version: int, ddl: str, rows: list[tuple]) -> None:
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(ddl)
        for row in rows:
            marks = ", ".join("?" for _ in row)
            conn.execute(f"INSERT INTO tasks VALUES ({marks})", row)
        conn.execute(f"PRAGMA user_version = {version}")
        conn.commit()
    finally:
        conn.close()


def _columns(path: Path) -> list[str]:
    conn = sqlite3.connect(str(path))
    try:
        return [r[1] for r in conn.execute("PRAGMA table_info(tasks)").fetchall()]
    finally:
        conn.close()


V1_DDL = "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT NOT NULL, description TEXT)"
V2_DDL = (
    "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT NOT NULL, "
    "description TEXT, status TEXT DEFAULT 'inProgress', createdAt INTEGER DEFAULT 0)"
)


def test_v1_database_upgrades_to_v3_and_keeps_rows(tmp_path: Path) -> None:
    db = tmp_path / "v1.sqlite3"
    _make_db(db, 1, V1_DDL, [(1, "Drink water", "8 glasses"), (2, "Journal", None)])

    store = TaskStore(db, tz=UTC)

    assert store.schema_version() == SCHEMA_VERSION
    assert _columns(db) == [
        "id",
        "title",
        "description",
        "status",
        "createdAt",
        "category",
        "goalDays",
        "currentProgress",
        "lastProgressDate",
        "streak",
    ]

    first = store.get_by_id(1)
    assert first is not None
    assert first.title == "Drink water"
    assert first.description == "8 glasses"
    assert first.status == TaskStatus.IN_PROGRESS
    assert first.created_at == EPOCH
    assert first.category == TaskCategory.OTHER
    assert first.goal_days == 30
    assert first.current_progress == 0
    assert first.last_progress_date is None
    assert first.streak == 0

    second = store.get_by_id(2)
    assert second is not None
    assert second.title == "Journal"
    assert second.description == ""
    assert store.count_tasks() == 2


def test_v2_database_keeps_status_and_created_at(tmp_path: Path) -> None:
    db = tmp_path / "v2.sqlite3"
    created_ms = 1_700_000_000_000
    _make_db(db, 2, V2_DDL, [(5, "Walk", "", "completed", created_ms)])

    store = TaskStore(db, tz=UTC)
    got = store.get_by_id(5)

    assert got is not None
    assert got.status == TaskStatus.COMPLETED
    assert got.created_at == datetime.fromtimestamp(created_ms / 1000, tz=UTC)
    assert got.goal_days == 30
    assert got.category == TaskCategory.OTHER


def test_migration_skips_columns_that_already_exist(tmp_path: Path) -> None:
    # A v2 file that somehow already has `category` must still upgrade.
    db = tmp_path / "partial.sqlite3"
    ddl = V2_DDL[:-1] + ", category TEXT DEFAULT 'other')"
    _make_db(db, 2, ddl, [(1, "Yoga", "", "inProgress", 0, "fitness")])

    store = TaskStore(db, tz=UTC)
    got = store.get_by_id(1)

    assert store.schema_version() == 3
    assert got is not None
    assert got.category == TaskCategory.FITNESS
    assert got.streak == 0


def test_unversioned_table_is_treated_as_v1(tmp_path: Path) -> None:
    db = tmp_path / "unversioned.sqlite3"
    _make_db(db, 0, V1_DDL, [(1, "Floss", "")])

    store = TaskStore(db, tz=UTC)

    assert store.schema_version() == 3
    got = store.get_by_id(1)
    assert got is not None and got.title == "Floss"


def test_reopening_current_database_is_a_noop(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    first = TaskStore(db, tz=UTC)
    first.insert(Task(title="Sleep early", created_at=EPOCH))
    before = _columns(db)
    first.close()

    second = TaskStore(db, tz=UTC)
    assert _columns(db) == before
    assert second.schema_version() == 3
    assert [t.title for t in second.list_all()] == ["Sleep early"]


def test_newer_schema_is_refused(tmp_path: Path) -> None:
    db = tmp_path / "future.sqlite3"
    _make_db(db, SCHEMA_VERSION + 1, V1_DDL, [])

    with pytest.raises(StorageError):
        TaskStore(db)

    # Nothing was altered.
    assert _columns(db) == ["id", "title", "description"]
