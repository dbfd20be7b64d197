# tests/conftest.py

from __future__ import annotations

import time
from datetime import timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from quest_tracker.core.state import AppState
from quest_tracker.tasks.task_api import TaskApi
from quest_tracker.tasks.task_store import TaskStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic (UTC days, tmp paths).
    """
    return SimpleNamespace(
        app_name="quest-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        timezone_name="UTC",
        tz=timezone.utc,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    s = TaskStore(settings.tasks_db_path, tz=timezone.utc)
    yield s
    s.close()


@pytest.fixture()
def api(store: TaskStore, clock: FakeClock) -> TaskApi:
    return TaskApi(store, clock=clock, tz=timezone.utc)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, api: TaskApi) -> AppState:
    """
    AppState wired with a fake clock.

    NOTE: We keep a real SQLite TaskStore here because its correctness is
    part of what we want to test.
    """
    return AppState(settings=settings, task_store=store, tasks=api)


@pytest.fixture()
def berlin_local_time(monkeypatch: pytest.MonkeyPatch):
    """
    Run the test with the process-local timezone set to Europe/Berlin.

    Exercises the tz=None path: CET (+01:00) in winter, CEST (+02:00) in
    summer, DST starts 2026-03-29 and ends 2026-10-25.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    if set(time.tzname) != {"CET", "CEST"}:
        monkeypatch.undo()
        time.tzset()
        pytest.skip("system zoneinfo has no Europe/Berlin")
    yield
    monkeypatch.undo()
    time.tzset()
