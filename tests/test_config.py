# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from quest_tracker.cli.bootstrap import create_initial_state, shutdown
from quest_tracker.config import Settings
from quest_tracker.core.errors import StorageError


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_NAME", "LOG_LEVEL", "CONSOLE_ENABLED", "DATA_DIR", "TASKS_DB_PATH", "TIMEZONE"):
        monkeypatch.delenv(f"QUEST_{name}", raising=False)

    s = Settings.from_env()

    assert s.app_name == "quest"
    assert s.log_level == "INFO"
    assert s.console_enabled is True
    assert s.data_dir == Path(".local/quest")
    assert s.tasks_db_path == Path(".local/quest/tasks.sqlite3")
    assert s.tz is None


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("QUEST_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("QUEST_CONSOLE_ENABLED", "no")
    monkeypatch.setenv("QUEST_TIMEZONE", "UTC")
    monkeypatch.delenv("QUEST_TASKS_DB_PATH", raising=False)

    s = Settings.from_env()

    assert s.console_enabled is False
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert str(s.tz) == "UTC"


def test_unknown_timezone_falls_back_to_local(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUEST_TIMEZONE", "Mars/Olympus_Mons")
    assert Settings.from_env().tz is None


def test_bootstrap_wires_store_and_shuts_down(settings) -> None:
    state = create_initial_state(settings=settings)

    assert state.task_store.db_path == settings.tasks_db_path
    assert state.tasks.store is state.task_store
    assert state.tasks.list_all() == []

    shutdown(state)
    with pytest.raises(StorageError):
        state.tasks.list_all()
