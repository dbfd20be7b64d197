# src/quest_tracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "quest.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the REPL is running:
    - quest_tracker logs pass
    - per-call store chatter (quest_tracker.tasks.task_store) only at WARNING+
    - captured Python warnings ('py.warnings') and other libraries only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("quest_tracker.tasks.task_store"):
            return record.levelno >= logging.WARNING
        if name.startswith("quest_tracker."):
            return True
        return record.levelno >= logging.ERROR


def resolve_level(level: int | str, default: int = logging.INFO) -> int:
    """Accept a numeric level or a name like "debug"; unknown names give `default`."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/quest",
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Configure root logging for the CLI and return the log file path.

    The console gets `console_level` through the noise filter; the log file
    keeps everything from `file_level` up and rotates at `max_bytes`.
    Call once, before the first store is opened.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(resolve_level(file_level, logging.DEBUG))
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
