# src/quest_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the console front-end, then shuts
the store down.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import StorageError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s... (log file %s)", settings.app_name, log_file)

    try:
        state = create_initial_state(settings=settings)
    except StorageError:
        logger.exception("Cannot open task database %s", settings.tasks_db_path)
        return 1

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            signal.signal(signal.SIGTERM, _handle_signal)
            signal.signal(signal.SIGINT, _handle_signal)
            logger.info("Console disabled; database is ready. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        shutdown(state)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
