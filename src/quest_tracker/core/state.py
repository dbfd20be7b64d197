# src/quest_tracker/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_api import TaskApi
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings are stored on the state for easy access in connectors/commands.
    settings: Any

    task_store: TaskStore
    tasks: TaskApi

    # Connectors that run command handlers from several threads take this lock.
    lock: threading.Lock = field(default_factory=threading.Lock)
