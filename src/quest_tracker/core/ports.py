# src/quest_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

TaskApi depends on these Protocols instead of concrete implementations.
This keeps storage swappable and makes testing easier (see tests/fakes.py).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.progress import ProgressDelta
    from ..tasks.task_models import Task, TaskFilter, TaskOrder, TaskStatus


class Clock(Protocol):
    """Source of "now". Must return an aware datetime."""
    def __call__(self) -> datetime: ...


class TaskRepo(Protocol):
    # CRUD
    def insert(self, task: Task) -> int: ...
    def get_by_id(self, task_id: int) -> Task | None: ...
    def update(self, task: Task) -> int: ...
    def update_status(self, task_id: int, new_status: TaskStatus) -> None: ...
    def delete(self, task_id: int) -> None: ...

    # Progress engine write path
    def apply_progress(
            self,
            task_id: int,
            delta: ProgressDelta,
            *,
            expected_last_progress: datetime | None,
    ) -> bool: ...

    # Listing
    def list_tasks(
            self,
            task_filter: TaskFilter | None = None,
            order: TaskOrder = ...,
    ) -> list[Task]: ...

    def close(self) -> None: ...
