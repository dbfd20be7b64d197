# src/quest_tracker/tasks/task_api.py

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, tzinfo

from ..core.errors import StorageError
from ..core.ports import Clock, TaskRepo
from .civil_date import civil_date, day_bounds, ensure_aware, now_in, truncate_to_millis
from .progress import AlreadyUpdatedToday, ProgressOutcome, ProgressResult, compute_progress
from .task_models import Task, TaskCategory, TaskFilter, TaskOrder, TaskStatus

logger = logging.getLogger(__name__)

_MAX_PROGRESS_ATTEMPTS = 3


class TaskApi:
    """
    Entry points for presentation layers (console, GUI, ...).

    Callers never read or write store rows directly. Every mutation is a
    read-modify-write through the injected TaskRepo. record_progress() is
    serialized per task id, and the store's compare-and-set keeps the
    once-per-day rule even if another writer slips in between.
    """

    def __init__(
        self,
        store: TaskRepo,
        *,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._store = store
        self._tz = tz
        self._clock: Clock = clock or (lambda: now_in(self._tz))
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def store(self) -> TaskRepo:
        return self._store

    def now(self) -> datetime:
        return ensure_aware(self._clock(), self._tz)

    def _lock_for(self, task_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(task_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[task_id] = lock
            return lock

    @staticmethod
    def _validate(task: Task) -> None:
        if not task.title or not task.title.strip():
            raise ValueError("title is required")
        if task.goal_days <= 0:
            raise ValueError("goal_days must be positive")

    # ---- queries ----

    def get_by_id(self, task_id: int) -> Task | None:
        return self._store.get_by_id(int(task_id))

    def list_by_status(self, status: TaskStatus) -> list[Task]:
        return self._store.list_tasks(TaskFilter(status=status))

    def list_all(self) -> list[Task]:
        return self._store.list_tasks()

    def list_by_category(self, category: TaskCategory) -> list[Task]:
        return self._store.list_tasks(TaskFilter(category=category))

    def list_active_with_progress(self) -> list[Task]:
        return self._store.list_tasks(
            TaskFilter(status=TaskStatus.IN_PROGRESS, goal_not_reached=True),
            TaskOrder.LAST_PROGRESS_DESC,
        )

    def list_progressed_today(self, now: datetime | None = None) -> list[Task]:
        now = ensure_aware(now, self._tz) if now is not None else self.now()
        start, end = day_bounds(civil_date(now, self._tz), self._tz)
        return self._store.list_tasks(
            TaskFilter(progress_since=start, progress_before=end),
            TaskOrder.LAST_PROGRESS_DESC,
        )

    # ---- mutations ----

    def create(self, task: Task) -> Task:
        """Persist a new task; returns it with the assigned id."""
        self._validate(task)
        task = replace(
            task,
            title=task.title.strip(),
            description=task.description.strip(),
            created_at=truncate_to_millis(task.created_at),
        )
        task_id = self._store.insert(task)
        logger.info("Task created id=%s title=%r goal_days=%s", task_id, task.title, task.goal_days)
        return task.with_id(task_id)

    def edit(self, task: Task) -> None:
        if task.id is None:
            raise ValueError("cannot edit a task that was never persisted")
        self._validate(task)
        self._store.update(task)
        logger.info("Task edited id=%s", task.id)

    def complete(self, task_id: int) -> None:
        self._store.update_status(int(task_id), TaskStatus.COMPLETED)
        logger.info("Task completed id=%s", task_id)

    def reopen(self, task_id: int) -> None:
        self._store.update_status(int(task_id), TaskStatus.IN_PROGRESS)
        logger.info("Task reopened id=%s", task_id)

    def remove(self, task_id: int) -> None:
        self._store.delete(int(task_id))
        with self._locks_guard:
            self._locks.pop(int(task_id), None)
        logger.info("Task removed id=%s", task_id)

    def record_progress(self, task_id: int, now: datetime | None = None) -> ProgressResult:
        """
        Record today's progress for a task.

        Outcomes:
        - APPLIED: progress +1, streak updated; `task` is the new state
        - ALREADY_UPDATED_TODAY: nothing changed; `task` is the stored state
        - NOT_FOUND: no task with this id
        """
        task_id = int(task_id)
        now = ensure_aware(now, self._tz) if now is not None else self.now()

        with self._lock_for(task_id):
            for _ in range(_MAX_PROGRESS_ATTEMPTS):
                task = self._store.get_by_id(task_id)
                if task is None:
                    logger.debug("record_progress: task not found id=%s", task_id)
                    return ProgressResult(ProgressOutcome.NOT_FOUND)

                decision = compute_progress(task, now, tz=self._tz)
                if isinstance(decision, AlreadyUpdatedToday):
                    logger.debug("record_progress: already updated today id=%s", task_id)
                    return ProgressResult(ProgressOutcome.ALREADY_UPDATED_TODAY, task)

                if self._store.apply_progress(
                    task_id, decision, expected_last_progress=task.last_progress_date
                ):
                    updated = decision.apply_to(task)
                    logger.info(
                        "Progress recorded id=%s progress=%s/%s streak=%s",
                        task_id,
                        updated.current_progress,
                        updated.goal_days,
                        updated.streak,
                    )
                    return ProgressResult(ProgressOutcome.APPLIED, updated)

                # Row changed since we read it (another writer); decide again on fresh state.
                logger.info("record_progress: stale read for id=%s, retrying", task_id)

        raise StorageError(f"record_progress could not settle task_id={task_id}")
