# src/quest_tracker/tasks/progress.py

"""
Daily progress engine.

Pure decision logic for "record progress today":
- at most one progress update per civil day,
- progress counter +1 (no clamp at goal_days; progress may exceed the goal),
- streak: +1 on the day after the last update, otherwise restart at 1.

The engine never touches storage. TaskApi reads the fresh row, calls
compute_progress(), and persists the delta through TaskStore.apply_progress().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from enum import StrEnum

from .civil_date import civil_date, ensure_aware, truncate_to_millis
from .task_models import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProgressDelta:
    """The three fields a progress update is allowed to change."""

    new_progress: int
    new_streak: int
    new_last_progress_date: datetime

    def apply_to(self, task: Task) -> Task:
        return replace(
            task,
            current_progress=self.new_progress,
            streak=self.new_streak,
            last_progress_date=self.new_last_progress_date,
        )


@dataclass(slots=True, frozen=True)
class AlreadyUpdatedToday:
    """Expected rejection: the task already has progress for this civil day."""

    task_id: int | None
    last_progress_date: datetime
    today: date


def next_streak(task: Task, today: date, tz: tzinfo | None = None) -> int:
    if task.last_progress_date is None:
        return 1

    last_day = civil_date(task.last_progress_date, tz)
    gap = (today - last_day).days

    if gap == 1:
        return task.streak + 1
    if gap < 0:
        # Clock moved backward: treat like a gap.
        logger.warning(
            "Progress date %s is before last progress %s (task_id=%s); resetting streak",
            today,
            last_day,
            task.id,
        )
    return 1


def compute_progress(
    task: Task,
    now: datetime,
    *,
    tz: tzinfo | None = None,
) -> ProgressDelta | AlreadyUpdatedToday:
    """
    Decide whether `task` may record progress at `now`.

    `task` must be the current persisted state. Returns the delta to persist,
    or AlreadyUpdatedToday if the civil day of `now` already has progress.
    """
    now = ensure_aware(now, tz)
    today = civil_date(now, tz)

    if task.last_progress_date is not None and civil_date(task.last_progress_date, tz) == today:
        return AlreadyUpdatedToday(
            task_id=task.id,
            last_progress_date=task.last_progress_date,
            today=today,
        )

    return ProgressDelta(
        new_progress=task.current_progress + 1,
        new_streak=next_streak(task, today, tz),
        new_last_progress_date=truncate_to_millis(now),
    )


class ProgressOutcome(StrEnum):
    APPLIED = "applied"
    ALREADY_UPDATED_TODAY = "already_updated_today"
    NOT_FOUND = "not_found"


@dataclass(slots=True, frozen=True)
class ProgressResult:
    """What TaskApi.record_progress() reports back to the presentation layer."""

    outcome: ProgressOutcome
    task: Task | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == ProgressOutcome.APPLIED
