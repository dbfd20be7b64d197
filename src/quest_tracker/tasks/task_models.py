# src/quest_tracker/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from enum import StrEnum

from ..core.errors import DecodeError
from .civil_date import civil_date, now_in

logger = logging.getLogger(__name__)

DEFAULT_GOAL_DAYS = 30


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Values are the symbolic names persisted in the `status` column.
    """

    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str) -> TaskStatus:
        """Strict decode, ignoring case and "_"/"-" (inProgress, in_progress, in-progress)."""
        key = (raw or "").strip().replace("_", "").replace("-", "").lower()
        for member in cls:
            if key == member.value.lower():
                return member
        raise DecodeError("task status", raw)

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        # Rows written before v2 have no status; unknown symbols keep old rows readable.
        if not raw:
            return cls.IN_PROGRESS
        try:
            return cls(raw)
        except ValueError:
            logger.warning("Unknown stored task status %r; reading as %s", raw, cls.IN_PROGRESS)
            return cls.IN_PROGRESS


_CATEGORY_ICONS = {
    "health": "\U0001f3e5",
    "fitness": "\U0001f4aa",
    "study": "\U0001f4da",
    "work": "\U0001f4bc",
    "personal": "\U0001f464",
    "habits": "\U0001f504",
    "other": "\U0001f4dd",
}


class TaskCategory(StrEnum):
    HEALTH = "health"
    FITNESS = "fitness"
    STUDY = "study"
    WORK = "work"
    PERSONAL = "personal"
    HABITS = "habits"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def icon(self) -> str:
        return _CATEGORY_ICONS[self.value]

    @classmethod
    def parse(cls, raw: str) -> TaskCategory:
        key = (raw or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            raise DecodeError("task category", raw) from None

    @classmethod
    def from_db(cls, raw: str | None) -> TaskCategory:
        if not raw:
            return cls.OTHER
        try:
            return cls(raw)
        except ValueError:
            logger.warning("Unknown stored task category %r; reading as %s", raw, cls.OTHER)
            return cls.OTHER


@dataclass(slots=True)
class Task:
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.IN_PROGRESS
    category: TaskCategory = TaskCategory.OTHER
    created_at: datetime = field(default_factory=now_in)
    goal_days: int = DEFAULT_GOAL_DAYS
    current_progress: int = 0
    last_progress_date: datetime | None = None
    streak: int = 0

    # Assigned by the store on insert.
    id: int | None = None

    @property
    def progress_percentage(self) -> float:
        if self.goal_days <= 0:
            return 0.0
        return self.current_progress / self.goal_days

    @property
    def goal_reached(self) -> bool:
        return self.current_progress >= self.goal_days

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def progress_updated_today(self, now: datetime | None = None, tz: tzinfo | None = None) -> bool:
        if self.last_progress_date is None:
            return False
        if now is None:
            now = now_in(tz)
        return civil_date(self.last_progress_date, tz) == civil_date(now, tz)

    def with_id(self, task_id: int) -> Task:
        return replace(self, id=int(task_id))


class TaskOrder(StrEnum):
    CREATED_DESC = "created_desc"
    LAST_PROGRESS_DESC = "last_progress_desc"


@dataclass(slots=True, frozen=True)
class TaskFilter:
    """
    Predicates for TaskStore.list_tasks(). Unset fields do not filter.

    progress_since/progress_before form a half-open [since, before) window
    on last_progress_date.
    """

    status: TaskStatus | None = None
    category: TaskCategory | None = None
    goal_not_reached: bool = False
    progress_since: datetime | None = None
    progress_before: datetime | None = None
