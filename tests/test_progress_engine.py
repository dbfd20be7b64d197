# tests/test_progress_engine.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from quest_tracker.tasks.progress import AlreadyUpdatedToday, ProgressDelta, compute_progress
from quest_tracker.tasks.task_models import Task, TaskCategory, TaskStatus

UTC = timezone.utc
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def _task(**kw) -> Task:
    base = dict(
        id=7,
        title="Read 20 pages",
        description="any book",
        status=TaskStatus.IN_PROGRESS,
        category=TaskCategory.STUDY,
        created_at=datetime(2024, 3, 1, 8, 0, tzinfo=UTC),
        goal_days=30,
        current_progress=4,
        last_progress_date=None,
        streak=0,
    )
    base.update(kw)
    return Task(**base)


def test_first_progress_starts_streak_at_one() -> None:
    delta = compute_progress(_task(current_progress=0), NOW, tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_progress == 1
    assert delta.new_streak == 1
    assert delta.new_last_progress_date == NOW


def test_consecutive_day_extends_streak() -> None:
    task = _task(last_progress_date=NOW - timedelta(days=1), streak=3)
    delta = compute_progress(task, NOW, tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_progress == 5
    assert delta.new_streak == 4


def test_consecutive_is_decided_by_civil_day_not_24_hours() -> None:
    # 23:59 -> 00:01 is two minutes apart but on consecutive days.
    last = datetime(2024, 3, 9, 23, 59, tzinfo=UTC)
    now = datetime(2024, 3, 10, 0, 1, tzinfo=UTC)
    delta = compute_progress(_task(last_progress_date=last, streak=2), now, tz=UTC)
    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 3

    # 00:01 -> 23:59 next day is almost 48 hours but still consecutive.
    last = datetime(2024, 3, 9, 0, 1, tzinfo=UTC)
    now = datetime(2024, 3, 10, 23, 59, tzinfo=UTC)
    delta = compute_progress(_task(last_progress_date=last, streak=2), now, tz=UTC)
    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 3


@pytest.mark.parametrize("gap_days", [2, 3, 40])
def test_gap_resets_streak(gap_days: int) -> None:
    task = _task(last_progress_date=NOW - timedelta(days=gap_days), streak=9)
    delta = compute_progress(task, NOW, tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 1
    assert delta.new_progress == 5


def test_same_day_is_rejected() -> None:
    last = datetime(2024, 3, 10, 0, 5, tzinfo=UTC)
    task = _task(last_progress_date=last, streak=2)

    result = compute_progress(task, datetime(2024, 3, 10, 23, 55, tzinfo=UTC), tz=UTC)

    assert isinstance(result, AlreadyUpdatedToday)
    assert result.task_id == 7
    assert result.last_progress_date == last
    assert task.current_progress == 4
    assert task.streak == 2


def test_same_day_depends_on_timezone() -> None:
    # 23:30 UTC on the 9th is already the 10th in UTC+2.
    last = datetime(2024, 3, 9, 23, 30, tzinfo=UTC)
    now = datetime(2024, 3, 10, 8, 0, tzinfo=UTC)
    plus2 = timezone(timedelta(hours=2))

    assert isinstance(compute_progress(_task(last_progress_date=last), now, tz=UTC), ProgressDelta)
    assert isinstance(
        compute_progress(_task(last_progress_date=last), now, tz=plus2), AlreadyUpdatedToday
    )


def test_clock_moved_backward_resets_streak(caplog: pytest.LogCaptureFixture) -> None:
    task = _task(last_progress_date=NOW + timedelta(days=2), streak=5)

    with caplog.at_level(logging.WARNING, logger="quest_tracker.tasks.progress"):
        delta = compute_progress(task, NOW, tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 1
    assert delta.new_progress == 5
    assert "resetting streak" in caplog.text


def test_progress_is_not_clamped_at_goal() -> None:
    task = _task(goal_days=3, current_progress=3, last_progress_date=NOW - timedelta(days=1), streak=3)
    delta = compute_progress(task, NOW, tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_progress == 4
    assert delta.apply_to(task).progress_percentage > 1.0


def test_delta_only_touches_progress_fields() -> None:
    task = _task()
    delta = compute_progress(task, NOW, tz=UTC)
    assert isinstance(delta, ProgressDelta)

    updated = delta.apply_to(task)

    assert (updated.current_progress, updated.streak, updated.last_progress_date) == (5, 1, NOW)
    for name in ("id", "title", "description", "status", "category", "goal_days", "created_at"):
        assert getattr(updated, name) == getattr(task, name)


def test_naive_now_is_read_in_engine_timezone() -> None:
    delta = compute_progress(_task(), datetime(2024, 3, 10, 12, 0), tz=UTC)
    assert isinstance(delta, ProgressDelta)
    assert delta.new_last_progress_date == NOW


def test_progress_percentage_guards_zero_goal() -> None:
    assert _task(goal_days=0, current_progress=5).progress_percentage == 0.0
    assert _task(goal_days=-3, current_progress=5).progress_percentage == 0.0
    assert _task(goal_days=30, current_progress=15).progress_percentage == pytest.approx(0.5)


def test_progress_updated_today() -> None:
    assert not _task().progress_updated_today(NOW, UTC)
    assert _task(last_progress_date=NOW.replace(hour=1)).progress_updated_today(NOW, UTC)
    assert not _task(last_progress_date=NOW - timedelta(days=1)).progress_updated_today(NOW, UTC)


# ---- local zone (tz=None), Europe/Berlin ----


def _local(*args: int) -> datetime:
    return datetime(*args).astimezone()


@pytest.mark.parametrize("month", [1, 7])
def test_local_next_day_extends_streak_in_either_season(berlin_local_time, month: int) -> None:
    task = _task(last_progress_date=_local(2026, month, 10, 23, 30), streak=4)

    delta = compute_progress(task, _local(2026, month, 11, 10, 0))

    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 5


def test_local_consecutive_days_across_dst_start(berlin_local_time) -> None:
    task = _task(last_progress_date=_local(2026, 3, 28, 23, 30), streak=2)

    delta = compute_progress(task, _local(2026, 3, 29, 23, 30))

    assert isinstance(delta, ProgressDelta)
    assert delta.new_streak == 3


def test_local_same_day_across_dst_start_is_rejected(berlin_local_time) -> None:
    # 00:30 CET and 23:30 CEST are 22 hours apart on the same civil day.
    task = _task(last_progress_date=_local(2026, 3, 29, 0, 30), streak=2)

    decision = compute_progress(task, _local(2026, 3, 29, 23, 30))

    assert isinstance(decision, AlreadyUpdatedToday)
    assert decision.today.isoformat() == "2026-03-29"


def test_new_last_progress_date_is_millisecond_precise() -> None:
    delta = compute_progress(_task(), NOW.replace(microsecond=123_456), tz=UTC)

    assert isinstance(delta, ProgressDelta)
    assert delta.new_last_progress_date == NOW.replace(microsecond=123_000)
