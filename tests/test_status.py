"""Tests for lifecycle status derivation."""

from datetime import date, datetime

import pytest

from studybuddy.engine.status import derive_status, is_task_status
from studybuddy.models.task import TaskStatus

TODAY = date(2026, 3, 10)


def test_past_due_without_status_is_in_progress():
    assert derive_status(None, None, "2026-03-09", TODAY) == TaskStatus.IN_PROGRESS


def test_completion_timestamp_means_completed():
    assert derive_status(None, datetime(2026, 3, 1), "2026-03-09", TODAY) == TaskStatus.COMPLETED


@pytest.mark.parametrize("due", [None, "2026-03-10", "2026-03-11", "2026-03-10T08:00:00Z"])
def test_today_future_or_undated_is_upcoming(due):
    assert derive_status(None, None, due, TODAY) == TaskStatus.UPCOMING


def test_stored_status_wins():
    assert derive_status("upcoming", None, "2026-01-01", TODAY) == TaskStatus.UPCOMING
    assert derive_status("in-progress", None, "2026-12-01", TODAY) == TaskStatus.IN_PROGRESS


def test_unknown_stored_status_is_ignored():
    assert derive_status("todo", None, "2026-03-01", TODAY) == TaskStatus.IN_PROGRESS


def test_is_task_status():
    assert is_task_status("completed")
    assert is_task_status(TaskStatus.UPCOMING)
    assert not is_task_status("done")
    assert not is_task_status(None)
