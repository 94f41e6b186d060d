"""Dashboard KPIs computed from a user's tasks."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence, Set

from studybuddy.models.constants import WEEKLY_WINDOW_DAYS
from studybuddy.models.task import Task, TaskStatus, due_date_part


@dataclass
class DashboardKpis:
    """Headline numbers for the dashboard."""

    due_today: int
    streak_days: int
    weekly_completed: int
    weekly_total: int

    @property
    def weekly_progress(self) -> float:
        if not self.weekly_total:
            return 0.0
        return self.weekly_completed / self.weekly_total


def compute_streak(completion_dates: Iterable[date], today: date) -> int:
    """Consecutive days, ending today, with at least one completion."""
    days: Set[date] = set(completion_dates)
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_kpis(tasks: Sequence[Task], today: date) -> DashboardKpis:
    """Due-today count, completion streak, and last-7-days progress.

    Weekly progress counts tasks due within the last seven days (today
    included) and how many of them are completed.
    """
    today_key = today.isoformat()
    start_key = (today - timedelta(days=WEEKLY_WINDOW_DAYS - 1)).isoformat()

    due_today = sum(
        1 for t in tasks
        if due_date_part(t.due) == today_key and t.status != TaskStatus.COMPLETED
    )
    streak = compute_streak(
        (t.completed_at.date() for t in tasks if t.completed_at is not None),
        today,
    )
    in_window = [
        t for t in tasks
        if t.due and start_key <= due_date_part(t.due) <= today_key
    ]
    return DashboardKpis(
        due_today=due_today,
        streak_days=streak,
        weekly_completed=sum(1 for t in in_window if t.status == TaskStatus.COMPLETED),
        weekly_total=len(in_window),
    )
