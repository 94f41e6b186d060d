"""Tests for board filtering/grouping and dashboard KPIs."""

from datetime import date, datetime

from studybuddy.engine.board import (
    DueFilter,
    SortBy,
    category_counts,
    filter_tasks,
    group_by_status,
    sort_tasks,
)
from studybuddy.engine.kpis import compute_kpis, compute_streak

TODAY = date(2026, 3, 10)


class TestBoard:
    def test_week_filter(self, make_task):
        tasks = [
            make_task(title="Past", due="2026-03-09"),
            make_task(title="Today", due="2026-03-10"),
            make_task(title="Next week", due="2026-03-17"),
            make_task(title="Later", due="2026-03-18"),
        ]
        kept = filter_tasks(tasks, TODAY, due=DueFilter.WEEK)
        assert [t.title for t in kept] == ["Today", "Next week"]

    def test_overdue_filter(self, make_task):
        tasks = [make_task(title="Past", due="2026-03-09"), make_task(title="Undated", due=None)]
        assert [t.title for t in filter_tasks(tasks, TODAY, due=DueFilter.OVERDUE)] == ["Past"]

    def test_category_filter(self, make_task):
        tasks = [make_task(category="quiz"), make_task(category="exam")]
        assert len(filter_tasks(tasks, TODAY, category="quiz")) == 1
        assert len(filter_tasks(tasks, TODAY, category="all")) == 2

    def test_sort_by_due_and_added(self, make_task):
        tasks = [make_task(title="B", due="2026-03-20"), make_task(title="A", due="2026-03-11")]
        assert [t.title for t in sort_tasks(tasks, TODAY)] == ["A", "B"]
        assert [t.title for t in sort_tasks(tasks, TODAY, SortBy.ADDED)] == ["B", "A"]

    def test_group_by_status_has_three_columns(self, make_task):
        tasks = [make_task(status="upcoming"), make_task(status="completed")]
        columns = group_by_status(tasks)
        assert list(columns) == ["upcoming", "in-progress", "completed"]
        assert len(columns["upcoming"]) == 1
        assert columns["in-progress"] == []

    def test_category_counts(self, make_task):
        tasks = [make_task(category="quiz"), make_task(category="quiz"), make_task(category="lecture")]
        assert category_counts(tasks) == {"quizzes": 2, "assignments": 0, "exams": 0}


class TestKpis:
    def test_streak_counts_back_from_today(self):
        days = [date(2026, 3, 10), date(2026, 3, 9), date(2026, 3, 8), date(2026, 3, 6)]
        assert compute_streak(days, TODAY) == 3

    def test_streak_is_zero_without_completion_today(self):
        assert compute_streak([date(2026, 3, 9)], TODAY) == 0

    def test_compute_kpis(self, make_task):
        tasks = [
            make_task(due="2026-03-10"),
            make_task(due="2026-03-10", status="completed", completed_at=datetime(2026, 3, 10, 8)),
            make_task(due="2026-03-05", status="completed", completed_at=datetime(2026, 3, 9, 20)),
            make_task(due="2026-03-01"),
        ]
        kpis = compute_kpis(tasks, TODAY)

        assert kpis.due_today == 1
        assert kpis.streak_days == 2
        assert kpis.weekly_total == 3
        assert kpis.weekly_completed == 2
        assert kpis.weekly_progress == 2 / 3
