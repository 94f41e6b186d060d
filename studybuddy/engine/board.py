"""Board view helpers: filtering, sorting and grouping tasks into columns.

All functions are pure and deterministic; "today" is always passed in.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from studybuddy.models.task import Task, TaskCategory, TaskStatus, due_date_part


class DueFilter(str, Enum):
    """Due-date window filter."""
    ALL = "all"
    WEEK = "week"
    OVERDUE = "overdue"


class SortBy(str, Enum):
    """Board ordering."""
    DUE = "due"
    ADDED = "added"


def board_date(task: Task, today: date) -> str:
    """Date the board shows for a task; undated tasks sit on today."""
    return due_date_part(task.due) or today.isoformat()


def filter_tasks(
    tasks: Sequence[Task],
    today: date,
    category: Optional[str] = None,
    due: DueFilter = DueFilter.ALL,
) -> List[Task]:
    """Filter by category and due window.

    Args:
        tasks: Tasks to filter
        today: Current calendar date
        category: Keep only this category (None or "all" keeps every category)
        due: "week" keeps today..today+7, "overdue" keeps dates before today

    Returns:
        Filtered tasks in their original order
    """
    today_key = today.isoformat()
    week_key = (today + timedelta(days=7)).isoformat()
    out: List[Task] = []
    for task in tasks:
        if category and category != "all" and task.category != category:
            continue
        day = board_date(task, today)
        if due == DueFilter.OVERDUE and day >= today_key:
            continue
        if due == DueFilter.WEEK and (day < today_key or day > week_key):
            continue
        out.append(task)
    return out


def sort_tasks(tasks: Sequence[Task], today: date, sort_by: SortBy = SortBy.DUE) -> List[Task]:
    """Sort by due date (stable), or keep insertion order for "added"."""
    if sort_by == SortBy.ADDED:
        return list(tasks)
    return sorted(tasks, key=lambda t: board_date(t, today))


def group_by_status(tasks: Sequence[Task]) -> Dict[str, List[Task]]:
    """Group tasks into the three board columns, preserving order."""
    columns: Dict[str, List[Task]] = {status.value: [] for status in TaskStatus}
    for task in tasks:
        columns[task.status].append(task)
    return columns


def category_counts(tasks: Sequence[Task]) -> Dict[str, int]:
    """Counts of graded categories (quizzes, assignments, exams)."""
    return {
        "quizzes": sum(1 for t in tasks if t.category == TaskCategory.QUIZ),
        "assignments": sum(1 for t in tasks if t.category == TaskCategory.ASSIGNMENT),
        "exams": sum(1 for t in tasks if t.category == TaskCategory.EXAM),
    }
