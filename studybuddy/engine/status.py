"""Status derivation for task rows stored before the status column existed."""

from datetime import date, datetime
from typing import Optional

from studybuddy.models.task import TaskStatus, due_date_part


def is_task_status(value: object) -> bool:
    """Return True if value is one of the three lifecycle statuses."""
    if not isinstance(value, str):
        return False
    try:
        TaskStatus(value)
    except ValueError:
        return False
    return True


def derive_status(
    stored: Optional[str],
    completed_at: Optional[datetime],
    due: Optional[str],
    today: date,
) -> TaskStatus:
    """Resolve the lifecycle status of a loaded row.

    An explicitly stored status always wins. Without one: completed if a
    completion timestamp is set, else in-progress if the due date is strictly
    before today, else upcoming.

    Args:
        stored: Status column value (None or free text for legacy rows)
        completed_at: Completion timestamp column value
        due: Due value (date-only or ISO date-time)
        today: The caller's current calendar date

    Returns:
        The resolved TaskStatus
    """
    if is_task_status(stored):
        return TaskStatus(stored)
    if completed_at is not None:
        return TaskStatus.COMPLETED
    due_day = due_date_part(due)
    if due_day and due_day < today.isoformat():
        return TaskStatus.IN_PROGRESS
    return TaskStatus.UPCOMING
