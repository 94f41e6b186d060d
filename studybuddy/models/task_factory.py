"""Task creation factory for studybuddy.

This module centralizes task creation logic so that manual entry, syllabus
import, and status transitions all keep the completion timestamp consistent
with the status.
"""

import uuid
from datetime import datetime
from typing import Optional, List

from studybuddy.models.task import (
    Task, TaskStatus, TaskCategory, Subtask, TEMP_ID_PREFIX, validate_due, due_date_part,
)
from studybuddy.models.syllabus import ParsedEvent
from studybuddy.models.constants import SOURCE_MANUAL, SOURCE_SYLLABUS


def new_task_id() -> str:
    return str(uuid.uuid4())


def new_temporary_id() -> str:
    """Client-side id used for a task that has not been saved yet."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4()}"


def completion_for(status: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Completion timestamp that matches a status."""
    if status == TaskStatus.COMPLETED:
        return now or datetime.utcnow()
    return None


def with_status(task: Task, status: str, now: Optional[datetime] = None) -> Task:
    """Return a copy of task moved to status.

    The completion timestamp is set on entering completed and cleared on
    leaving it. A task that is already completed keeps its original timestamp.
    """
    status = TaskStatus(status).value
    if status == task.status:
        return task
    return task.model_copy(update={"status": status, "completed_at": completion_for(status, now)})


def create_task_base(
    user_id: str,
    title: str,
    category: Optional[TaskCategory] = None,
    status: Optional[TaskStatus] = None,
    due: Optional[str] = None,
    notes: Optional[str] = None,
    subtasks: Optional[List[Subtask]] = None,
    source: str = SOURCE_MANUAL,
    task_id: Optional[str] = None,
) -> Task:
    """Create a task with defaults, allowing overrides.

    Args:
        user_id: User ID who owns this task (required)
        title: Task title (required, non-empty)
        category: Task category (defaults to ASSIGNMENT)
        status: Lifecycle status (defaults to UPCOMING)
        due: YYYY-MM-DD or offset-qualified ISO instant
        notes: Free-text notes; blank notes are stored as None
        subtasks: Derived sub-steps
        source: 'manual' or 'syllabus'
        task_id: Explicit id (defaults to a new UUID)

    Returns:
        Task object with defaults applied

    Raises:
        pydantic.ValidationError: If the title is empty or the due value is ambiguous
    """
    now = datetime.utcnow()
    status = status if status is not None else TaskStatus.UPCOMING
    notes = notes.strip() if notes else None

    return Task(
        id=task_id or new_task_id(),
        user_id=user_id,
        title=title,
        category=category if category is not None else TaskCategory.ASSIGNMENT,
        status=status,
        due=due,
        notes=notes or None,
        subtasks=subtasks or [],
        completed_at=completion_for(status, now),
        source=source,
        created_at=now,
    )


def task_from_parsed_event(user_id: str, event: ParsedEvent) -> Task:
    """Build a task record from an extracted syllabus event.

    The datastore keeps due dates as calendar dates, so a date-time is reduced
    to its date part. A value that is neither a date nor an offset-qualified
    instant raises ValueError.
    """
    due = due_date_part(validate_due(event.date))
    if due is None:
        raise ValueError("Event date is required")
    return create_task_base(
        user_id=user_id,
        title=event.title,
        category=TaskCategory(event.type),
        due=due,
        notes=event.description,
        source=SOURCE_SYLLABUS,
    )
