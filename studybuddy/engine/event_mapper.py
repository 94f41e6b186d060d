"""Mapping from task records to Google Calendar event payloads.

Pure functions: no I/O and no clock. The same inputs always produce the same
payload.
"""

from datetime import date, timedelta
from typing import Any, Dict, Optional

from studybuddy.models.task import Task, TaskCategory, is_date_only
from studybuddy.models.reminder import NO_PREFERENCE, ReminderSetting
from studybuddy.models.constants import DEFAULT_TIME_ZONE


def add_one_day(date_only: str) -> str:
    """Return the calendar day after a YYYY-MM-DD date, as YYYY-MM-DD."""
    return (date.fromisoformat(date_only) + timedelta(days=1)).isoformat()


def reminders_payload(reminder_minutes: ReminderSetting) -> Optional[Dict[str, Any]]:
    """Build the ``reminders`` field for a reminder setting.

    Returns None when the field must be omitted (no preference).
    """
    if reminder_minutes is NO_PREFERENCE:
        return None
    if reminder_minutes is None:
        return {"useDefault": False}
    return {
        "useDefault": False,
        "overrides": [{"method": "popup", "minutes": int(reminder_minutes)}],
    }


def map_task_to_event(
    category: str,
    title: str,
    due: str,
    description: Optional[str] = None,
    time_zone: str = DEFAULT_TIME_ZONE,
    reminder_minutes: ReminderSetting = NO_PREFERENCE,
) -> Dict[str, Any]:
    """Map one task to an insertable calendar event.

    A YYYY-MM-DD due value becomes an all-day event spanning that single day
    (Google's end date is exclusive). Any other value is treated as a fully
    qualified instant and becomes a zero-duration event at that instant.

    Args:
        category: Task category; upper-cased as the summary prefix
        title: Task title
        due: Due value (date-only or ISO date-time)
        description: Optional event description
        time_zone: IANA zone attached to timed events
        reminder_minutes: NO_PREFERENCE, None (no reminder) or minutes before start

    Returns:
        Event body for the Calendar v3 events.insert endpoint
    """
    category_value = category.value if hasattr(category, "value") else str(category)
    event: Dict[str, Any] = {"summary": f"{category_value.upper()}: {title}"}
    if description:
        event["description"] = description

    if is_date_only(due):
        event["start"] = {"date": due}
        event["end"] = {"date": add_one_day(due)}
    else:
        event["start"] = {"dateTime": due, "timeZone": time_zone}
        event["end"] = {"dateTime": due, "timeZone": time_zone}

    reminders = reminders_payload(reminder_minutes)
    if reminders is not None:
        event["reminders"] = reminders
    return event


def sync_category(category: str) -> str:
    """Category used on the calendar; lectures are synced as assignments."""
    if category == TaskCategory.LECTURE:
        return TaskCategory.ASSIGNMENT.value
    return category.value if hasattr(category, "value") else str(category)


def map_task(
    task: Task,
    time_zone: str = DEFAULT_TIME_ZONE,
    reminder_minutes: ReminderSetting = NO_PREFERENCE,
    fallback_due: Optional[str] = None,
) -> Dict[str, Any]:
    """Map a Task record (see map_task_to_event).

    Tasks without a due date are placed on fallback_due (the board shows
    them on the caller's "today").

    Raises:
        ValueError: If the task has no due date and no fallback is given
    """
    due = task.due or fallback_due
    if not due:
        raise ValueError(f"Task {task.id} has no due date to sync")
    return map_task_to_event(
        category=sync_category(task.category),
        title=task.title,
        due=due,
        description=task.notes,
        time_zone=time_zone,
        reminder_minutes=reminder_minutes,
    )
