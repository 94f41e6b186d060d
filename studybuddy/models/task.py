"""Task data model for studybuddy."""

import re
from datetime import date, datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator


DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TEMP_ID_PREFIX = "tmp-"


class TaskStatus(str, Enum):
    """Task lifecycle status (one board column each)."""
    UPCOMING = "upcoming"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskCategory(str, Enum):
    """Task category enumeration."""
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    LECTURE = "lecture"  # Board-only; synced to the calendar as an assignment


def is_date_only(value: str) -> bool:
    """Return True if value is a pure YYYY-MM-DD calendar date."""
    return bool(value) and DATE_ONLY_PATTERN.match(value) is not None


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant, requiring an explicit UTC offset.

    Raises:
        ValueError: If the value is not ISO-8601 or carries no offset
    """
    normalized = value.strip()
    if normalized.endswith("Z") or normalized.endswith("z"):
        normalized = normalized[:-1] + "+00:00"
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"Due date-time '{value}' has no timezone offset")
    return parsed


def validate_due(value: Optional[str]) -> Optional[str]:
    """Check that a due value is either a calendar date or a timezone-qualified instant.

    Empty strings are treated as "no due date".
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if is_date_only(value):
        # Reject impossible dates such as 2026-02-30
        date.fromisoformat(value)
        return value
    parse_instant(value)
    return value


def due_date_part(value: Optional[str]) -> Optional[str]:
    """Reduce a due value to its calendar-date part (YYYY-MM-DD)."""
    if not value:
        return None
    if is_date_only(value):
        return value
    return value.split("T")[0]


def is_temporary_id(task_id: str) -> bool:
    return task_id.startswith(TEMP_ID_PREFIX)


class Subtask(BaseModel):
    """A derived sub-step of a task."""

    title: str = Field(..., description="Step label")
    eta: str = Field("", description="Estimated time, free text (e.g. '30 min')")


class Task(BaseModel):
    """Canonical Task model."""

    id: str = Field(..., description="Unique task identifier (UUID v4, or tmp- prefixed before first save)")
    user_id: str = Field(..., description="User ID who owns this task")
    title: str = Field(..., description="Task title")
    category: TaskCategory = Field(TaskCategory.ASSIGNMENT, description="Task category")
    status: TaskStatus = Field(TaskStatus.UPCOMING, description="Task lifecycle status")
    due: Optional[str] = Field(
        None,
        description="Due date: YYYY-MM-DD, or an ISO-8601 instant with an explicit offset",
    )
    notes: Optional[str] = Field(None, description="Task notes or description")
    subtasks: List[Subtask] = Field(default_factory=list, description="Ordered derived sub-steps")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp (set iff status is completed)")
    source: str = Field("manual", description="Where the task came from ('syllabus' or 'manual')")
    created_at: datetime = Field(..., description="Task creation timestamp")

    @field_validator("title")
    @classmethod
    def _title_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required.")
        return value

    @field_validator("due")
    @classmethod
    def _due_unambiguous(cls, value: Optional[str]) -> Optional[str]:
        return validate_due(value)

    @model_validator(mode="after")
    def _completion_matches_status(self):
        if self.status == TaskStatus.COMPLETED and self.completed_at is None:
            raise ValueError("completed_at is required when status is completed")
        if self.status != TaskStatus.COMPLETED and self.completed_at is not None:
            raise ValueError("completed_at must be empty unless status is completed")
        return self

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
