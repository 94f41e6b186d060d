"""SQLAlchemy database models for studybuddy."""

from datetime import date, datetime
from typing import Optional, Union, TypeVar
import uuid
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey

from studybuddy.database.database import Base
from studybuddy.engine.status import derive_status
from studybuddy.models.task import TaskCategory, TaskStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def category_from_value(value: Optional[str]) -> TaskCategory:
    """Map a stored category to TaskCategory, treating unknown values as assignments."""
    if not value:
        return TaskCategory.ASSIGNMENT
    try:
        return TaskCategory(value.lower())
    except (ValueError, AttributeError):
        return TaskCategory.ASSIGNMENT


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # User association
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic fields
    title = Column(String, nullable=False)
    category = Column(String, nullable=False, default=TaskCategory.ASSIGNMENT.value)
    # Nullable: rows created before the status column existed are derived on load
    status = Column(String, nullable=True)
    due_date = Column(String, nullable=True, index=True)
    notes = Column(String, nullable=True)
    subtasks = Column(JSON, nullable=True)
    source = Column(String, nullable=False, default="manual")

    # Timestamps
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self, today: Optional[date] = None):
        """Convert database model to Pydantic model.

        Legacy rows without a status get a derived one. The completion
        timestamp is aligned with the resolved status; a stored "completed"
        row without a timestamp uses its creation time.
        """
        from studybuddy.models.task import Task, Subtask

        status = derive_status(
            self.status,
            self.completed_at,
            self.due_date,
            today or date.today(),
        )
        completed_at = None
        if status == TaskStatus.COMPLETED:
            completed_at = self.completed_at or self.created_at

        return Task(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            category=category_from_value(self.category),
            status=status,
            due=self.due_date,
            notes=self.notes,
            subtasks=[Subtask(**s) for s in (self.subtasks or [])],
            completed_at=completed_at,
            source=self.source or "manual",
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        return cls(
            id=task.id,
            user_id=task.user_id,
            title=task.title,
            category=enum_to_value(task.category),
            status=enum_to_value(task.status),
            due_date=task.due,
            notes=task.notes,
            subtasks=[s.model_dump() for s in task.subtasks] or None,
            source=task.source,
            completed_at=task.completed_at,
            created_at=task.created_at,
        )


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    # Primary key (Google user ID)
    id = Column(String, primary_key=True)

    # User profile
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)

    # Encoded reminder preference ("none" or minutes); NULL means default
    reminder_pref = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from studybuddy.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            reminder_pref=self.reminder_pref,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            reminder_pref=user.reminder_pref,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
