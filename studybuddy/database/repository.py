"""Repository layer for database operations."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Set
from sqlalchemy.orm import Session
from sqlalchemy import asc

from studybuddy.models.task import Task
from studybuddy.database.models import TaskDB, enum_to_value

logger = logging.getLogger(__name__)

# Columns callers may change through update_fields()
UPDATABLE_FIELDS = {
    "title": "title",
    "category": "category",
    "status": "status",
    "due": "due_date",
    "notes": "notes",
    "completed_at": "completed_at",
    "subtasks": "subtasks",
}


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _as_unique_ids(self, task_ids: List[str]) -> List[str]:
        """Deduplicate while preserving order."""
        seen: Set[str] = set()
        unique: List[str] = []
        for task_id in task_ids:
            if task_id not in seen:
                seen.add(task_id)
                unique.append(task_id)
        return unique

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def create_many(self, tasks: List[Task]) -> List[Task]:
        """Insert several tasks in one commit."""
        if not tasks:
            return []
        try:
            rows = [TaskDB.from_pydantic(task) for task in tasks]
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
            logger.debug(f"Created {len(rows)} tasks for user {tasks[0].user_id}")
            return [row.to_pydantic() for row in rows]
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create {len(tasks)} tasks: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, task_id: str, today: Optional[date] = None) -> Optional[Task]:
        """Get task by ID for a specific user."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        return task_db.to_pydantic(today) if task_db else None

    def get_all(self, user_id: str, today: Optional[date] = None) -> List[Task]:
        """Get all tasks for a user sorted by due date (soonest first, undated last)."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
        ).order_by(asc(TaskDB.due_date).nulls_last(), asc(TaskDB.created_at)).all()
        return [task_db.to_pydantic(today) for task_db in tasks_db]

    def update_fields(self, user_id: str, task_id: str, fields: Dict[str, Any]) -> Task:
        """Update selected columns of a task.

        Args:
            user_id: Owner of the task
            task_id: Task to update
            fields: Mapping of Task field name -> new value (see UPDATABLE_FIELDS)

        Raises:
            ValueError: If the task is missing or a field is not updatable
        """
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        if not task_db:
            raise ValueError(f"Task {task_id} not found")

        for name, value in fields.items():
            column = UPDATABLE_FIELDS.get(name)
            if column is None:
                raise ValueError(f"Field '{name}' cannot be updated")
            if name in ("category", "status") and value is not None:
                value = enum_to_value(value)
            setattr(task_db, column, value)

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task_id}: {sorted(fields)}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def update_many(self, user_id: str, task_ids: List[str], fields: Dict[str, Any]) -> int:
        """Apply the same column values to several tasks in one statement."""
        unique_ids = self._as_unique_ids(task_ids)
        if not unique_ids:
            return 0
        values = {}
        for name, value in fields.items():
            column = UPDATABLE_FIELDS.get(name)
            if column is None:
                raise ValueError(f"Field '{name}' cannot be updated")
            if name in ("category", "status") and value is not None:
                value = enum_to_value(value)
            values[getattr(TaskDB, column)] = value
        try:
            affected = (
                self.db.query(TaskDB)
                .filter(TaskDB.user_id == user_id, TaskDB.id.in_(unique_ids))
                .update(values, synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Updated {affected} tasks for user {user_id}")
            return int(affected)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to bulk update tasks for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_many(self, user_id: str, task_ids: List[str]) -> Dict[str, object]:
        """Permanently delete multiple tasks for a user."""
        unique_ids = self._as_unique_ids(task_ids)
        if not unique_ids:
            return {"affected_count": 0, "not_found_ids": []}

        existing_ids = {
            row[0]
            for row in self.db.query(TaskDB.id).filter(
                TaskDB.user_id == user_id,
                TaskDB.id.in_(unique_ids),
            ).all()
        }
        not_found_ids = [task_id for task_id in unique_ids if task_id not in existing_ids]

        try:
            affected = (
                self.db.query(TaskDB)
                .filter(
                    TaskDB.user_id == user_id,
                    TaskDB.id.in_(list(existing_ids)),
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Deleted {affected} tasks for user {user_id}")
            return {"affected_count": int(affected), "not_found_ids": not_found_ids}
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to bulk delete tasks for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def list_natural_keys(self, user_id: str) -> List[tuple]:
        """Return (title, due_date, category) for every task of a user."""
        rows = self.db.query(TaskDB.title, TaskDB.due_date, TaskDB.category).filter(
            TaskDB.user_id == user_id,
        ).all()
        return [(row[0], row[1], row[2]) for row in rows]
