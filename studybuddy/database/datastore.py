"""Async datastore boundary over the SQL task repository.

Every failure is normalized into DatastoreError here, so callers never see
SQLAlchemy exceptions or other raw error shapes.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from studybuddy.database.repository import TaskRepository
from studybuddy.errors import normalize_datastore_error
from studybuddy.models.task import Task, is_temporary_id
from studybuddy.models.task_factory import new_task_id

logger = logging.getLogger(__name__)


class SqlTaskDatastore:
    """TaskDatastore implementation backed by TaskRepository."""

    def __init__(self, db: Session):
        self.repository = TaskRepository(db)

    def _fail(self, operation: str, e: Exception):
        err = normalize_datastore_error(e)
        logger.error(f"Datastore {operation} failed: {type(e).__name__}: {err}")
        return err

    async def list_tasks(self, user_id: str, today: Optional[date] = None) -> List[Task]:
        try:
            return self.repository.get_all(user_id, today=today)
        except Exception as e:
            raise self._fail("select", e) from e

    async def list_natural_keys(self, user_id: str) -> List[Tuple[str, Optional[str], str]]:
        try:
            return self.repository.list_natural_keys(user_id)
        except Exception as e:
            raise self._fail("select", e) from e

    async def insert_task(self, task: Task) -> Task:
        """Insert a task; a temporary client id is replaced by a new UUID."""
        if is_temporary_id(task.id):
            task = task.model_copy(update={"id": new_task_id()})
        try:
            return self.repository.create(task)
        except Exception as e:
            raise self._fail("insert", e) from e

    async def insert_tasks(self, tasks: List[Task]) -> List[Task]:
        try:
            return self.repository.create_many(tasks)
        except Exception as e:
            raise self._fail("insert", e) from e

    async def update_task(self, user_id: str, task_id: str, fields: Dict[str, Any]) -> Task:
        try:
            return self.repository.update_fields(user_id, task_id, fields)
        except Exception as e:
            raise self._fail("update", e) from e

    async def update_tasks(self, user_id: str, task_ids: List[str], fields: Dict[str, Any]) -> int:
        try:
            return self.repository.update_many(user_id, task_ids, fields)
        except Exception as e:
            raise self._fail("update", e) from e

    async def delete_tasks(self, user_id: str, task_ids: List[str]) -> int:
        try:
            result = self.repository.delete_many(user_id, task_ids)
            return int(result["affected_count"])
        except Exception as e:
            raise self._fail("delete", e) from e
