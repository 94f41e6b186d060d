"""Working copy of a user's tasks with optimistic updates.

Every mutation follows the same protocol:

1. snapshot the in-memory collection
2. apply the change in memory right away
3. await the durable write
4. on failure restore the snapshot exactly and re-raise the normalized
   error; on success keep the optimistic state (no re-fetch)

Bulk delete is the one exception: tasks leave the view immediately and a
failed durable delete is only reported, never rolled back.

Tasks are never mutated in place; every change replaces the Task object, so
a shallow copy of the list is a complete snapshot.
"""

import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from pydantic import ValidationError

from studybuddy.errors import (
    LocalValidationError,
    StudyBuddyError,
    TaskNotFoundError,
    normalize_datastore_error,
    to_error_message,
)
from studybuddy.engine.status import is_task_status
from studybuddy.models.task import Task, TaskCategory, TaskStatus, is_temporary_id, validate_due
from studybuddy.models.task_factory import create_task_base, new_temporary_id, with_status

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskDatastore(Protocol):
    """Durable store for task records (see database.datastore.SqlTaskDatastore)."""

    async def list_tasks(self, user_id: str, today: Optional[date] = None) -> List[Task]:
        ...

    async def insert_task(self, task: Task) -> Task:
        ...

    async def update_task(self, user_id: str, task_id: str, fields: Dict[str, Any]) -> Task:
        ...

    async def update_tasks(self, user_id: str, task_ids: List[str], fields: Dict[str, Any]) -> int:
        ...

    async def delete_tasks(self, user_id: str, task_ids: List[str]) -> int:
        ...


def _validation_message(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    message = str(errors[0].get("msg", e))
    # pydantic prefixes custom ValueError messages
    return message.replace("Value error, ", "", 1)


class TaskStateStore:
    """Client-held task collection plus the optimistic update/rollback discipline."""

    def __init__(
        self,
        datastore: TaskDatastore,
        user_id: str,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.datastore = datastore
        self.user_id = user_id
        self._today = today
        self._now = now
        self._tasks: List[Task] = []
        self.loaded = False
        self.status_message: Optional[str] = None

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def snapshot(self) -> List[Task]:
        return list(self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if is_temporary_id(task.id):
            raise LocalValidationError("Task is still being saved.")
        return task

    def _replace(self, tasks: List[Task], task_id: str, new_task: Task) -> List[Task]:
        return [new_task if t.id == task_id else t for t in tasks]

    async def _optimistic(
        self,
        apply: Callable[[List[Task]], List[Task]],
        write: Callable[[], Awaitable[T]],
        failure_message: str,
    ) -> T:
        snapshot = self.snapshot()
        self.status_message = None
        self._tasks = apply(snapshot)
        try:
            return await write()
        except Exception as e:
            self._tasks = snapshot
            err = e if isinstance(e, StudyBuddyError) else normalize_datastore_error(e)
            self.status_message = to_error_message(err) or failure_message
            logger.error(f"Rolled back optimistic change for user {self.user_id}: {type(e).__name__}")
            if err is e:
                raise
            raise err from e

    async def load(self) -> List[Task]:
        """Replace the working copy with the durable tasks (status derived for legacy rows)."""
        self.status_message = None
        try:
            tasks = await self.datastore.list_tasks(self.user_id, today=self._today())
        except Exception as e:
            err = e if isinstance(e, StudyBuddyError) else normalize_datastore_error(e)
            self.status_message = to_error_message(err) or "Failed to load tasks."
            if err is e:
                raise
            raise err from e
        self._tasks = list(tasks)
        self.loaded = True
        return self.tasks

    async def set_status(self, task_id: str, status: str) -> Task:
        """Move a task to a status (explicit selection)."""
        if not is_task_status(status):
            raise LocalValidationError(f"Unknown status '{status}'")
        status = TaskStatus(status).value
        task = self._require(task_id)
        if task.status == status:
            return task
        updated = with_status(task, status, self._now())

        async def write():
            await self.datastore.update_task(
                self.user_id,
                task_id,
                {"status": updated.status, "completed_at": updated.completed_at},
            )
            return updated

        return await self._optimistic(
            lambda tasks: self._replace(tasks, task_id, updated),
            write,
            "Update failed.",
        )

    async def move(self, task_id: str, column: Optional[str]) -> Optional[Task]:
        """Handle a card dropped on a board column.

        Dropping outside a column, on an unknown column, or on the card's own
        column does nothing and returns None.
        """
        if not column or not is_task_status(column):
            return None
        task = self.get(task_id)
        if task is None or task.status == column:
            return None
        return await self.set_status(task_id, column)

    async def toggle_complete(self, task_id: str) -> Task:
        """Mark complete, or reopen a completed task as upcoming."""
        task = self._require(task_id)
        if task.status == TaskStatus.COMPLETED:
            return await self.set_status(task_id, TaskStatus.UPCOMING.value)
        return await self.set_status(task_id, TaskStatus.COMPLETED.value)

    async def edit(
        self,
        task_id: str,
        title: str,
        category: str,
        due: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Task:
        """Full edit of title, category, due date and notes.

        Raises:
            LocalValidationError: Empty title, unknown category, or ambiguous due value
        """
        trimmed = (title or "").strip()
        if not trimmed:
            raise LocalValidationError("Title is required.")
        try:
            category_value = TaskCategory(category).value
            due_value = validate_due(due)
        except ValueError as e:
            raise LocalValidationError(str(e)) from e
        task = self._require(task_id)
        notes_value = notes.strip() if notes else None
        updated = task.model_copy(
            update={
                "title": trimmed,
                "category": category_value,
                "due": due_value,
                "notes": notes_value or None,
            }
        )

        async def write():
            await self.datastore.update_task(
                self.user_id,
                task_id,
                {"title": trimmed, "category": category_value, "due": due_value, "notes": notes_value or None},
            )
            return updated

        return await self._optimistic(
            lambda tasks: self._replace(tasks, task_id, updated),
            write,
            "Update failed.",
        )

    async def create(
        self,
        title: str,
        category: str = TaskCategory.ASSIGNMENT.value,
        status: str = TaskStatus.UPCOMING.value,
        due: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Task:
        """Manually add a task.

        The task appears at once under a temporary id, which is swapped for
        the datastore id when the insert succeeds.
        """
        try:
            draft = create_task_base(
                user_id=self.user_id,
                title=title or "",
                category=TaskCategory(category),
                status=TaskStatus(status),
                due=due,
                notes=notes,
                task_id=new_temporary_id(),
            )
        except ValidationError as e:
            raise LocalValidationError(_validation_message(e)) from e
        except ValueError as e:
            raise LocalValidationError(str(e)) from e

        async def write():
            saved = await self.datastore.insert_task(draft)
            self._tasks = self._replace(self._tasks, draft.id, saved)
            return saved

        return await self._optimistic(
            lambda tasks: tasks + [draft],
            write,
            "Failed to add task.",
        )

    async def bulk_complete(self, task_ids: Sequence[str]) -> List[Task]:
        """Mark several tasks completed in one durable write; all-or-nothing rollback."""
        wanted = set(task_ids)
        now = self._now()
        targets = [
            t for t in self._tasks
            if t.id in wanted and t.status != TaskStatus.COMPLETED and not is_temporary_id(t.id)
        ]
        if not targets:
            return []
        updated = {t.id: with_status(t, TaskStatus.COMPLETED.value, now) for t in targets}

        async def write():
            await self.datastore.update_tasks(
                self.user_id,
                list(updated),
                {"status": TaskStatus.COMPLETED.value, "completed_at": now},
            )
            return list(updated.values())

        return await self._optimistic(
            lambda tasks: [updated.get(t.id, t) for t in tasks],
            write,
            "Bulk update failed.",
        )

    async def bulk_delete(self, task_ids: Sequence[str]) -> int:
        """Remove tasks from view immediately, then delete them durably.

        A failed delete is reported through status_message only; the tasks
        stay removed from the working copy.

        Returns:
            Number of rows deleted (0 when the durable delete failed)
        """
        ids = [i for i in dict.fromkeys(task_ids) if not is_temporary_id(i)]
        if not ids:
            return 0
        self.status_message = None
        removed = set(ids)
        self._tasks = [t for t in self._tasks if t.id not in removed]
        try:
            deleted = await self.datastore.delete_tasks(self.user_id, ids)
        except Exception as e:
            err = e if isinstance(e, StudyBuddyError) else normalize_datastore_error(e)
            self.status_message = to_error_message(err) or "Bulk delete failed."
            logger.error(f"Bulk delete of {len(ids)} tasks failed for user {self.user_id}: {type(e).__name__}")
            return 0
        logger.debug(f"Deleted {deleted} tasks for user {self.user_id}")
        return deleted
