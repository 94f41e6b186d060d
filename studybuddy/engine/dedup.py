"""Idempotent saving of extracted syllabus events.

Before inserting, every candidate is keyed by (title, due date, category)
and dropped if a task with the same key already exists for the user. Titles
are compared exactly, so an extractor that rewords a title on a second run
will produce a second task.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from studybuddy.errors import LocalValidationError
from studybuddy.models.syllabus import ParsedEvent
from studybuddy.models.task import Task, due_date_part
from studybuddy.models.task_factory import task_from_parsed_event

logger = logging.getLogger(__name__)

NaturalKey = Tuple[str, Optional[str], str]


class DedupDatastore(Protocol):
    async def list_natural_keys(self, user_id: str) -> List[NaturalKey]:
        ...

    async def insert_tasks(self, tasks: List[Task]) -> List[Task]:
        ...


def natural_key(title: str, due: Optional[str], category: str) -> NaturalKey:
    """Composite key used to detect duplicate tasks.

    Date-times are reduced to their date part because that is what the
    datastore keeps for extracted events.
    """
    category_value = category.value if hasattr(category, "value") else str(category)
    return (title, due_date_part(due), category_value)


@dataclass
class SaveResult:
    """Outcome of saving an extraction result."""

    inserted: List[Task] = field(default_factory=list)
    skipped: int = 0

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def message(self) -> str:
        if not self.inserted and self.skipped:
            return f"Nothing new to save ({self.skipped} already saved)."
        if self.skipped:
            return f"Saved {self.inserted_count} tasks ({self.skipped} duplicates skipped)."
        return f"Saved {self.inserted_count} tasks."


class DeduplicationGate:
    """Filters extracted events against already-persisted tasks."""

    def __init__(self, datastore: DedupDatastore):
        self.datastore = datastore

    async def filter_new(self, user_id: str, candidates: Sequence[Task]) -> Tuple[List[Task], int]:
        """Split candidates into new tasks and a count of duplicates.

        Candidates that repeat an earlier candidate in the same list are also
        counted as duplicates.
        """
        existing: Set[NaturalKey] = {
            natural_key(title, due, category)
            for title, due, category in await self.datastore.list_natural_keys(user_id)
        }
        fresh: List[Task] = []
        skipped = 0
        for task in candidates:
            key = natural_key(task.title, task.due, task.category)
            if key in existing:
                skipped += 1
                continue
            existing.add(key)
            fresh.append(task)
        return fresh, skipped

    async def save_extracted(self, user_id: str, events: Iterable[ParsedEvent]) -> SaveResult:
        """Insert extracted events that are not already saved.

        Raises:
            LocalValidationError: If an event cannot become a task (bad date)
            DatastoreError: If reading existing keys or inserting fails
        """
        try:
            candidates = [task_from_parsed_event(user_id, event) for event in events]
        except ValueError as e:
            raise LocalValidationError(f"Invalid event: {e}") from e
        fresh, skipped = await self.filter_new(user_id, candidates)
        inserted = await self.datastore.insert_tasks(fresh) if fresh else []
        logger.debug(f"Saved {len(inserted)} extracted tasks for user {user_id}, skipped {skipped}")
        return SaveResult(inserted=inserted, skipped=skipped)
