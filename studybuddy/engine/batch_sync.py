"""Batch synchronization of tasks to Google Calendar.

A fixed pool of asyncio workers pulls items from a shared cursor and
dispatches them one at a time, which bounds the number of in-flight
requests against the calendar quota. Results are written by input index,
so ``outcomes[i]`` always belongs to ``events[i]`` regardless of completion
order. One item failing never cancels its siblings; unexpected exceptions
are stored as UpstreamError in that item's outcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from studybuddy.engine.event_mapper import map_task
from studybuddy.errors import CredentialMissingError, StudyBuddyError, UpstreamError, to_error_message
from studybuddy.models.constants import DEFAULT_TIME_ZONE, SYNC_CONCURRENCY
from studybuddy.models.reminder import NO_PREFERENCE, ReminderSetting
from studybuddy.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


class EventDispatcher(Protocol):
    """Anything that can create one remote event (see GoogleCalendarClient)."""

    async def create_event(self, event_body: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class SyncOutcome:
    """Result slot for one item of a sync batch."""

    index: int
    task_id: Optional[str] = None
    event: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.event is not None

    @property
    def error_message(self) -> Optional[str]:
        return to_error_message(self.error) if self.error is not None else None


@dataclass
class SyncReport:
    """Per-item outcomes of a sync batch plus aggregate counts."""

    outcomes: List[SyncOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def synced_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def message(self) -> str:
        if not self.outcomes:
            return "No events to sync."
        if not self.failed:
            return f"Synced {self.synced_count} events to Google Calendar."
        first = self.failed[0].error_message or "Sync failed."
        return f"Synced {self.synced_count} of {self.total} events to Google Calendar. First error: {first}"

    def raise_for_failures(self) -> None:
        """Re-raise the first failure in input order (all-or-nothing callers)."""
        for outcome in self.outcomes:
            if outcome.error is not None:
                raise outcome.error


class BatchSyncEngine:
    """Fan a list of events out to a dispatcher through a bounded worker pool."""

    def __init__(self, dispatcher: Optional[EventDispatcher], concurrency: int = SYNC_CONCURRENCY):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.dispatcher = dispatcher
        self.concurrency = concurrency

    async def run(
        self,
        events: Sequence[Dict[str, Any]],
        task_ids: Optional[Sequence[Optional[str]]] = None,
    ) -> List[SyncOutcome]:
        """Dispatch every event; return one outcome per input, in input order.

        Raises:
            CredentialMissingError: If no dispatcher (credential) was supplied
        """
        if not events:
            return []
        if self.dispatcher is None:
            raise CredentialMissingError()

        outcomes = [
            SyncOutcome(index=i, task_id=task_ids[i] if task_ids else None)
            for i in range(len(events))
        ]
        cursor = 0

        async def worker() -> None:
            nonlocal cursor
            while True:
                i = cursor
                cursor += 1
                if i >= len(events):
                    return
                try:
                    outcomes[i].event = await self.dispatcher.create_event(events[i])
                except Exception as e:
                    logger.error(f"Sync item {i} failed: {type(e).__name__}: {str(e)[:200]}")
                    if isinstance(e, StudyBuddyError):
                        outcomes[i].error = e
                    else:
                        err = UpstreamError(to_error_message(e))
                        err.__cause__ = e
                        outcomes[i].error = err

        workers = [worker() for _ in range(min(self.concurrency, len(events)))]
        await asyncio.gather(*workers)
        logger.debug(
            f"Sync batch finished: {sum(1 for o in outcomes if o.ok)}/{len(outcomes)} succeeded"
        )
        return outcomes

    async def sync_tasks(
        self,
        tasks: Sequence[Task],
        reminder_minutes: ReminderSetting = NO_PREFERENCE,
        time_zone: str = DEFAULT_TIME_ZONE,
        fallback_due: Optional[str] = None,
    ) -> SyncReport:
        """Map and sync every task that is not completed.

        Args:
            tasks: Candidate tasks; completed ones are skipped
            reminder_minutes: Reminder setting applied to the whole batch
            time_zone: Zone attached to timed events
            fallback_due: Date used for tasks that have no due date

        Returns:
            SyncReport with one outcome per synced task
        """
        open_tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
        events = [
            map_task(t, time_zone=time_zone, reminder_minutes=reminder_minutes, fallback_due=fallback_due)
            for t in open_tasks
        ]
        outcomes = await self.run(events, task_ids=[t.id for t in open_tasks])
        return SyncReport(outcomes=outcomes)
