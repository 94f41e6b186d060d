"""Sync and task-state engine for studybuddy."""

from studybuddy.engine.event_mapper import map_task_to_event, map_task, add_one_day
from studybuddy.engine.status import derive_status, is_task_status
from studybuddy.engine.batch_sync import BatchSyncEngine, SyncOutcome, SyncReport
from studybuddy.engine.dedup import DeduplicationGate, SaveResult, natural_key
from studybuddy.engine.state_store import TaskStateStore, TaskDatastore

__all__ = [
    "map_task_to_event",
    "map_task",
    "add_one_day",
    "derive_status",
    "is_task_status",
    "BatchSyncEngine",
    "SyncOutcome",
    "SyncReport",
    "DeduplicationGate",
    "SaveResult",
    "natural_key",
    "TaskStateStore",
    "TaskDatastore",
]
