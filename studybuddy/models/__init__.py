"""Data models for studybuddy."""

from studybuddy.models.task import Task, TaskStatus, TaskCategory, Subtask
from studybuddy.models.syllabus import ParsedEvent, ParsedEventType, ParsedSyllabus, SyllabusSummary
from studybuddy.models.reminder import NO_PREFERENCE, ReminderMinutes, ReminderSetting

__all__ = [
    "Task",
    "TaskStatus",
    "TaskCategory",
    "Subtask",
    "ParsedEvent",
    "ParsedEventType",
    "ParsedSyllabus",
    "SyllabusSummary",
    "NO_PREFERENCE",
    "ReminderMinutes",
    "ReminderSetting",
]
