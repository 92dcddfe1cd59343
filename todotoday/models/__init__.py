"""Pydantic models (schemas) for the application."""

from todotoday.models.enums import (
    ChangeType,
    Collection,
    RecurrenceFrequency,
    SyncState,
    TaskPriority,
)
from todotoday.models.recurrence import RecurrencePattern
from todotoday.models.task import Subtask, Task, TaskCreate, TaskOccurrence, TaskUpdate
from todotoday.models.event import Event, EventCreate, EventOccurrence, EventUpdate
from todotoday.models.journal import JournalEntry
from todotoday.models.project import Project, ProjectUpdate
from todotoday.models.sync import LocalChange, RemoteChange, SyncRecord

__all__ = [
    # Enums
    "ChangeType",
    "Collection",
    "RecurrenceFrequency",
    "SyncState",
    "TaskPriority",
    # Recurrence
    "RecurrencePattern",
    # Task
    "Subtask",
    "Task",
    "TaskCreate",
    "TaskOccurrence",
    "TaskUpdate",
    # Event
    "Event",
    "EventCreate",
    "EventOccurrence",
    "EventUpdate",
    # Journal / Project
    "JournalEntry",
    "Project",
    "ProjectUpdate",
    # Sync
    "LocalChange",
    "RemoteChange",
    "SyncRecord",
]
