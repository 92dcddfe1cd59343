"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class RecurrenceFrequency(str, Enum):
    """Recurrence frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskPriority(str, Enum):
    """Optional priority flag on a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Collection(str, Enum):
    """
    The four synchronized collections.

    TASKS, EVENTS and PROJECTS are lists keyed by id;
    JOURNAL is a mapping keyed by date.
    """

    TASKS = "tasks"
    EVENTS = "events"
    JOURNAL = "journal"
    PROJECTS = "projects"


class ChangeType(str, Enum):
    """Kind of change carried by a local mutation or a remote notification."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SyncState(str, Enum):
    """
    Per-collection synchronization state.

    UNSYNCED -> LOADING -> MERGING -> SYNCED, then SYNCED while live updates flow.
    """

    UNSYNCED = "unsynced"
    LOADING = "loading"
    MERGING = "merging"
    SYNCED = "synced"
