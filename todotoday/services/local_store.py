"""
Local store.

The single owner of the task, event, journal and project collections. Each
collection is held in memory and mirrored to the durable key-value layer on
every mutation, before the in-memory state changes, so a failed write leaves
both sides as they were and the error reaches the caller.

User mutations are reported to listeners as LocalChange records (this is how
the sync engine learns what to push). Snapshot replacement and remote-origin
changes are applied silently.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from todotoday.core.config import get_settings
from todotoday.core.exceptions import InfrastructureError, NotFoundError, ValidationError
from todotoday.core.logger import setup_logger
from todotoday.interfaces.key_value_store import IKeyValueStore
from todotoday.models.enums import ChangeType, Collection
from todotoday.models.event import Event, EventCreate, EventOccurrence, EventUpdate
from todotoday.models.journal import JournalEntry
from todotoday.models.project import Project, ProjectUpdate
from todotoday.models.sync import LocalChange, RemoteChange, SyncRecord, is_newer, record_key
from todotoday.models.task import Task, TaskCreate, TaskOccurrence, TaskUpdate
from todotoday.utils.datetime_utils import format_date, now_utc

logger = setup_logger(__name__)

StoreListener = Callable[[LocalChange], None]

RECORD_TYPES: dict[Collection, type] = {
    Collection.TASKS: Task,
    Collection.EVENTS: Event,
    Collection.JOURNAL: JournalEntry,
    Collection.PROJECTS: Project,
}


@dataclass
class StoreSnapshot:
    """Point-in-time copy of all four collections."""

    tasks: list[Task] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    journal: dict[str, JournalEntry] = field(default_factory=dict)
    projects: list[Project] = field(default_factory=list)

    def records(self, collection: Collection) -> list[SyncRecord]:
        if collection == Collection.JOURNAL:
            return list(self.journal.values())
        return list(getattr(self, collection.value))


class LocalStore:
    """In-memory collections mirrored to a durable key-value layer."""

    def __init__(
        self,
        kv_store: IKeyValueStore,
        key_prefix: Optional[str] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        prefix = key_prefix or get_settings().STORAGE_KEY_PREFIX
        self._kv = kv_store
        self._clock = clock
        self._keys = {collection: f"{prefix}_{collection.value}" for collection in Collection}
        self._tasks: list[Task] = []
        self._events: list[Event] = []
        self._journal: dict[str, JournalEntry] = {}
        self._projects: list[Project] = []
        self._listeners: list[StoreListener] = []

    # ===========================================
    # Read access
    # ===========================================

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    @property
    def journal(self) -> dict[str, JournalEntry]:
        return dict(self._journal)

    @property
    def projects(self) -> list[Project]:
        return list(self._projects)

    def key_for(self, collection: Collection) -> str:
        return self._keys[collection]

    # ===========================================
    # Persistence
    # ===========================================

    def load(self) -> None:
        """
        Load all four collections from the durable layer.

        Missing keys mean empty collections. Completed tasks saved before
        completedAt existed get their createdAt as completion time.

        Raises:
            InfrastructureError: If a stored blob cannot be read or decoded
        """
        try:
            tasks = [Task.model_validate(item) for item in self._read(Collection.TASKS, [])]
            events = [Event.model_validate(item) for item in self._read(Collection.EVENTS, [])]
            journal = {
                key: JournalEntry.model_validate(item)
                for key, item in self._read(Collection.JOURNAL, {}).items()
            }
            projects = [
                Project.model_validate(item) for item in self._read(Collection.PROJECTS, [])
            ]
        except PydanticValidationError as e:
            raise InfrastructureError("Stored collections failed validation", details=e.errors()) from e

        backfilled = False
        for index, task in enumerate(tasks):
            if task.completed and task.completed_at is None:
                tasks[index] = task.model_copy(update={"completed_at": task.created_at})
                backfilled = True

        if backfilled:
            self._write(Collection.TASKS, tasks)
        self._tasks, self._events, self._journal, self._projects = tasks, events, journal, projects
        logger.info(
            "Loaded %d tasks, %d events, %d journal entries, %d projects",
            len(tasks),
            len(events),
            len(journal),
            len(projects),
        )

    def _read(self, collection: Collection, default: Any) -> Any:
        key = self._keys[collection]
        blob = self._kv.get(key)
        if blob is None:
            return default
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise InfrastructureError(f"Corrupt data under {key}: {e}") from e
        if not isinstance(data, type(default)):
            raise InfrastructureError(f"Unexpected data shape under {key}")
        return data

    def _write(self, collection: Collection, value: Union[list, dict]) -> None:
        if isinstance(value, dict):
            payload = {key: record.to_json_dict() for key, record in value.items()}
        else:
            payload = [record.to_json_dict() for record in value]
        self._kv.set(self._keys[collection], json.dumps(payload, separators=(",", ":")))

    def _commit(self, collection: Collection, value: Union[list, dict]) -> None:
        # Durable write first; memory only changes once it succeeded
        self._write(collection, value)
        self._assign(collection, value)

    def _current(self, collection: Collection) -> Union[list, dict]:
        return getattr(self, f"_{collection.value}")

    def _assign(self, collection: Collection, value: Union[list, dict]) -> None:
        if collection == Collection.TASKS:
            self._tasks = value
        elif collection == Collection.EVENTS:
            self._events = value
        elif collection == Collection.JOURNAL:
            self._journal = value
        else:
            self._projects = value

    # ===========================================
    # Change listeners
    # ===========================================

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(
        self,
        collection: Collection,
        change_type: ChangeType,
        record_id: str,
        record: Optional[SyncRecord] = None,
    ) -> None:
        change = LocalChange(
            collection=collection, type=change_type, record_id=record_id, record=record
        )
        for listener in list(self._listeners):
            listener(change)

    # ===========================================
    # Helpers
    # ===========================================

    @staticmethod
    def _index_of(records: Sequence[Union[Task, Event, Project]], record_id: str) -> int:
        for index, record in enumerate(records):
            if record.id == record_id:
                return index
        return -1

    def _require_index(self, records, record_id: str, kind: str) -> int:
        index = self._index_of(records, record_id)
        if index < 0:
            raise NotFoundError(f"{kind} {record_id} not found")
        return index

    @staticmethod
    def _reject_occurrence(record_id: str, record: object) -> None:
        if isinstance(record, (TaskOccurrence, EventOccurrence)):
            raise ValidationError(
                f"{record_id} is a projected occurrence; update its template instead",
                details={"template_id": record.template_id},
            )

    @staticmethod
    def _merge(record, update, **extra):
        """Apply a field mask: explicitly set fields overwrite, unset ones are kept."""
        data = record.model_dump()
        data.update(update.model_dump(exclude_unset=True))
        data.update(extra)
        try:
            return type(record).model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid update for {record.id}", details=e.errors()) from e

    # ===========================================
    # Tasks
    # ===========================================

    def get_task(self, task_id: str) -> Optional[Task]:
        index = self._index_of(self._tasks, task_id)
        return self._tasks[index] if index >= 0 else None

    def add_task(self, data: TaskCreate) -> Task:
        """Create a task at the end of the manual order."""
        now = self._clock()
        task = Task(
            id=str(uuid4()),
            text=data.text,
            due_date=data.due_date,
            priority=data.priority,
            recurrence=data.recurrence,
            subtasks=[s for s in data.subtasks if s.text.strip()],
            order=len(self._tasks),
            created_at=now,
            updated_at=now,
        )
        self._commit(Collection.TASKS, [*self._tasks, task])
        self._notify(Collection.TASKS, ChangeType.INSERT, task.id, task)
        return task

    def update_task(
        self, task_id: str, update: TaskUpdate, instance_date: Optional[date] = None
    ) -> Task:
        """
        Merge `update` into a task template and restamp updated_at.

        When `completed` is set: a recurring template records the completion of
        one occurrence in completed_dates (instance_date, defaulting to the
        anchor due_date) and keeps its own completed flag; any other task sets
        completed and stamps or clears completed_at on a state change.
        """
        index = self._require_index(self._tasks, task_id, "Task")
        task = self._tasks[index]
        now = self._clock()

        extra: dict[str, Any] = {"updated_at": now}
        completed = update.completed
        if completed is not None:
            recurrence = update.recurrence if "recurrence" in update.model_fields_set else task.recurrence
            day = instance_date or task.due_date
            if recurrence is not None and day is not None:
                dates = list(
                    update.completed_dates
                    if update.completed_dates is not None
                    else task.completed_dates
                )
                if completed and day not in dates:
                    dates.append(day)
                elif not completed:
                    dates = [d for d in dates if d != day]
                extra["completed_dates"] = dates
                extra["completed"] = task.completed
            else:
                if completed and not task.completed:
                    extra["completed_at"] = now
                elif not completed and task.completed:
                    extra["completed_at"] = None

        updated = self._merge(task, update, **extra)
        tasks = list(self._tasks)
        tasks[index] = updated
        self._commit(Collection.TASKS, tasks)
        self._notify(Collection.TASKS, ChangeType.UPDATE, updated.id, updated)
        return updated

    def delete_task(self, task_id: str) -> bool:
        """Delete a task template; its occurrences disappear with it."""
        index = self._index_of(self._tasks, task_id)
        if index < 0:
            return False
        tasks = list(self._tasks)
        del tasks[index]
        self._commit(Collection.TASKS, tasks)
        self._notify(Collection.TASKS, ChangeType.DELETE, task_id)
        return True

    def reorder_tasks(self, ordered: Sequence[Task]) -> list[Task]:
        """
        Assign `order` = position for every task in `ordered`.

        Occurrences count as their template. Tasks missing from `ordered` keep
        their relative order after the supplied ones.
        """
        ids: list[str] = []
        for task in ordered:
            template_id = task.template_id
            if template_id not in ids:
                self._require_index(self._tasks, template_id, "Task")
                ids.append(template_id)
        by_id = {task.id: task for task in self._tasks}
        rest = [task for task in sorted(self._tasks, key=lambda t: t.order) if task.id not in ids]
        sequence = [by_id[task_id] for task_id in ids] + rest

        now = self._clock()
        reordered: list[Task] = []
        changed: list[Task] = []
        for position, task in enumerate(sequence):
            if task.order != position:
                task = task.model_copy(update={"order": position, "updated_at": now})
                changed.append(task)
            reordered.append(task)

        self._commit(Collection.TASKS, reordered)
        for task in changed:
            self._notify(Collection.TASKS, ChangeType.UPDATE, task.id, task)
        return list(reordered)

    def clear_completed(self) -> int:
        """Delete every completed (non-recurring) task. Returns how many were removed."""
        removed = [task for task in self._tasks if task.completed]
        if not removed:
            return 0
        self._commit(Collection.TASKS, [task for task in self._tasks if not task.completed])
        for task in removed:
            self._notify(Collection.TASKS, ChangeType.DELETE, task.id)
        return len(removed)

    # ===========================================
    # Events
    # ===========================================

    def get_event(self, event_id: str) -> Optional[Event]:
        index = self._index_of(self._events, event_id)
        return self._events[index] if index >= 0 else None

    def add_event(self, data: EventCreate) -> Event:
        now = self._clock()
        event = Event(**data.model_dump(), id=str(uuid4()), created_at=now, updated_at=now)
        self._commit(Collection.EVENTS, [*self._events, event])
        self._notify(Collection.EVENTS, ChangeType.INSERT, event.id, event)
        return event

    def update_event(self, event_id: str, update: EventUpdate) -> Event:
        index = self._require_index(self._events, event_id, "Event")
        updated = self._merge(self._events[index], update, updated_at=self._clock())
        events = list(self._events)
        events[index] = updated
        self._commit(Collection.EVENTS, events)
        self._notify(Collection.EVENTS, ChangeType.UPDATE, updated.id, updated)
        return updated

    def delete_event(self, event_id: str) -> bool:
        index = self._index_of(self._events, event_id)
        if index < 0:
            return False
        events = list(self._events)
        del events[index]
        self._commit(Collection.EVENTS, events)
        self._notify(Collection.EVENTS, ChangeType.DELETE, event_id)
        return True

    # ===========================================
    # Journal
    # ===========================================

    def save_journal_entry(self, day: date, content: str) -> JournalEntry:
        """Create or overwrite the entry for a day."""
        entry = JournalEntry(date=day, content=content, updated_at=self._clock())
        journal = dict(self._journal)
        journal[entry.key] = entry
        self._commit(Collection.JOURNAL, journal)
        self._notify(Collection.JOURNAL, ChangeType.UPDATE, entry.key, entry)
        return entry

    def get_journal_entry(self, day: date) -> Optional[JournalEntry]:
        return self._journal.get(format_date(day))

    def get_all_journal_entries(self) -> list[JournalEntry]:
        """All entries, most recent day first."""
        return sorted(self._journal.values(), key=lambda entry: entry.date, reverse=True)

    def delete_journal_entry(self, day: date) -> bool:
        key = format_date(day)
        if key not in self._journal:
            return False
        journal = dict(self._journal)
        del journal[key]
        self._commit(Collection.JOURNAL, journal)
        self._notify(Collection.JOURNAL, ChangeType.DELETE, key)
        return True

    # ===========================================
    # Projects
    # ===========================================

    def get_project(self, project_id: str) -> Optional[Project]:
        index = self._index_of(self._projects, project_id)
        return self._projects[index] if index >= 0 else None

    def get_all_projects(self) -> list[Project]:
        """All projects, most recently updated first."""
        return sorted(self._projects, key=lambda project: project.updated_at, reverse=True)

    def add_project(self, name: str) -> Project:
        now = self._clock()
        project = Project(
            id=str(uuid4()),
            name=name.strip() or "Untitled Project",
            created_at=now,
            updated_at=now,
        )
        self._commit(Collection.PROJECTS, [*self._projects, project])
        self._notify(Collection.PROJECTS, ChangeType.INSERT, project.id, project)
        return project

    def update_project(self, project_id: str, update: ProjectUpdate) -> Project:
        index = self._require_index(self._projects, project_id, "Project")
        updated = self._merge(self._projects[index], update, updated_at=self._clock())
        projects = list(self._projects)
        projects[index] = updated
        self._commit(Collection.PROJECTS, projects)
        self._notify(Collection.PROJECTS, ChangeType.UPDATE, updated.id, updated)
        return updated

    def save_project_content(self, project_id: str, content: str) -> Project:
        return self.update_project(project_id, ProjectUpdate(content=content))

    def delete_project(self, project_id: str) -> bool:
        index = self._index_of(self._projects, project_id)
        if index < 0:
            return False
        projects = list(self._projects)
        del projects[index]
        self._commit(Collection.PROJECTS, projects)
        self._notify(Collection.PROJECTS, ChangeType.DELETE, project_id)
        return True

    # ===========================================
    # Synchronization hooks (no listener notifications)
    # ===========================================

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            tasks=list(self._tasks),
            events=list(self._events),
            journal=dict(self._journal),
            projects=list(self._projects),
        )

    def replace_all(self, snapshot: StoreSnapshot) -> None:
        """
        Replace every collection with a merged snapshot, all or nothing.

        If one durable write fails, the collections already written are
        rewritten with their previous contents and memory is left untouched.

        Raises:
            InfrastructureError: If a durable write fails
        """
        for record in [*snapshot.tasks, *snapshot.events]:
            self._reject_occurrence(record.id, record)
        values = {
            Collection.TASKS: list(snapshot.tasks),
            Collection.EVENTS: list(snapshot.events),
            Collection.JOURNAL: dict(snapshot.journal),
            Collection.PROJECTS: list(snapshot.projects),
        }
        written: list[Collection] = []
        try:
            for collection, value in values.items():
                self._write(collection, value)
                written.append(collection)
        except InfrastructureError:
            logger.error("Snapshot write failed; restoring %d collections", len(written))
            for collection in written:
                self._write(collection, self._current(collection))
            raise
        for collection, value in values.items():
            self._assign(collection, value)

    def apply_remote_change(self, change: RemoteChange) -> bool:
        """
        Apply a remote-origin change.

        Deletes remove the local record. Inserts/updates are applied when the
        record is new locally or strictly newer than the local copy, so a
        delayed echo of an older write cannot overwrite a newer local edit.
        Returns whether local state changed.
        """
        collection = change.collection
        if change.type == ChangeType.DELETE:
            return self._remove_record(collection, change.record_id)

        incoming = change.record
        if incoming is None or not isinstance(incoming, RECORD_TYPES[collection]):
            logger.warning(
                "Ignoring %s change for %s without a matching record",
                collection.value,
                change.record_id,
            )
            return False
        if getattr(incoming, "parent_task_id", None) or getattr(incoming, "parent_event_id", None):
            logger.warning("Ignoring projected occurrence %s from remote", change.record_id)
            return False

        key = record_key(incoming)
        if collection == Collection.JOURNAL:
            current = self._journal.get(key)
            if current is not None and not is_newer(incoming, current):
                return False
            journal = dict(self._journal)
            journal[key] = incoming
            self._commit(collection, journal)
            return True

        records = list(self._current(collection))
        index = self._index_of(records, key)
        if index < 0:
            records.append(incoming)
        elif is_newer(incoming, records[index]):
            records[index] = incoming
        else:
            return False
        self._commit(collection, records)
        return True

    def _remove_record(self, collection: Collection, record_id: str) -> bool:
        if collection == Collection.JOURNAL:
            if record_id not in self._journal:
                return False
            journal = dict(self._journal)
            del journal[record_id]
            self._commit(collection, journal)
            return True

        records = list(self._current(collection))
        index = self._index_of(records, record_id)
        if index < 0:
            return False
        del records[index]
        self._commit(collection, records)
        return True
