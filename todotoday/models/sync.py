"""
Change records exchanged between the local store, the sync engine and the remote store.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel

from todotoday.models.enums import ChangeType, Collection
from todotoday.models.event import Event
from todotoday.models.journal import JournalEntry
from todotoday.models.project import Project
from todotoday.models.task import Task
from todotoday.utils.datetime_utils import ensure_utc

SyncRecord = Union[Task, Event, JournalEntry, Project]


def record_key(record: SyncRecord) -> str:
    """Identity of a record within its collection (journal entries use their date)."""
    if isinstance(record, JournalEntry):
        return record.key
    return record.id


def record_timestamp(record: SyncRecord) -> Optional[datetime]:
    """Modification time used for last-writer-wins: updated_at, else created_at (UTC)."""
    stamp = record.updated_at
    if stamp is None:
        stamp = getattr(record, "created_at", None)
    return ensure_utc(stamp)


def is_newer(incoming: SyncRecord, current: SyncRecord) -> bool:
    """True iff `incoming` is strictly newer than `current`; undated records never win."""
    incoming_at = record_timestamp(incoming)
    current_at = record_timestamp(current)
    if incoming_at is None:
        return False
    if current_at is None:
        return True
    return incoming_at > current_at


class LocalChange(BaseModel):
    """A user mutation applied by the local store, to be pushed remotely."""

    collection: Collection
    type: ChangeType
    record_id: str
    record: Optional[SyncRecord] = None


class RemoteChange(BaseModel):
    """A change notification delivered by the remote store's live feed."""

    collection: Collection
    type: ChangeType
    record_id: str
    record: Optional[SyncRecord] = None
