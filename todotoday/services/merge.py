"""
Last-writer-wins merge of a local and a remote snapshot.

Records are matched by identity (id, or date key for the journal). A record
present on one side only is kept; a record present on both sides resolves to
the strictly newer copy by updated_at (falling back to created_at), and ties
keep the local copy. Concurrent edits of the same record on two devices keep
only the newer one.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, TypeVar

from todotoday.models.enums import Collection
from todotoday.models.journal import JournalEntry
from todotoday.models.sync import SyncRecord, is_newer, record_key
from todotoday.services.local_store import StoreSnapshot

R = TypeVar("R", bound=SyncRecord)


def merge_records(local: Sequence[R], remote: Sequence[R]) -> list[R]:
    """
    Merge two id-keyed collections.

    Local order is preserved; remote-only records follow in remote order.
    """
    remote_by_key = {record_key(record): record for record in remote}
    merged: list[R] = []
    seen: set[str] = set()
    for record in local:
        key = record_key(record)
        if key in seen:
            continue
        seen.add(key)
        other = remote_by_key.get(key)
        merged.append(other if other is not None and is_newer(other, record) else record)
    for key, record in remote_by_key.items():
        if key not in seen:
            seen.add(key)
            merged.append(record)
    return merged


def merge_journal(
    local: Mapping[str, JournalEntry], remote: Mapping[str, JournalEntry]
) -> dict[str, JournalEntry]:
    """Merge two date-keyed journals with the same newer-wins rule."""
    merged = dict(local)
    for key, entry in remote.items():
        current = merged.get(key)
        if current is None or is_newer(entry, current):
            merged[key] = entry
    return merged


def merge_snapshots(
    local: StoreSnapshot, remote: Mapping[Collection, Optional[Sequence[SyncRecord]]]
) -> StoreSnapshot:
    """
    Merge the local snapshot with fetched remote collections.

    A collection missing from `remote` (or None) counts as empty remotely.
    """

    def fetched(collection: Collection) -> list:
        return list(remote.get(collection) or [])

    return StoreSnapshot(
        tasks=merge_records(local.tasks, fetched(Collection.TASKS)),
        events=merge_records(local.events, fetched(Collection.EVENTS)),
        journal=merge_journal(
            local.journal,
            {entry.key: entry for entry in fetched(Collection.JOURNAL)},
        ),
        projects=merge_records(local.projects, fetched(Collection.PROJECTS)),
    )
