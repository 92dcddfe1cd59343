"""
In-process implementation of the remote store.

Keeps per-user collections in memory and publishes every write on the
(user_id, collection) channel of a RealtimeManager, which is how other
sessions of the same user see live changes. Used for local development and tests.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional, Sequence

from todotoday.core.exceptions import RemoteStoreError
from todotoday.core.logger import setup_logger
from todotoday.interfaces.remote_store import IRemoteStore
from todotoday.models.enums import ChangeType, Collection
from todotoday.models.sync import RemoteChange, SyncRecord, record_key
from todotoday.services.realtime_service import RealtimeManager

logger = setup_logger(__name__)


class InMemoryRemoteStore(IRemoteStore):
    """Remote store held in process memory."""

    def __init__(self, realtime: Optional[RealtimeManager] = None):
        self._realtime = realtime or RealtimeManager()
        self._data: dict[tuple[str, Collection], dict[str, SyncRecord]] = {}

    def _rows(self, user_id: str, collection: Collection) -> dict[str, SyncRecord]:
        return self._data.setdefault((user_id, collection), {})

    @staticmethod
    def _check(collection: Collection, records: Sequence[SyncRecord]) -> None:
        for record in records:
            if getattr(record, "parent_task_id", None) or getattr(record, "parent_event_id", None):
                raise RemoteStoreError(
                    f"Refusing to store projected occurrence {record_key(record)}",
                    collection=collection.value,
                )

    async def fetch_all(self, user_id: str, collection: Collection) -> list[SyncRecord]:
        """Fetch every record of a collection for a user."""
        return [record.model_copy(deep=True) for record in self._rows(user_id, collection).values()]

    async def upsert_one(self, user_id: str, collection: Collection, record: SyncRecord) -> None:
        """Insert or replace one record and notify subscribers."""
        self._check(collection, [record])
        rows = self._rows(user_id, collection)
        key = record_key(record)
        change_type = ChangeType.UPDATE if key in rows else ChangeType.INSERT
        rows[key] = record.model_copy(deep=True)
        await self._realtime.publish(
            (user_id, collection),
            RemoteChange(collection=collection, type=change_type, record_id=key, record=rows[key]),
        )

    async def delete_one(self, user_id: str, collection: Collection, record_id: str) -> None:
        """Delete one record and notify subscribers (no-op when absent)."""
        rows = self._rows(user_id, collection)
        if rows.pop(record_id, None) is None:
            return
        await self._realtime.publish(
            (user_id, collection),
            RemoteChange(collection=collection, type=ChangeType.DELETE, record_id=record_id),
        )

    async def bulk_replace(
        self, user_id: str, collection: Collection, records: Sequence[SyncRecord]
    ) -> None:
        """Replace the collection, notifying a delete/insert/update per affected record."""
        self._check(collection, records)
        rows = self._rows(user_id, collection)
        replacement = {record_key(record): record.model_copy(deep=True) for record in records}
        changes = [
            RemoteChange(collection=collection, type=ChangeType.DELETE, record_id=key)
            for key in rows
            if key not in replacement
        ]
        for key, record in replacement.items():
            change_type = ChangeType.UPDATE if key in rows else ChangeType.INSERT
            changes.append(
                RemoteChange(collection=collection, type=change_type, record_id=key, record=record)
            )
        self._data[(user_id, collection)] = replacement
        logger.debug("Replaced %s for %s with %d records", collection.value, user_id, len(replacement))
        await self._realtime.publish_many((user_id, collection), changes)

    async def subscribe(self, user_id: str, collection: Collection) -> AsyncIterator[RemoteChange]:
        """Yield change notifications until the consumer stops iterating."""
        channel = (user_id, collection)
        queue = await self._realtime.connect(channel)
        try:
            while True:
                yield await queue.get()
        finally:
            await self._realtime.disconnect(channel, queue)
