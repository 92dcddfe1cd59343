"""
Remote store interface.

Per-collection CRUD, bulk fetch/replace and a live change feed. Translating
field names to the remote schema is the implementation's concern.
Implementations raise RemoteStoreError when a call fails or is rejected.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Sequence

from todotoday.models.enums import Collection
from todotoday.models.sync import RemoteChange, SyncRecord


class IRemoteStore(ABC):
    """Abstract interface for the remote replica shared across devices."""

    @abstractmethod
    async def fetch_all(self, user_id: str, collection: Collection) -> list[SyncRecord]:
        """Fetch every record of a collection for a user."""
        pass

    @abstractmethod
    async def upsert_one(self, user_id: str, collection: Collection, record: SyncRecord) -> None:
        """Insert or replace one record."""
        pass

    @abstractmethod
    async def delete_one(self, user_id: str, collection: Collection, record_id: str) -> None:
        """Delete one record by id (journal entries by date key)."""
        pass

    @abstractmethod
    async def bulk_replace(
        self, user_id: str, collection: Collection, records: Sequence[SyncRecord]
    ) -> None:
        """Replace the whole collection with `records`."""
        pass

    @abstractmethod
    def subscribe(self, user_id: str, collection: Collection) -> AsyncIterator[RemoteChange]:
        """Yield change notifications for (user, collection) until cancelled."""
        pass
