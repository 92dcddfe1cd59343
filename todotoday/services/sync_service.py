"""
Synchronization service.

Keeps the local store and the remote store converged for the signed-in user:

* Session start (LOADING -> MERGING -> SYNCED): fetch all four remote
  collections concurrently, merge them last-writer-wins with the local
  snapshot, write the result locally and replace every remote collection with
  it.
* Steady state: each local mutation is queued on its collection's
  OutboundQueue and pushed fire-and-forget, one push in flight per
  collection. Failures are logged; the local mutation stands.
* Live feed: remote deletes remove the local record; inserts/updates are
  applied only when strictly newer than the local copy.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Optional, Sequence

from todotoday.core.config import get_settings
from todotoday.core.exceptions import InfrastructureError
from todotoday.core.logger import setup_logger
from todotoday.interfaces.auth_provider import IAuthProvider
from todotoday.interfaces.remote_store import IRemoteStore
from todotoday.models.enums import ChangeType, Collection, SyncState
from todotoday.models.sync import LocalChange, RemoteChange, SyncRecord
from todotoday.services.local_store import LocalStore, StoreSnapshot
from todotoday.services.merge import merge_snapshots

logger = setup_logger(__name__)


class OutboundQueue:
    """
    Pending remote pushes for one collection.

    Changes are coalesced per record (the latest change replaces an older
    pending one) and at most one push is in flight at a time.
    """

    def __init__(self, collection: Collection):
        self.collection = collection
        self._pending: OrderedDict[str, LocalChange] = OrderedDict()
        self.in_flight: Optional[str] = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self.in_flight is not None

    def enqueue(self, change: LocalChange) -> None:
        self._pending.pop(change.record_id, None)
        self._pending[change.record_id] = change

    def pop(self) -> Optional[LocalChange]:
        if not self._pending:
            return None
        _, change = self._pending.popitem(last=False)
        return change

    def pending(self) -> list[LocalChange]:
        return list(self._pending.values())

    def clear(self) -> int:
        count = len(self._pending)
        self._pending.clear()
        return count


class SyncService:
    """Offline-first synchronization between a LocalStore and an IRemoteStore."""

    def __init__(
        self,
        store: LocalStore,
        remote_store: IRemoteStore,
        enabled: Optional[bool] = None,
    ):
        self._store = store
        self._remote = remote_store
        self._enabled = get_settings().SYNC_ENABLED if enabled is None else enabled
        self._user_id: Optional[str] = None
        # Session that is currently LOADING/MERGING; None once it settled
        self._session = 0
        self._loading_session: Optional[int] = None
        self._states = {collection: SyncState.UNSYNCED for collection in Collection}
        self._queues = {collection: OutboundQueue(collection) for collection in Collection}
        self._drains: dict[Collection, asyncio.Task] = {}
        self._subscriptions: list[asyncio.Task] = []
        self._background: set[asyncio.Task] = set()
        store.add_listener(self._on_local_change)

    # ===========================================
    # State
    # ===========================================

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_loading(self) -> bool:
        return self._loading_session is not None

    def state(self, collection: Collection) -> SyncState:
        return self._states[collection]

    def queue(self, collection: Collection) -> OutboundQueue:
        return self._queues[collection]

    def _set_state(self, state: SyncState) -> None:
        for collection in Collection:
            self._states[collection] = state

    # ===========================================
    # Session lifecycle
    # ===========================================

    def bind_auth(self, auth: IAuthProvider) -> None:
        """Follow sign-in/sign-out of an auth provider (call from the event loop)."""
        auth.add_listener(self._on_auth_change)
        if auth.get_user_id() is not None:
            self._on_auth_change(auth.get_user_id())

    def _on_auth_change(self, user_id: Optional[str]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Auth change for %s outside the event loop; sync not started", user_id)
            return
        self._track(loop.create_task(self.handle_auth_change(user_id)))

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Sync session task failed: %s", task.exception())

    async def handle_auth_change(self, user_id: Optional[str]) -> None:
        """None -> id starts a session; id -> None stops propagation."""
        if user_id == self._user_id:
            return
        if self._user_id is not None:
            await self.stop()
        if user_id is not None:
            await self.start_session(user_id)

    async def start_session(self, user_id: str) -> None:
        """
        Run the initial LOADING -> MERGING -> SYNCED round for a user.

        Raises:
            InfrastructureError: If writing the merged snapshot locally fails
        """
        if not self._enabled:
            logger.info("Sync disabled; %s stays local-only", user_id)
            return
        self._session += 1
        session = self._session
        self._user_id = user_id
        self._loading_session = session
        self._set_state(SyncState.LOADING)
        logger.info("Sync session started for %s", user_id)
        try:
            self._start_subscriptions(user_id)
            results = await asyncio.gather(
                *(self._fetch_or_empty(user_id, collection) for collection in Collection)
            )
            if self._session != session:
                return

            self._set_state(SyncState.MERGING)
            merged = merge_snapshots(self._store.snapshot(), dict(zip(Collection, results)))
            self._drop_deleted(merged)
            self._store.replace_all(merged)
            for queue in self._queues.values():
                queue.clear()

            await asyncio.gather(
                *(
                    self._bulk_replace(user_id, collection, merged.records(collection))
                    for collection in Collection
                )
            )
            if self._session != session:
                return
            self._set_state(SyncState.SYNCED)
            logger.info("Sync session for %s converged", user_id)
        except InfrastructureError:
            if self._session == session:
                self._set_state(SyncState.UNSYNCED)
            raise
        finally:
            # A superseded session must not end the loading phase of its successor
            if self._loading_session == session:
                self._loading_session = None

        # Local edits made while the bulk replace was in flight
        for collection, queue in self._queues.items():
            if len(queue):
                self._schedule_drain(collection)

    async def stop(self) -> None:
        """Stop propagation and live updates for the current session."""
        user_id, self._user_id = self._user_id, None
        self._session += 1
        self._loading_session = None
        subscriptions, self._subscriptions = self._subscriptions, []
        for task in subscriptions:
            task.cancel()
        if subscriptions:
            await asyncio.gather(*subscriptions, return_exceptions=True)
        dropped = sum(queue.clear() for queue in self._queues.values())
        self._set_state(SyncState.UNSYNCED)
        if user_id is not None:
            logger.info("Sync session for %s stopped (%d pending pushes dropped)", user_id, dropped)

    async def close(self) -> None:
        await self.stop()
        self._store.remove_listener(self._on_local_change)

    def _drop_deleted(self, merged: StoreSnapshot) -> None:
        """Keep records deleted locally during loading from coming back via the merge."""
        for collection, queue in self._queues.items():
            deleted = {c.record_id for c in queue.pending() if c.type == ChangeType.DELETE}
            if not deleted:
                continue
            if collection == Collection.JOURNAL:
                for key in deleted:
                    merged.journal.pop(key, None)
            else:
                records = getattr(merged, collection.value)
                records[:] = [record for record in records if record.id not in deleted]

    async def _fetch_or_empty(
        self, user_id: str, collection: Collection
    ) -> Optional[list[SyncRecord]]:
        try:
            return await self._remote.fetch_all(user_id, collection)
        except Exception as e:
            logger.warning(
                "Fetching remote %s failed, treating it as empty: %s", collection.value, e
            )
            return None

    async def _bulk_replace(
        self, user_id: str, collection: Collection, records: Sequence[SyncRecord]
    ) -> None:
        try:
            await self._remote.bulk_replace(user_id, collection, records)
        except Exception as e:
            logger.warning("Replacing remote %s failed: %s", collection.value, e)

    # ===========================================
    # Outbound (local -> remote)
    # ===========================================

    def _on_local_change(self, change: LocalChange) -> None:
        if not self._enabled or self._user_id is None:
            return
        self._queues[change.collection].enqueue(change)
        if self.is_loading:
            # Covered by the merge + bulk replace of the running session start
            return
        self._schedule_drain(change.collection)

    def _schedule_drain(self, collection: Collection) -> None:
        current = self._drains.get(collection)
        if current is not None and not current.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; %s push deferred", collection.value)
            return
        self._drains[collection] = loop.create_task(self._drain(collection))

    async def _drain(self, collection: Collection) -> None:
        user_id = self._user_id
        queue = self._queues[collection]
        while user_id is not None and self._user_id == user_id:
            change = queue.pop()
            if change is None:
                break
            queue.in_flight = change.record_id
            try:
                await self._push(user_id, change)
            except Exception as e:
                logger.warning(
                    "Pushing %s %s %s failed: %s",
                    change.type.value,
                    collection.value,
                    change.record_id,
                    e,
                )
            finally:
                queue.in_flight = None

    async def _push(self, user_id: str, change: LocalChange) -> None:
        if change.type == ChangeType.DELETE:
            await self._remote.delete_one(user_id, change.collection, change.record_id)
        else:
            await self._remote.upsert_one(user_id, change.collection, change.record)

    async def flush(self) -> None:
        """Wait until every queued push has been attempted."""
        while True:
            if not self.is_loading and self._user_id is not None:
                for collection, queue in self._queues.items():
                    if len(queue):
                        self._schedule_drain(collection)
            running = [task for task in self._drains.values() if not task.done()]
            if not running:
                return
            await asyncio.gather(*running)

    # ===========================================
    # Inbound (remote -> local)
    # ===========================================

    def _start_subscriptions(self, user_id: str) -> None:
        loop = asyncio.get_running_loop()
        self._subscriptions = [
            loop.create_task(self._consume(user_id, collection)) for collection in Collection
        ]

    async def _consume(self, user_id: str, collection: Collection) -> None:
        try:
            async for change in self._remote.subscribe(user_id, collection):
                if self._user_id != user_id:
                    break
                self.apply_remote_change(change)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Live feed for %s ended: %s", collection.value, e)

    def apply_remote_change(self, change: RemoteChange) -> bool:
        """Apply one live-feed notification to the local store."""
        try:
            applied = self._store.apply_remote_change(change)
        except InfrastructureError as e:
            # No caller to surface this to; the next session start re-merges
            logger.error(
                "Could not persist remote %s change for %s: %s",
                change.collection.value,
                change.record_id,
                e,
            )
            return False
        if applied:
            logger.debug(
                "Applied remote %s %s %s",
                change.type.value,
                change.collection.value,
                change.record_id,
            )
        return applied
