"""
Unit tests for SyncService.
"""

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from todotoday.infrastructure.auth.local_auth import LocalAuthProvider
from todotoday.models.enums import ChangeType, Collection, SyncState
from todotoday.models.sync import LocalChange
from todotoday.models.task import TaskCreate, TaskUpdate
from todotoday.services.sync_service import OutboundQueue, SyncService


async def _settle(rounds: int = 10) -> None:
    """Let subscription consumers drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def sync(store, remote_store) -> SyncService:
    return SyncService(store, remote_store, enabled=True)


class TestOutboundQueue:
    """Coalescing behaviour of the per-collection queue."""

    def test_latest_change_per_record_wins(self):
        queue = OutboundQueue(Collection.TASKS)
        queue.enqueue(LocalChange(collection=Collection.TASKS, type=ChangeType.INSERT, record_id="a"))
        queue.enqueue(LocalChange(collection=Collection.TASKS, type=ChangeType.INSERT, record_id="b"))
        queue.enqueue(LocalChange(collection=Collection.TASKS, type=ChangeType.DELETE, record_id="a"))

        assert len(queue) == 2
        assert [(c.record_id, c.type) for c in queue.pending()] == [
            ("b", ChangeType.INSERT),
            ("a", ChangeType.DELETE),
        ]
        assert queue.pop().record_id == "b"
        assert queue.clear() == 1
        assert queue.pop() is None
        assert not queue.busy


class TestSessionStart:
    """Initial LOADING -> MERGING -> SYNCED round."""

    @pytest.mark.asyncio
    async def test_merges_both_sides(self, store, remote_store, sync, test_user_id):
        local = store.add_task(TaskCreate(text="Local only"))
        other_device = store.add_task(TaskCreate(text="Shared"))
        newer = other_device.model_copy(
            update={"text": "Shared, edited elsewhere", "updated_at": other_device.updated_at + timedelta(hours=1)}
        )
        await remote_store.upsert_one(test_user_id, Collection.TASKS, newer)

        try:
            await sync.start_session(test_user_id)

            assert {t.id: t.text for t in store.tasks} == {
                local.id: "Local only",
                other_device.id: "Shared, edited elsewhere",
            }
            remote_tasks = await remote_store.fetch_all(test_user_id, Collection.TASKS)
            assert {t.id for t in remote_tasks} == {local.id, other_device.id}
            assert all(sync.state(c) == SyncState.SYNCED for c in Collection)
            assert sync.is_loading is False
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_failed_fetch_counts_as_empty(self, store, remote_store, sync, test_user_id):
        task = store.add_task(TaskCreate(text="Keep me"))
        original = remote_store.fetch_all

        async def flaky_fetch(user_id, collection):
            if collection == Collection.TASKS:
                raise ConnectionError("offline")
            return await original(user_id, collection)

        remote_store.fetch_all = AsyncMock(side_effect=flaky_fetch)
        try:
            await sync.start_session(test_user_id)

            assert [t.id for t in store.tasks] == [task.id]
            assert sync.state(Collection.TASKS) == SyncState.SYNCED
            assert [t.id for t in await original(test_user_id, Collection.TASKS)] == [task.id]
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_delete_during_loading_is_not_resurrected(
        self, store, remote_store, sync, test_user_id
    ):
        task = store.add_task(TaskCreate(text="Delete me mid-load"))
        await remote_store.upsert_one(test_user_id, Collection.TASKS, task)
        original = remote_store.fetch_all

        async def fetch_while_editing(user_id, collection):
            if collection == Collection.TASKS:
                assert sync.is_loading
                store.delete_task(task.id)
            return await original(user_id, collection)

        remote_store.fetch_all = fetch_while_editing
        try:
            await sync.start_session(test_user_id)

            assert store.tasks == []
            assert await original(test_user_id, Collection.TASKS) == []
            assert len(sync.queue(Collection.TASKS)) == 0
        finally:
            await sync.close()


class TestSteadyState:
    """Outbound pushes and the live feed."""

    @pytest.mark.asyncio
    async def test_local_mutations_are_pushed(self, store, remote_store, sync, test_user_id):
        try:
            await sync.start_session(test_user_id)

            task = store.add_task(TaskCreate(text="Push me"))
            store.update_task(task.id, TaskUpdate(text="Push me, edited"))
            await sync.flush()

            [pushed] = await remote_store.fetch_all(test_user_id, Collection.TASKS)
            assert pushed.text == "Push me, edited"

            store.delete_task(task.id)
            await sync.flush()
            assert await remote_store.fetch_all(test_user_id, Collection.TASKS) == []
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_push_failure_keeps_local_change(
        self, store, remote_store, sync, test_user_id, caplog
    ):
        try:
            await sync.start_session(test_user_id)
            remote_store.upsert_one = AsyncMock(side_effect=ConnectionError("offline"))

            task = store.add_task(TaskCreate(text="Offline edit"))
            await sync.flush()

            assert [t.id for t in store.tasks] == [task.id]
            assert len(sync.queue(Collection.TASKS)) == 0
            assert "failed" in caplog.text
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_live_feed_applies_newer_and_deletes(
        self, store, remote_store, sync, test_user_id
    ):
        try:
            await sync.start_session(test_user_id)
            task = store.add_task(TaskCreate(text="Original"))
            await sync.flush()
            await _settle()

            newer = task.model_copy(
                update={"text": "From phone", "updated_at": task.updated_at + timedelta(minutes=5)}
            )
            await remote_store.upsert_one(test_user_id, Collection.TASKS, newer)
            await _settle()
            assert store.get_task(task.id).text == "From phone"

            stale = task.model_copy(
                update={"text": "Stale", "updated_at": task.updated_at - timedelta(minutes=5)}
            )
            await remote_store.upsert_one(test_user_id, Collection.TASKS, stale)
            await _settle()
            assert store.get_task(task.id).text == "From phone"

            await remote_store.delete_one(test_user_id, Collection.TASKS, task.id)
            await _settle()
            assert store.get_task(task.id) is None
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_own_echo_does_not_notify(self, store, remote_store, sync, test_user_id):
        try:
            await sync.start_session(test_user_id)
            store.save_journal_entry(date(2024, 3, 1), "today was fine")
            await sync.flush()

            seen = []
            store.add_listener(seen.append)
            await _settle()

            assert seen == []
            assert store.get_journal_entry(date(2024, 3, 1)).content == "today was fine"
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_disabled_sync_never_queues(self, store, remote_store, test_user_id):
        sync = SyncService(store, remote_store, enabled=False)
        try:
            await sync.start_session(test_user_id)
            store.add_task(TaskCreate(text="Local only"))
            await sync.flush()

            assert sync.state(Collection.TASKS) == SyncState.UNSYNCED
            assert len(sync.queue(Collection.TASKS)) == 0
            assert await remote_store.fetch_all(test_user_id, Collection.TASKS) == []
        finally:
            await sync.close()


class TestAuthLifecycle:
    """Sessions follow the auth provider."""

    @pytest.mark.asyncio
    async def test_sign_in_and_sign_out(self, store, remote_store, sync, test_user_id):
        auth = LocalAuthProvider()
        sync.bind_auth(auth)
        try:
            auth.sign_in(test_user_id)
            for _ in range(100):
                if sync.state(Collection.TASKS) == SyncState.SYNCED:
                    break
                await asyncio.sleep(0)
            assert sync.user_id == test_user_id
            assert sync.state(Collection.TASKS) == SyncState.SYNCED

            await sync.handle_auth_change(None)
            assert sync.user_id is None
            assert sync.state(Collection.TASKS) == SyncState.UNSYNCED

            store.add_task(TaskCreate(text="Signed out"))
            assert len(sync.queue(Collection.TASKS)) == 0
        finally:
            await sync.close()


class TestSingleFlight:
    """One push in flight per collection; later changes wait their turn."""

    @pytest.mark.asyncio
    async def test_pushes_run_one_at_a_time(self, store, remote_store, sync, test_user_id):
        release = asyncio.Event()
        pushed = []
        active = {"now": 0, "max": 0}

        async def slow_upsert(user_id, collection, record):
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            pushed.append((record.id, record.text))
            await release.wait()
            active["now"] -= 1

        try:
            await sync.start_session(test_user_id)
            remote_store.upsert_one = AsyncMock(side_effect=slow_upsert)
            queue = sync.queue(Collection.TASKS)

            first = store.add_task(TaskCreate(text="One"))
            await _settle()
            second = store.add_task(TaskCreate(text="Two"))
            store.update_task(second.id, TaskUpdate(text="Two, edited"))
            third = store.add_task(TaskCreate(text="Three"))
            await _settle()

            assert remote_store.upsert_one.call_count == 1
            assert queue.busy
            assert queue.in_flight == first.id
            assert [c.record_id for c in queue.pending()] == [second.id, third.id]

            release.set()
            await sync.flush()

            assert pushed == [
                (first.id, "One"),
                (second.id, "Two, edited"),
                (third.id, "Three"),
            ]
            assert active["max"] == 1
            assert not queue.busy
            assert len(queue) == 0
        finally:
            await sync.close()


class TestSessionSwitch:
    """Switching users while a session start is still loading."""

    @pytest.mark.asyncio
    async def test_superseded_session_keeps_successor_loading(
        self, store, remote_store, sync
    ):
        existing = store.add_task(TaskCreate(text="shared"))
        await remote_store.upsert_one("user-b", Collection.TASKS, existing)
        gates = {"user-a": asyncio.Event(), "user-b": asyncio.Event()}
        original = remote_store.fetch_all

        async def gated_fetch(user_id, collection):
            await gates[user_id].wait()
            return await original(user_id, collection)

        remote_store.fetch_all = gated_fetch
        try:
            session_a = asyncio.create_task(sync.start_session("user-a"))
            await _settle()
            session_b = asyncio.create_task(sync.handle_auth_change("user-b"))
            for _ in range(100):
                if sync.user_id == "user-b" and sync.is_loading:
                    break
                await asyncio.sleep(0)
            assert sync.user_id == "user-b"

            gates["user-a"].set()
            await session_a
            assert sync.is_loading
            assert sync.state(Collection.TASKS) == SyncState.LOADING

            store.delete_task(existing.id)
            assert len(sync.queue(Collection.TASKS)) == 1

            gates["user-b"].set()
            await session_b

            assert store.tasks == []
            assert await original("user-b", Collection.TASKS) == []
            assert sync.state(Collection.TASKS) == SyncState.SYNCED
            assert not sync.is_loading
        finally:
            await sync.close()

    @pytest.mark.asyncio
    async def test_stop_ends_loading(self, remote_store, sync, test_user_id):
        gate = asyncio.Event()
        original = remote_store.fetch_all

        async def gated_fetch(user_id, collection):
            await gate.wait()
            return await original(user_id, collection)

        remote_store.fetch_all = gated_fetch
        session = asyncio.create_task(sync.start_session(test_user_id))
        await _settle()
        assert sync.is_loading

        await sync.stop()
        assert not sync.is_loading
        gate.set()
        await session

        assert sync.state(Collection.TASKS) == SyncState.UNSYNCED
        await sync.close()
