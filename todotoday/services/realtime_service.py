import asyncio
from typing import Hashable

from todotoday.models.sync import RemoteChange


class RealtimeManager:
    """Fan-out of change notifications to every queue subscribed to a channel."""

    def __init__(self) -> None:
        self._connections: dict[Hashable, set[asyncio.Queue[RemoteChange]]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, channel: Hashable) -> asyncio.Queue[RemoteChange]:
        queue: asyncio.Queue[RemoteChange] = asyncio.Queue()
        async with self._lock:
            self._connections.setdefault(channel, set()).add(queue)
        return queue

    async def disconnect(self, channel: Hashable, queue: asyncio.Queue[RemoteChange]) -> None:
        async with self._lock:
            queues = self._connections.get(channel)
            if not queues:
                return
            queues.discard(queue)
            if not queues:
                self._connections.pop(channel, None)

    async def publish(self, channel: Hashable, change: RemoteChange) -> None:
        async with self._lock:
            queues = list(self._connections.get(channel, set()))
        for queue in queues:
            queue.put_nowait(change)

    async def publish_many(self, channel: Hashable, changes: list[RemoteChange]) -> None:
        if not changes:
            return
        async with self._lock:
            queues = list(self._connections.get(channel, set()))
        for queue in queues:
            for change in changes:
                queue.put_nowait(change)

    def subscriber_count(self, channel: Hashable) -> int:
        return len(self._connections.get(channel, ()))
