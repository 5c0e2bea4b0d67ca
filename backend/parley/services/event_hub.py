"""Event Hub — in-process fan-out of events to every live stream of an identity.

Invariants:
    - Registry mutation (subscribe/unsubscribe/prune) holds the write lock exclusively
    - publish() snapshots the target's listeners under the read lock, delivers
      without the write lock, then prunes dead listeners in a separate write step
    - Delivery is best-effort: a full or closed channel marks only that listener dead
    - Events to one identity reach each of its channels in publish order
    - Listener ids are never reused; a removed listener is never resurrected

Design Decisions:
    - One bounded asyncio.Queue per listener; put_nowait never suspends the publisher
    - The hub is constructed once in the app lifespan and handed to whoever needs it
    - Dead listeners are pruned lazily on the next publish to their identity; the SSE
      route also unsubscribes explicitly when its stream ends
"""

import asyncio
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from parley.core.domain_types import IdentityId, ListenerId

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
LISTENER_ID_BYTES = 24


class ReadWriteLock:
    """asyncio many-reader/single-writer lock.

    Writers are preferred: once a writer waits, new readers queue behind it.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0,
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0,
                )
            finally:
                self._writers_waiting -= 1
                # readers parked behind a cancelled writer must re-check
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class ChannelClosed(Exception):
    """The channel was closed: no more deliveries, and nothing left to receive."""


class ListenerChannel:
    """Output side of one listener: an async iterator of published events."""

    _CLOSE = object()

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: dict) -> None:
        """Enqueue without suspending. Raises ChannelClosed or asyncio.QueueFull."""
        if self._closed:
            raise ChannelClosed()
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # wakes a pending receiver; a full queue is drained first, then next_event sees closed
        try:
            self._queue.put_nowait(self._CLOSE)
        except asyncio.QueueFull:
            pass

    async def next_event(self, timeout: float | None = None) -> dict | None:
        """Wait for the next event. Returns None on timeout.

        Raises ChannelClosed once the channel is closed and drained of the
        events queued before the close.
        """
        if self._closed and self._queue.empty():
            raise ChannelClosed()
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is self._CLOSE:
            raise ChannelClosed()
        return item

    def __aiter__(self) -> AsyncIterator[dict]:
        return self

    async def __anext__(self) -> dict:
        try:
            return await self.next_event()
        except ChannelClosed:
            raise StopAsyncIteration


@dataclass
class Listener:
    id: ListenerId
    identity_id: IdentityId
    channel: ListenerChannel


class EventHub:
    """Registry of live listeners grouped by owning identity."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._lock = ReadWriteLock()
        self._by_identity: dict[IdentityId, dict[ListenerId, Listener]] = {}
        self._by_id: dict[ListenerId, Listener] = {}

    async def subscribe(
        self, identity_id: IdentityId,
    ) -> tuple[ListenerId, ListenerChannel]:
        channel = ListenerChannel(maxsize=self.queue_size)
        async with self._lock.write():
            listener_id = self._new_listener_id()
            listener = Listener(listener_id, identity_id, channel)
            self._by_id[listener_id] = listener
            self._by_identity.setdefault(identity_id, {})[listener_id] = listener
        logger.debug(
            "Listener subscribed",
            extra={"listener_id": listener_id, "identity_id": identity_id},
        )
        return listener_id, channel

    async def unsubscribe(self, listener_id: ListenerId) -> None:
        """Remove a listener and close its channel. Unknown ids are a no-op."""
        async with self._lock.write():
            listener = self._remove_locked(listener_id)
        if listener is not None:
            listener.channel.close()
            logger.debug(
                "Listener removed",
                extra={"listener_id": listener_id, "identity_id": listener.identity_id},
            )

    async def publish(self, identity_id: IdentityId, event: dict) -> int:
        """Deliver event to every listener of identity_id. Returns delivery count."""
        async with self._lock.read():
            targets = list(self._by_identity.get(identity_id, {}).values())

        delivered = 0
        dead: list[ListenerId] = []
        for listener in targets:
            try:
                listener.channel.deliver(event)
                delivered += 1
            except (ChannelClosed, asyncio.QueueFull):
                dead.append(listener.id)

        if dead:
            await self._prune(dead)
        return delivered

    async def listener_count(self, identity_id: IdentityId | None = None) -> int:
        async with self._lock.read():
            if identity_id is None:
                return len(self._by_id)
            return len(self._by_identity.get(identity_id, {}))

    async def _prune(self, listener_ids: list[ListenerId]) -> None:
        async with self._lock.write():
            removed = [self._remove_locked(lid) for lid in listener_ids]
        for listener in removed:
            if listener is None:
                continue
            listener.channel.close()
            logger.debug(
                "Dead listener pruned",
                extra={"listener_id": listener.id, "identity_id": listener.identity_id},
            )

    def _remove_locked(self, listener_id: ListenerId) -> Listener | None:
        listener = self._by_id.pop(listener_id, None)
        if listener is None:
            return None
        group = self._by_identity.get(listener.identity_id)
        if group is not None:
            group.pop(listener_id, None)
            if not group:
                del self._by_identity[listener.identity_id]
        return listener

    def _new_listener_id(self) -> ListenerId:
        while True:
            candidate = ListenerId(secrets.token_urlsafe(LISTENER_ID_BYTES))
            if candidate not in self._by_id:
                return candidate
