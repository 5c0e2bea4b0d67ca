"""EventHub — multi-listener fan-out, ordering, lazy pruning and the RW lock.

Invariants:
    - publish reaches every listener of the identity and nobody else
    - a closed or full channel is pruned after the delivery pass
    - unsubscribe is idempotent and never resurrects a listener
"""

import asyncio

import pytest

from parley.services.event_hub import (
    ChannelClosed, EventHub, ListenerChannel, ReadWriteLock,
)


def _event(n: int) -> dict:
    return {"type": "message_sent", "data": {"id": n}}


# --- subscribe / publish ------------------------------------------------------

async def test_publish_reaches_all_listeners_of_identity(hub):
    channels = [(await hub.subscribe(7))[1] for _ in range(3)]
    _, other = await hub.subscribe(8)

    delivered = await hub.publish(7, _event(1))

    assert delivered == 3
    for channel in channels:
        assert await channel.next_event(timeout=1) == _event(1)
    assert await other.next_event(timeout=0.01) is None


async def test_publish_without_listeners(hub):
    assert await hub.publish(7, _event(1)) == 0


async def test_events_arrive_in_publish_order(hub):
    _, channel = await hub.subscribe(7)
    for n in range(5):
        await hub.publish(7, _event(n))
    received = [await channel.next_event(timeout=1) for _ in range(5)]
    assert [e["data"]["id"] for e in received] == [0, 1, 2, 3, 4]


async def test_each_subscribe_gets_fresh_id(hub):
    first, _ = await hub.subscribe(7)
    await hub.unsubscribe(first)
    second, _ = await hub.subscribe(7)
    assert first != second


async def test_concurrent_subscribers_all_receive(hub):
    results = await asyncio.gather(*(hub.subscribe(7) for _ in range(5)))
    await hub.publish(7, _event(1))
    for _, channel in results:
        assert await channel.next_event(timeout=1) == _event(1)


# --- unsubscribe --------------------------------------------------------------

async def test_unsubscribe_stops_delivery_and_closes_channel(hub):
    listener_id, channel = await hub.subscribe(7)
    await hub.unsubscribe(listener_id)

    assert await hub.publish(7, _event(1)) == 0
    assert channel.closed
    assert await hub.listener_count(7) == 0


async def test_unsubscribe_is_idempotent(hub):
    listener_id, _ = await hub.subscribe(7)
    await hub.unsubscribe(listener_id)
    await hub.unsubscribe(listener_id)
    await hub.unsubscribe("never-existed")
    assert await hub.listener_count() == 0


# --- lazy pruning -------------------------------------------------------------

async def test_closed_channel_pruned_on_next_publish(hub):
    _, dead = await hub.subscribe(7)
    _, alive = await hub.subscribe(7)
    dead.close()

    assert await hub.listener_count(7) == 2
    delivered = await hub.publish(7, _event(1))

    assert delivered == 1
    assert await hub.listener_count(7) == 1
    assert await alive.next_event(timeout=1) == _event(1)


async def test_disconnected_listener_sees_at_most_one_more_attempt(hub):
    _, channel = await hub.subscribe(7)
    channel.close()
    await hub.publish(7, _event(1))
    # second publish finds nothing to attempt
    assert await hub.publish(7, _event(2)) == 0
    assert await hub.listener_count() == 0


async def test_full_channel_marks_listener_dead():
    hub = EventHub(queue_size=2)
    _, slow = await hub.subscribe(7)
    await hub.publish(7, _event(1))
    await hub.publish(7, _event(2))

    assert await hub.publish(7, _event(3)) == 0
    assert await hub.listener_count(7) == 0
    # events queued before pruning are still drained, then the channel ends
    assert await slow.next_event(timeout=1) == _event(1)
    assert await slow.next_event(timeout=1) == _event(2)
    with pytest.raises(ChannelClosed):
        await slow.next_event(timeout=1)


async def test_pruning_only_affects_target_identity(hub):
    _, dead = await hub.subscribe(7)
    _, other = await hub.subscribe(8)
    dead.close()
    await hub.publish(7, _event(1))
    assert await hub.listener_count(8) == 1


# --- ListenerChannel ----------------------------------------------------------

async def test_channel_iteration_ends_on_close():
    channel = ListenerChannel(maxsize=4)
    channel.deliver(_event(1))
    channel.deliver(_event(2))
    channel.close()
    assert [e async for e in channel] == [_event(1), _event(2)]


async def test_close_wakes_pending_receiver():
    channel = ListenerChannel()
    waiter = asyncio.create_task(channel.next_event())
    await asyncio.sleep(0)
    channel.close()
    with pytest.raises(ChannelClosed):
        await asyncio.wait_for(waiter, 1)


async def test_next_event_times_out_with_none():
    channel = ListenerChannel()
    assert await channel.next_event(timeout=0.01) is None


def test_deliver_after_close_raises():
    channel = ListenerChannel()
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.deliver(_event(1))


# --- ReadWriteLock ------------------------------------------------------------

async def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = 0
    peak = 0

    async def reader():
        nonlocal inside, peak
        async with lock.read():
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(*(reader() for _ in range(3)))
    assert peak == 3


async def test_writer_excludes_readers():
    lock = ReadWriteLock()
    log = []

    async def writer():
        async with lock.write():
            log.append("w-start")
            await asyncio.sleep(0.01)
            log.append("w-end")

    async def reader():
        await asyncio.sleep(0)
        async with lock.read():
            log.append("r")

    await asyncio.gather(writer(), reader())
    assert log == ["w-start", "w-end", "r"]


async def test_cancelled_writer_lets_queued_readers_in():
    lock = ReadWriteLock()
    release = asyncio.Event()
    entered = asyncio.Event()

    async def long_reader():
        async with lock.read():
            await release.wait()

    async def writer():
        async with lock.write():
            pass

    async def late_reader():
        async with lock.read():
            entered.set()

    holder = asyncio.create_task(long_reader())
    await asyncio.sleep(0)
    pending_writer = asyncio.create_task(writer())
    await asyncio.sleep(0)
    reader = asyncio.create_task(late_reader())
    await asyncio.sleep(0)

    pending_writer.cancel()
    await asyncio.gather(pending_writer, return_exceptions=True)

    await asyncio.wait_for(entered.wait(), 1)
    release.set()
    await asyncio.gather(holder, reader)
