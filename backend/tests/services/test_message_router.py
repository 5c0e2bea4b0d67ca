"""MessageRouter — destination resolution, known relations and notification."""

import pytest

from parley.core.errors import (
    InvalidDestinationError,
    MessageNotFoundError,
    StorageUnavailableError,
    UnknownChatError,
)


@pytest.fixture
def ann(store):
    return store.add_identity("a@x.com", "Ann", username="ann")


@pytest.fixture
def bob(store):
    return store.add_identity("b@x.com", "Bob", username="bob", identity_id=42)


# --- send_by_id ---------------------------------------------------------------

async def test_send_by_id_requires_known_relation(router, ann, bob):
    with pytest.raises(UnknownChatError):
        await router.auto_send(ann, chat_id=42, text="hi")


async def test_send_by_id_to_missing_identity(router, store, ann):
    store.known.add((ann.id, 999))
    with pytest.raises(UnknownChatError):
        await router.send_by_id(ann, 999, "hi")


async def test_send_by_id_after_known(router, store, ann, bob):
    store.known.add((ann.id, bob.id))
    message = await router.send_by_id(ann, bob.id, "hello")
    assert message.from_id == ann.id
    assert message.chat_id == bob.id
    assert (bob.id, ann.id) in store.known


# --- send_by_username ---------------------------------------------------------

async def test_send_by_username_establishes_both_directions(router, store, ann, bob):
    message = await router.send_by_username(ann, "bob", "hi")
    assert message.chat_id == bob.id
    assert await store.is_known(ann.id, bob.id)
    assert await store.is_known(bob.id, ann.id)


async def test_send_by_username_then_by_id(router, ann, bob):
    await router.send_by_username(ann, "bob", "first")
    message = await router.send_by_id(ann, bob.id, "second")
    assert message.text == "second"


async def test_recipient_can_reply_by_id(router, ann, bob):
    await router.send_by_username(ann, "bob", "hi")
    reply = await router.send_by_id(bob, ann.id, "hey")
    assert reply.chat_id == ann.id


async def test_send_by_username_is_case_insensitive(router, ann, bob):
    message = await router.send_by_username(ann, "BoB", "hi")
    assert message.chat_id == bob.id


async def test_send_by_unknown_username(router, ann):
    with pytest.raises(UnknownChatError):
        await router.send_by_username(ann, "nobody", "hi")


async def test_repeat_send_keeps_single_relation(router, store, ann, bob):
    await router.send_by_username(ann, "bob", "1")
    await router.send_by_username(ann, "bob", "2")
    assert store.known == {(ann.id, bob.id), (bob.id, ann.id)}


async def test_message_text_is_optional(router, ann, bob):
    message = await router.send_by_username(ann, "bob", None)
    assert message.text is None


# --- auto_send ----------------------------------------------------------------

async def test_auto_send_without_destination(router, ann):
    with pytest.raises(InvalidDestinationError):
        await router.auto_send(ann, text="hi")


async def test_auto_send_prefers_chat_id(router, ann, bob):
    # chat_id is unknown, so the username is never consulted
    with pytest.raises(UnknownChatError):
        await router.auto_send(ann, chat_id=bob.id, username="bob", text="hi")


async def test_auto_send_by_username(router, ann, bob):
    message = await router.auto_send(ann, username="bob", text="hi")
    assert message.chat_id == bob.id


# --- notification -------------------------------------------------------------

async def test_send_publishes_to_recipient_only(router, hub, ann, bob):
    _, bob_channel = await hub.subscribe(bob.id)
    _, ann_channel = await hub.subscribe(ann.id)

    message = await router.send_by_username(ann, "bob", "hi")

    event = await bob_channel.next_event(timeout=1)
    assert event["type"] == "message_sent"
    assert event["data"]["id"] == message.id
    assert await ann_channel.next_event(timeout=0.01) is None


async def test_failed_send_publishes_nothing(router, hub, ann, bob):
    _, bob_channel = await hub.subscribe(bob.id)
    with pytest.raises(UnknownChatError):
        await router.send_by_id(ann, bob.id, "hi")
    assert await bob_channel.next_event(timeout=0.01) is None


async def test_storage_failure_propagates(router, store, ann, bob):
    store.available = False
    with pytest.raises(StorageUnavailableError):
        await router.send_by_username(ann, "bob", "hi")


# --- get_message --------------------------------------------------------------

async def test_participants_can_read_message(router, ann, bob):
    message = await router.send_by_username(ann, "bob", "hi")
    assert await router.get_message(ann, message.id) == message
    assert await router.get_message(bob, message.id) == message


async def test_outsider_cannot_read_message(router, store, ann, bob):
    eve = store.add_identity("e@x.com", "Eve")
    message = await router.send_by_username(ann, "bob", "hi")
    with pytest.raises(MessageNotFoundError):
        await router.get_message(eve, message.id)


async def test_missing_message(router, ann):
    with pytest.raises(MessageNotFoundError):
        await router.get_message(ann, 12345)
