"""Message Router — resolves a destination, persists the message, notifies the recipient.

Invariants:
    - send_by_id requires an existing KnownRelation(sender, chat_id)
    - send_by_username establishes the KnownRelation on first contact
    - Every successful send writes KnownRelation in both directions before publishing
    - auto_send: chat_id takes precedence over username when both are given
    - No retries: StorageUnavailableError from the store propagates as-is
"""

import logging

from parley.core.domain_types import (
    Identity, IdentityId, Message, MessageId, MessageSent,
)
from parley.core.errors import (
    InvalidDestinationError, MessageNotFoundError, UnknownChatError,
)
from parley.core.repository_protocols import RecordStore
from parley.services.event_hub import EventHub

logger = logging.getLogger(__name__)


class MessageRouter:
    """Direct messaging between identities."""

    def __init__(self, store: RecordStore, event_hub: EventHub):
        self.store = store
        self.event_hub = event_hub

    async def send_by_id(
        self, sender: Identity, chat_id: IdentityId, text: str | None,
    ) -> Message:
        if not await self.store.is_known(sender.id, chat_id):
            raise UnknownChatError()
        peer = await self.store.get_identity_by_id(chat_id)
        if peer is None:
            raise UnknownChatError()
        return await self._deliver(sender, peer, text)

    async def send_by_username(
        self, sender: Identity, username: str, text: str | None,
    ) -> Message:
        peer = await self.store.get_identity_by_username(username)
        if peer is None:
            raise UnknownChatError()
        return await self._deliver(sender, peer, text)

    async def auto_send(
        self,
        sender: Identity,
        chat_id: IdentityId | None = None,
        username: str | None = None,
        text: str | None = None,
    ) -> Message:
        if chat_id is not None:
            return await self.send_by_id(sender, chat_id, text)
        if username is not None:
            return await self.send_by_username(sender, username, text)
        raise InvalidDestinationError()

    async def get_message(self, viewer: Identity, message_id: MessageId) -> Message:
        """Fetch a message the viewer sent or received."""
        message = await self.store.get_message(message_id)
        if message is None or viewer.id not in (message.from_id, message.chat_id):
            raise MessageNotFoundError(message_id)
        return message

    async def _deliver(
        self, sender: Identity, peer: Identity, text: str | None,
    ) -> Message:
        message = await self.store.create_message(sender.id, peer.id, text)
        await self.store.set_known(sender.id, peer.id)
        await self.store.set_known(peer.id, sender.id)
        delivered = await self.event_hub.publish(
            peer.id, MessageSent(message).to_event(),
        )
        logger.info(
            "Message %s routed to %s (%d live streams)",
            message.id, peer.id, delivered,
            extra={"identity_id": sender.id},
        )
        return message
