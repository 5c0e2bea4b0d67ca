"""Domain Types — plain value objects shared by services, adapters and routes.

Invariants:
    - Identity and Message are detached from the ORM (no lazy loads, safe across awaits)
    - Message is frozen: immutable once created
    - Events serialize to {"type": ..., "data": ...} envelopes for the SSE stream
"""

from dataclasses import dataclass, asdict, replace
from datetime import datetime
from enum import Enum
from typing import NewType


IdentityId = NewType("IdentityId", int)
MessageId = NewType("MessageId", int)
ListenerId = NewType("ListenerId", str)


class PatchableField(str, Enum):
    """Profile fields accepted by patch_profile; anything else is ignored."""
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    USERNAME = "username"


class EventType(str, Enum):
    MESSAGE_SENT = "message_sent"


@dataclass
class Identity:
    id: IdentityId
    email: str
    first_name: str
    username: str | None = None
    last_name: str | None = None
    created_at: datetime | None = None

    def copy(self, **changes) -> "Identity":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass(frozen=True)
class Message:
    id: MessageId
    from_id: IdentityId
    chat_id: IdentityId
    text: str | None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass(frozen=True)
class PatchField:
    """One entry of an ordered profile patch."""
    name: str
    value: str | None = None


@dataclass(frozen=True)
class MessageSent:
    """Event published to the recipient's listeners after a send."""
    message: Message

    @property
    def type(self) -> EventType:
        return EventType.MESSAGE_SENT

    def to_event(self) -> dict:
        return {"type": self.type.value, "data": self.message.to_dict()}
