"""Message Schemas — send request and message response."""

from datetime import datetime

from pydantic import BaseModel, Field

from parley.core.domain_types import Message


class MessageCreate(BaseModel):
    """Destination is chat_id or username; chat_id wins when both are present."""
    text: str | None = Field(None, max_length=10_000)
    chat_id: int | None = None
    username: str | None = Field(None, max_length=64)


class MessageResponse(BaseModel):
    id: int
    from_id: int
    chat_id: int
    text: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            from_id=message.from_id,
            chat_id=message.chat_id,
            text=message.text,
            created_at=message.created_at,
        )
