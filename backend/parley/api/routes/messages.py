"""Message Routes — send a direct message, read one back."""

from fastapi import APIRouter, Depends, status

from parley.api.dependencies import get_current_identity, get_message_router
from parley.core.domain_types import Identity, IdentityId, MessageId
from parley.schemas.message import MessageCreate, MessageResponse
from parley.services.message_router import MessageRouter

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.post(
    "", response_model=MessageResponse, status_code=status.HTTP_201_CREATED,
)
async def send_message(
    body: MessageCreate,
    sender: Identity = Depends(get_current_identity),
    message_router: MessageRouter = Depends(get_message_router),
):
    chat_id = IdentityId(body.chat_id) if body.chat_id is not None else None
    message = await message_router.auto_send(
        sender, chat_id=chat_id, username=body.username, text=body.text,
    )
    return MessageResponse.from_message(message)


@router.get("/{message_id}", response_model=MessageResponse)
async def read_message(
    message_id: int,
    viewer: Identity = Depends(get_current_identity),
    message_router: MessageRouter = Depends(get_message_router),
):
    message = await message_router.get_message(viewer, MessageId(message_id))
    return MessageResponse.from_message(message)
