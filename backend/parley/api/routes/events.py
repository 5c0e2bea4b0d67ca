"""Event Stream — SSE delivery of MessageSent events to the authenticated identity.

Invariants:
    - One EventHub listener per open stream, registered before the response starts
    - The listener is unsubscribed when the stream ends (close, disconnect, cancel)
    - Idle streams emit an SSE comment every sse_ping_seconds so dead peers surface
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from parley.api.dependencies import get_current_identity, get_event_hub
from parley.config import get_settings
from parley.core.domain_types import Identity, ListenerId
from parley.services.event_hub import ChannelClosed, EventHub, ListenerChannel

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/events", tags=["events"])

# Stops proxies (nginx) and browsers from buffering streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

PING_LINE = ": ping\n\n"


@router.get("")
async def stream_events(
    identity: Identity = Depends(get_current_identity),
    hub: EventHub = Depends(get_event_hub),
):
    """Long-lived stream of events addressed to the caller."""
    listener_id, channel = await hub.subscribe(identity.id)
    logger.info(
        "Event stream opened",
        extra={"identity_id": identity.id, "listener_id": listener_id},
    )
    return StreamingResponse(
        event_stream(hub, listener_id, channel, get_settings().sse_ping_seconds),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


async def event_stream(
    hub: EventHub,
    listener_id: ListenerId,
    channel: ListenerChannel,
    ping_seconds: float | None,
) -> AsyncIterator[str]:
    """Yield SSE lines for each event on channel until it closes."""
    try:
        while True:
            try:
                event = await channel.next_event(timeout=ping_seconds)
            except ChannelClosed:
                return
            if event is None:
                yield PING_LINE
                continue
            yield sse_line(event)
    except asyncio.CancelledError:
        logger.info(
            "Client disconnected from event stream",
            extra={"listener_id": listener_id},
        )
    finally:
        await hub.unsubscribe(listener_id)


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
