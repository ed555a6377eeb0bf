"""
Server-Sent Events Stream Adapter

Bridges one long-lived HTTP request to the broadcast registry. There are
two flavours: an order channel (scoped by a path parameter) and the fixed
admin channel. Both:

    1. register a fresh QueueSubscriber with the registry
    2. emit a ``connected`` event naming the channel
    3. forward published events as ``event: <name>\\ndata: <json>\\n\\n``
    4. emit a ``:keep-alive <timestamp>`` comment after each idle interval
    5. unsubscribe when the generator is closed or cancelled, which is how
       Starlette reports a client disconnect

Version: 1.0.0
"""

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Optional

from fastapi.responses import StreamingResponse

from oldrao.services.events.base import EventName
from oldrao.services.events.registry import BroadcastRegistry
from oldrao.services.events.subscriber import QueueSubscriber

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# =============================================================================
# FRAME FORMATTING
# =============================================================================

def format_event(event: Any, payload: Any) -> str:
    """Render one SSE frame with a JSON payload."""
    name = event.value if isinstance(event, enum.Enum) else str(event)
    data = json.dumps(payload, default=_json_default, separators=(",", ":"))
    return f"event: {name}\ndata: {data}\n\n"


def format_keep_alive(now: Optional[datetime] = None) -> str:
    """Render a comment frame; EventSource clients ignore it."""
    now = now or datetime.now(timezone.utc)
    return f":keep-alive {int(now.timestamp() * 1000)}\n\n"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


# =============================================================================
# CHANNELS
# =============================================================================

@dataclass(frozen=True)
class StreamChannel:
    """Which registry bucket a stream joins."""
    name: str
    subscribe: Callable[[BroadcastRegistry, QueueSubscriber], None]
    unsubscribe: Callable[[BroadcastRegistry, QueueSubscriber], None]
    greeting: dict[str, Any]


def order_channel(order_id: str) -> StreamChannel:
    """Channel for viewers of a single order. The id is used as given."""
    return StreamChannel(
        name=f"order:{order_id}",
        subscribe=lambda registry, sub: registry.subscribe_order(order_id, sub),
        unsubscribe=lambda registry, sub: registry.unsubscribe_order(order_id, sub),
        greeting={"channel": "order", "orderId": order_id},
    )


def admin_channel() -> StreamChannel:
    """Channel for open admin dashboards."""
    return StreamChannel(
        name="admin",
        subscribe=lambda registry, sub: registry.subscribe_admin(sub),
        unsubscribe=lambda registry, sub: registry.unsubscribe_admin(sub),
        greeting={"channel": "admin"},
    )


# =============================================================================
# STREAM GENERATOR
# =============================================================================

async def event_stream(
    registry: BroadcastRegistry,
    channel: StreamChannel,
    heartbeat_seconds: float = 25.0,
    max_pending: int = 100,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one subscriber until it is closed or disconnected.

    Registration happens on the first iteration, so a response that is
    never started never leaks a subscriber.
    """
    subscriber = QueueSubscriber(max_pending=max_pending)
    channel.subscribe(registry, subscriber)
    if subscriber.closed:
        # Registry already shut down
        return
    logger.info(f"Live stream opened on {channel.name}")

    try:
        yield format_event(EventName.CONNECTED, channel.greeting)

        while True:
            try:
                message = await asyncio.wait_for(subscriber.receive(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield format_keep_alive()
                continue

            if message is None:
                # Dropped by the registry or closed at shutdown
                break

            event, payload = message
            yield format_event(event, payload)
    finally:
        channel.unsubscribe(registry, subscriber)
        subscriber.close()
        logger.info(f"Live stream closed on {channel.name}")


def sse_response(
    registry: BroadcastRegistry,
    channel: StreamChannel,
    heartbeat_seconds: float = 25.0,
    max_pending: int = 100,
) -> StreamingResponse:
    """Wrap :func:`event_stream` in a ``text/event-stream`` response."""
    return StreamingResponse(
        event_stream(registry, channel, heartbeat_seconds, max_pending),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
