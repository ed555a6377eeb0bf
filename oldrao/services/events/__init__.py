"""
Live Updates Service

In-process broadcast of order and contact activity to server-sent
event streams.

Unlike the other services there is no cached factory: the registry is
created in the application lifespan, kept on ``app.state`` and handed
to route handlers through :func:`get_broadcaster`.

Usage:
    from oldrao.services.events import BroadcastRegistry, get_broadcaster

    @app.patch("/api/admin/orders/{order_id}/status")
    async def update(..., broadcaster: BroadcastRegistry = Depends(get_broadcaster)):
        ...
        notify_order_status(broadcaster, order)
"""

from fastapi import Request

from oldrao.services.events.base import BaseSubscriber, EventName, SubscriberClosed
from oldrao.services.events.notify import (
    notify_new_contact,
    notify_new_order,
    notify_order_status,
)
from oldrao.services.events.registry import BroadcastRegistry
from oldrao.services.events.stream import (
    admin_channel,
    event_stream,
    format_event,
    format_keep_alive,
    order_channel,
    sse_response,
)
from oldrao.services.events.subscriber import QueueSubscriber


def get_broadcaster(request: Request) -> BroadcastRegistry:
    """FastAPI dependency returning the application's registry."""
    return request.app.state.broadcaster


__all__ = [
    "get_broadcaster",
    "BroadcastRegistry",
    "BaseSubscriber",
    "QueueSubscriber",
    "SubscriberClosed",
    "EventName",
    "event_stream",
    "sse_response",
    "order_channel",
    "admin_channel",
    "format_event",
    "format_keep_alive",
    "notify_order_status",
    "notify_new_order",
    "notify_new_contact",
]
