"""
Queue-backed subscriber handle used by the streaming endpoints.

Events are handed over with ``put_nowait`` so publishing never awaits
network I/O; the stream generator drains the queue at its own pace.

Version: 1.0.0
"""

import asyncio
import logging
from typing import Any, Optional

from oldrao.services.events.base import BaseSubscriber, SubscriberClosed

logger = logging.getLogger(__name__)

# Marks the end of the stream once the handle is closed
_CLOSED = None


class QueueSubscriber(BaseSubscriber):
    """One open event stream, buffered by a bounded FIFO queue."""

    def __init__(self, max_pending: int = 100):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending + 1)
        self._max_pending = max_pending
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, event: str, payload: Any) -> None:
        if self._closed:
            raise SubscriberClosed("subscriber already closed")
        # One slot is held back for the close marker
        if self._queue.qsize() >= self._max_pending:
            raise SubscriberClosed(f"{self._max_pending} events pending, consumer is stalled")
        self._queue.put_nowait((event, payload))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Undelivered events are dropped; clients reload full state anyway
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def receive(self) -> Optional[tuple[str, Any]]:
        """
        Wait for the next event.

        Returns:
            ``(event, payload)``, or None once the handle has been closed.
        """
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()
