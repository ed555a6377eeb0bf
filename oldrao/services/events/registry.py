"""
Event Broadcast Registry

In-process pub/sub for live order updates. Subscribers live in one of
two disjoint buckets:

    - an order channel, keyed by order id, created on first subscribe and
      removed as soon as its last subscriber leaves
    - the admin channel, a single set that exists for the registry's lifetime

Publishing is fire-and-forget: a subscriber that fails to accept an event
is dropped exactly as if it had disconnected, and publishing to a channel
nobody listens on does nothing. Events are never stored or replayed.

All methods are synchronous and run on the event loop thread, so no
locking is needed as long as every caller is a coroutine on that loop.

Version: 1.0.0
"""

import logging
from typing import Any, Iterable

from oldrao.services.events.base import BaseSubscriber, SubscriberClosed

logger = logging.getLogger(__name__)


class BroadcastRegistry:
    """Maps order ids and the admin channel to open subscriber handles."""

    def __init__(self):
        self._orders: dict[str, set[BaseSubscriber]] = {}
        self._admins: set[BaseSubscriber] = set()
        self._closed = False

    # =========================================================================
    # ORDER CHANNELS
    # =========================================================================

    def subscribe_order(self, order_id: str, subscriber: BaseSubscriber) -> None:
        """Register ``subscriber`` for updates to one order."""
        if not order_id:
            raise ValueError("order_id must be a non-empty identifier")
        if self._refuse_if_closed(subscriber):
            return
        self._orders.setdefault(order_id, set()).add(subscriber)
        logger.debug(f"Subscriber joined order {order_id} ({len(self._orders[order_id])} watching)")

    def unsubscribe_order(self, order_id: str, subscriber: BaseSubscriber) -> None:
        """Remove ``subscriber``; no-op if it was never registered."""
        subscribers = self._orders.get(order_id)
        if subscribers is None:
            return
        subscribers.discard(subscriber)
        if not subscribers:
            del self._orders[order_id]
        logger.debug(f"Subscriber left order {order_id}")

    def publish_to_order(self, order_id: str, event: str, payload: Any) -> int:
        """
        Push one event to everyone watching ``order_id``.

        Returns:
            Number of subscribers the event was handed to.
        """
        subscribers = self._orders.get(order_id)
        if not subscribers:
            return 0
        delivered, dead = self._deliver(subscribers, event, payload)
        for subscriber in dead:
            self.unsubscribe_order(order_id, subscriber)
        return delivered

    # =========================================================================
    # ADMIN CHANNEL
    # =========================================================================

    def subscribe_admin(self, subscriber: BaseSubscriber) -> None:
        if self._refuse_if_closed(subscriber):
            return
        self._admins.add(subscriber)
        logger.debug(f"Admin subscriber joined ({len(self._admins)} connected)")

    def unsubscribe_admin(self, subscriber: BaseSubscriber) -> None:
        self._admins.discard(subscriber)
        logger.debug("Admin subscriber left")

    def publish_to_admins(self, event: str, payload: Any) -> int:
        """Push one event to every admin dashboard stream."""
        if not self._admins:
            return 0
        delivered, dead = self._deliver(self._admins, event, payload)
        for subscriber in dead:
            self.unsubscribe_admin(subscriber)
        return delivered

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def order_channels(self) -> frozenset[str]:
        """Order ids that currently have at least one subscriber."""
        return frozenset(self._orders)

    def order_subscriber_count(self, order_id: str) -> int:
        return len(self._orders.get(order_id, ()))

    @property
    def admin_subscriber_count(self) -> int:
        return len(self._admins)

    @property
    def total_subscribers(self) -> int:
        return sum(len(s) for s in self._orders.values()) + len(self._admins)

    def is_order_subscriber(self, order_id: str, subscriber: BaseSubscriber) -> bool:
        return subscriber in self._orders.get(order_id, ())

    def is_admin_subscriber(self, subscriber: BaseSubscriber) -> bool:
        return subscriber in self._admins

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """
        Close every handle and forget all channels (process shutdown).

        Handles subscribed afterwards are closed on arrival.
        """
        if self._closed:
            return
        self._closed = True
        count = self.total_subscribers
        for subscriber in self._all_subscribers():
            subscriber.close()
        self._orders.clear()
        self._admins.clear()
        logger.info(f"Broadcast registry closed ({count} subscribers disconnected)")

    def _refuse_if_closed(self, subscriber: BaseSubscriber) -> bool:
        """Close ``subscriber`` straight away once the registry has shut down."""
        if not self._closed:
            return False
        logger.info("Registry closed, refusing new subscriber")
        subscriber.close()
        return True

    def _all_subscribers(self) -> Iterable[BaseSubscriber]:
        for subscribers in list(self._orders.values()):
            yield from list(subscribers)
        yield from list(self._admins)

    @staticmethod
    def _deliver(
        subscribers: set[BaseSubscriber],
        event: str,
        payload: Any,
    ) -> tuple[int, list[BaseSubscriber]]:
        """Send to a snapshot of ``subscribers``; collect the ones that failed."""
        delivered = 0
        dead = []
        for subscriber in list(subscribers):
            try:
                subscriber.send(event, payload)
                delivered += 1
            except SubscriberClosed as e:
                logger.info(f"Dropping subscriber on '{event}': {e}")
                dead.append(subscriber)
            except Exception:
                logger.exception(f"Subscriber failed on '{event}', dropping it")
                dead.append(subscriber)
        for subscriber in dead:
            try:
                subscriber.close()
            except Exception:
                logger.exception("Error closing dropped subscriber")
        return delivered, dead
