"""
Live Update Subscriber Abstract Base Class

Defines the handle interface the broadcast registry talks to. A handle
is anything that can accept an event and be closed; the registry never
touches transport objects directly, so tests can register fakes.

Version: 1.0.0
"""

import enum
from abc import ABC, abstractmethod
from typing import Any


class EventName(str, enum.Enum):
    """Event types pushed over the live update streams."""
    CONNECTED = "connected"
    STATUS_UPDATE = "status-update"
    NEW_ORDER = "new-order"
    NEW_CONTACT = "new-contact"


class SubscriberClosed(Exception):
    """Raised by a handle that can no longer accept events."""


class BaseSubscriber(ABC):
    """Abstract base class for a live update subscriber handle."""

    @abstractmethod
    def send(self, event: str, payload: Any) -> None:
        """
        Hand one event to the subscriber without blocking.

        Raises:
            SubscriberClosed: The subscriber is gone or cannot keep up.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop accepting events. Must be safe to call more than once."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass
