"""
Status-change notifications.

Route handlers call these after their database commit succeeds. Each
helper builds the wire payload and hands it to the registry; nothing
here awaits I/O, and any failure is logged rather than raised so the
HTTP response is never affected.

Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Any, Optional

from oldrao.models import ContactMessage, Order
from oldrao.services.events.base import EventName
from oldrao.services.events.registry import BroadcastRegistry

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def order_status_payload(order: Order) -> dict[str, Any]:
    return {"id": str(order.id), "status": order.status.value}


def new_order_payload(order: Order) -> dict[str, Any]:
    return {
        "id": str(order.id),
        "total": order.total,
        "name": order.name,
        "createdAt": _iso(order.created_at),
        "status": order.status.value,
    }


def new_contact_payload(message: ContactMessage) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "name": message.name,
        "email": message.email,
        "createdAt": _iso(message.created_at),
    }


def notify_order_status(registry: BroadcastRegistry, order: Order) -> None:
    """Tell the order's viewers and every admin dashboard about a new status."""
    try:
        payload = order_status_payload(order)
        viewers = registry.publish_to_order(payload["id"], EventName.STATUS_UPDATE, payload)
        admins = registry.publish_to_admins(EventName.STATUS_UPDATE, payload)
        logger.info(
            f"Order #{order.id} -> {payload['status']} pushed to "
            f"{viewers} viewer(s), {admins} admin(s)"
        )
    except Exception:
        logger.exception(f"Failed to publish status update for Order #{order.id}")


def notify_new_order(registry: BroadcastRegistry, order: Order) -> None:
    try:
        admins = registry.publish_to_admins(EventName.NEW_ORDER, new_order_payload(order))
        logger.debug(f"New order #{order.id} pushed to {admins} admin(s)")
    except Exception:
        logger.exception(f"Failed to publish new order #{order.id}")


def notify_new_contact(registry: BroadcastRegistry, message: ContactMessage) -> None:
    try:
        admins = registry.publish_to_admins(EventName.NEW_CONTACT, new_contact_payload(message))
        logger.debug(f"Contact message #{message.id} pushed to {admins} admin(s)")
    except Exception:
        logger.exception(f"Failed to publish contact message #{message.id}")
