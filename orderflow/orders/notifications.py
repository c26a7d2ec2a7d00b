"""
Push-notification fan-out.

Every bus event becomes a notification on the topic
``orders/{orderId}/status`` carrying the flattened order detail plus the
event type and the time the notification was built.
"""

from dataclasses import dataclass
from typing import Any, Dict

from orderflow.orders.models import utc_now_iso
from orderflow.orders.publisher import PublishedEvent

NOTIFICATION_FIELDS = (
    "orderId",
    "customerId",
    "status",
    "item",
    "taskToken",
    "bartenderId",
    "reason",
)


@dataclass
class Notification:
    topic: str
    payload: Dict[str, Any]


def order_topic(order_id: str) -> str:
    return f"orders/{order_id}/status"


def build_notification(event: PublishedEvent) -> Notification:
    payload: Dict[str, Any] = {
        key: event.detail[key] for key in NOTIFICATION_FIELDS if key in event.detail
    }
    payload["eventType"] = event.detail_type
    payload["timestamp"] = utc_now_iso()
    return Notification(topic=order_topic(str(event.order_id)), payload=payload)
