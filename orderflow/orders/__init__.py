"""
Bar order lifecycle built on the durable engine.

- order_orchestrator: the workflow driving one order
- OrderStore: orders, the status index and the menu
- InMemoryEventBus: order event publishing and subscriptions
- build_notification: push payloads for subscribers
"""

from orderflow.orders.exceptions import (
    OrderError,
    OrderNotFoundError,
    OrderTransitionError,
    OrderValidationError,
    PublisherClosedError,
)
from orderflow.orders.models import (
    OPEN_STATUSES,
    MenuItem,
    Order,
    OrderEvent,
    OrderEventType,
    OrderStatus,
)
from orderflow.orders.notifications import Notification, build_notification, order_topic
from orderflow.orders.orchestrator import ORCHESTRATOR_NAME, order_orchestrator, start_order
from orderflow.orders.publisher import (
    EventPublisher,
    InMemoryEventBus,
    PublishedEvent,
    Subscription,
)
from orderflow.orders.resources import (
    OrderResources,
    get_resources,
    init_resources,
    reset_resources,
)
from orderflow.orders.store import (
    FileOrderStore,
    InMemoryOrderStore,
    OrderStore,
    create_order_store,
)

__all__ = [
    # Models
    "Order",
    "OrderStatus",
    "OrderEvent",
    "OrderEventType",
    "MenuItem",
    "OPEN_STATUSES",
    # Workflow
    "ORCHESTRATOR_NAME",
    "order_orchestrator",
    "start_order",
    # Store
    "OrderStore",
    "InMemoryOrderStore",
    "FileOrderStore",
    "create_order_store",
    # Publishing
    "EventPublisher",
    "InMemoryEventBus",
    "PublishedEvent",
    "Subscription",
    "Notification",
    "build_notification",
    "order_topic",
    # Resources
    "OrderResources",
    "init_resources",
    "get_resources",
    "reset_resources",
    # Errors
    "OrderError",
    "OrderValidationError",
    "OrderNotFoundError",
    "OrderTransitionError",
    "PublisherClosedError",
]
