"""
Order event publishing.

Publishing is fire-and-forget: the orchestrator only cares whether the call
raised. InMemoryEventBus keeps the most recent events it was handed and fans
them out to subscriber queues without ever waiting on a consumer.
"""

import asyncio
import collections
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from orderflow.orders.exceptions import PublisherClosedError
from orderflow.orders.models import OrderEvent, utc_now_iso


@dataclass
class PublishedEvent:
    """An event as it left the bus."""

    detail_type: str
    detail: Dict[str, Any]
    source: str
    bus_name: str
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    time: str = field(default_factory=utc_now_iso)

    @property
    def order_id(self) -> Optional[str]:
        return self.detail.get("orderId")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "source": self.source,
            "detail-type": self.detail_type,
            "detail": self.detail,
            "eventBusName": self.bus_name,
            "time": self.time,
        }


class EventPublisher(ABC):
    @abstractmethod
    async def publish(
        self,
        detail_type: str,
        payload: Union[OrderEvent, Dict[str, Any]],
    ) -> PublishedEvent:
        """
        Publish one event.

        Raises:
            PublisherClosedError: If the publisher was closed
        """
        pass

    async def close(self) -> None:
        pass


@dataclass
class Subscription:
    """A subscriber queue; ``order_id=None`` receives every event."""

    order_id: Optional[str] = None
    maxsize: int = 1000
    subscription_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    queue: "asyncio.Queue[PublishedEvent]" = field(init=False)
    dropped: int = 0

    def __post_init__(self) -> None:
        self.queue = asyncio.Queue(maxsize=self.maxsize)

    def matches(self, event: PublishedEvent) -> bool:
        return self.order_id is None or self.order_id == event.order_id

    async def get(self) -> PublishedEvent:
        return await self.queue.get()


class InMemoryEventBus(EventPublisher):
    """
    In-process event bus.

    Example:
        bus = InMemoryEventBus()
        sub = bus.subscribe(order_id="order-1")
        await bus.publish("OrderCreated", OrderEvent(...))
        event = await sub.get()
    """

    def __init__(
        self,
        name: str = "bartender-orders-bus",
        source: str = "bartender.orders",
        history_limit: int = 1000,
    ) -> None:
        """
        Args:
            name: Bus name stamped on every event
            source: Event source stamped on every event
            history_limit: How many published events ``published`` keeps
        """
        self.name = name
        self.source = source
        self._published: "collections.deque[PublishedEvent]" = collections.deque(
            maxlen=history_limit
        )
        self._subscriptions: Dict[str, Subscription] = {}
        self._closed = False
        self._lock = threading.RLock()

    @property
    def published(self) -> List[PublishedEvent]:
        with self._lock:
            return list(self._published)

    @property
    def closed(self) -> bool:
        return self._closed

    def detail_types(self, order_id: Optional[str] = None) -> List[str]:
        """Detail types published so far, optionally for one order."""
        return [
            e.detail_type
            for e in self.published
            if order_id is None or e.order_id == order_id
        ]

    async def publish(
        self,
        detail_type: str,
        payload: Union[OrderEvent, Dict[str, Any]],
    ) -> PublishedEvent:
        detail = payload.to_detail() if isinstance(payload, OrderEvent) else dict(payload)
        event = PublishedEvent(
            detail_type=detail_type,
            detail=detail,
            source=self.source,
            bus_name=self.name,
        )

        with self._lock:
            if self._closed:
                raise PublisherClosedError(self.name)
            self._published.append(event)
            subscriptions = list(self._subscriptions.values())

        for sub in subscriptions:
            if not sub.matches(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    "Subscriber queue full, dropping event",
                    subscription_id=sub.subscription_id,
                    order_id=event.order_id,
                    detail_type=detail_type,
                )

        logger.debug(
            f"Published {detail_type}",
            order_id=event.order_id,
            bus_name=self.name,
        )
        return event

    def subscribe(self, order_id: Optional[str] = None, maxsize: int = 1000) -> Subscription:
        sub = Subscription(order_id=order_id, maxsize=maxsize)
        with self._lock:
            self._subscriptions[sub.subscription_id] = sub
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription.subscription_id, None)

    async def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscriptions.clear()

    def clear(self) -> None:
        with self._lock:
            self._published.clear()
