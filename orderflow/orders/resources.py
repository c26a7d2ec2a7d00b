"""
Process-wide order resources.

The store and the event publisher are built once at process start and
shared by every orchestrator execution. The HTTP app builds them in its
lifespan, the CLI at the start of each command, tests per test.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from orderflow.config import OrderflowConfig, get_config
from orderflow.orders.publisher import EventPublisher, InMemoryEventBus
from orderflow.orders.store import OrderStore, create_order_store


@dataclass
class OrderResources:
    store: OrderStore
    publisher: EventPublisher
    config: OrderflowConfig


_resources: Optional[OrderResources] = None


def init_resources(
    store: Optional[OrderStore] = None,
    publisher: Optional[EventPublisher] = None,
    config: Optional[OrderflowConfig] = None,
) -> OrderResources:
    """
    Build (or replace) the process-wide resources.

    Anything not passed in is created from the configuration.
    """
    global _resources
    if config is None:
        config = get_config()
    if store is None:
        store = create_order_store(config.order_store_backend, config.order_store_path)
    if publisher is None:
        publisher = InMemoryEventBus(
            name=config.event_bus_name,
            source=config.event_source,
            history_limit=config.event_history_limit,
        )
    resources = OrderResources(
        store=store,
        publisher=publisher,
        config=config,
    )
    _resources = resources
    logger.debug(
        "Order resources initialized",
        store=type(resources.store).__name__,
        publisher=type(resources.publisher).__name__,
    )
    return resources


def get_resources() -> OrderResources:
    """
    Get the process-wide resources.

    Raises:
        RuntimeError: If init_resources() was not called
    """
    if _resources is None:
        raise RuntimeError(
            "Order resources are not initialized. Call orderflow.orders.init_resources() first."
        )
    return _resources


def reset_resources() -> None:
    """Forget the resources. Primarily used for testing."""
    global _resources
    _resources = None
