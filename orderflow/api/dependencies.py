"""FastAPI dependencies."""

from orderflow.orders.resources import OrderResources, get_resources
from orderflow.storage.base import JournalStore


async def get_order_resources() -> OrderResources:
    """The process-wide order resources built by the app lifespan."""
    return get_resources()


async def get_journal_store() -> JournalStore:
    """Journal store of the configured engine."""
    return get_resources().config.get_journal()
