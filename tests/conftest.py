"""Shared fixtures: fresh configuration, journal and order resources per test."""

import pytest
from loguru import logger

from orderflow.config import configure, reset_config
from orderflow.orders.publisher import InMemoryEventBus
from orderflow.orders.resources import init_resources, reset_resources
from orderflow.orders.store import InMemoryOrderStore
from orderflow.storage.memory import InMemoryJournalStore


@pytest.fixture(autouse=True)
def reset_orderflow(monkeypatch, tmp_path):
    """Reset configuration and resources before and after each test."""
    # Keep a stray orderflow.config.yaml or ORDERFLOW_* variable out of the tests.
    monkeypatch.setenv("ORDERFLOW_CONFIG", str(tmp_path / "missing.config.yaml"))
    reset_config()
    reset_resources()
    logger.enable("orderflow")
    yield
    reset_config()
    reset_resources()
    logger.enable("orderflow")


@pytest.fixture
def journal():
    """In-memory journal installed as the configured journal."""
    store = InMemoryJournalStore()
    configure(journal=store, registrar_retry_delay=0)
    return store


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def bus():
    return InMemoryEventBus()


@pytest.fixture
def resources(journal, order_store, bus):
    """Process-wide order resources backed by in-memory stores."""
    return init_resources(store=order_store, publisher=bus)
