"""
Integration tests for durable order executions.

Orders run through the real journal: every callback submission resumes the
execution by replaying its journal.
"""

import json
from datetime import UTC, datetime, timedelta

import pytest

from orderflow import (
    CallbackExpiredError,
    ExecutionStatus,
    FileJournalStore,
    configure,
    expire_callbacks,
    get_execution,
    resume,
    submit_callback,
)
from orderflow.orders import (
    InMemoryEventBus,
    MenuItem,
    Order,
    OrderStatus,
    FileOrderStore,
    init_resources,
    start_order,
)
from orderflow.orders.orchestrator import NO_CAPACITY_REASON, TIMEOUT_REASON

pytestmark = pytest.mark.integration

ITEM = {"id": "negroni", "name": "Negroni", "price": 11.0, "category": "cocktails"}
BODY = {"customerId": "customer-1", "item": ITEM}


class Crash(BaseException):
    """Simulates the process dying in the middle of a step."""


def latest_token(bus, order_id):
    """The task token a bartender would read from the latest event."""
    events = [e for e in bus.published if e.order_id == order_id]
    return events[-1].detail["taskToken"]


def callback(status, bartender_id="bartender-1"):
    return {"status": status, "bartenderId": bartender_id}


class TestOrderLifecycle:
    """Tests for an order moving through every status."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, resources, order_store, bus):
        order_id = await start_order(BODY, request_id="order-1")
        assert order_id == "order-1"

        execution = await get_execution(order_id)
        assert execution.status == ExecutionStatus.SUSPENDED
        assert bus.detail_types(order_id) == ["OrderCreated"]
        assert (await order_store.get(order_id)).status == OrderStatus.PENDING

        await submit_callback(latest_token(bus, order_id), callback("accepted"))
        order = await order_store.get(order_id)
        assert order.status == OrderStatus.ACCEPTED
        assert order.bartender_id == "bartender-1"

        await submit_callback(latest_token(bus, order_id), callback("ready"))
        assert (await order_store.get(order_id)).status == OrderStatus.READY

        result = await submit_callback(latest_token(bus, order_id), callback("completed"))

        assert result.execution_status == ExecutionStatus.COMPLETED
        assert result.result == {"orderId": order_id, "status": "completed"}
        assert (await order_store.get(order_id)).status == OrderStatus.COMPLETED
        assert bus.detail_types(order_id) == [
            "OrderCreated",
            "OrderAccepted",
            "OrderReadyForPickup",
            "OrderCompleted",
        ]

    @pytest.mark.asyncio
    async def test_bartender_set_once_on_acceptance(self, resources, order_store, bus):
        """Later callbacks naming another bartender do not change the order's bartender."""
        await start_order(BODY, request_id="order-1")
        pending = await order_store.get("order-1")
        assert pending.bartender_id is None
        assert "bartenderId" not in pending.to_dict()

        await submit_callback(latest_token(bus, "order-1"), callback("accepted", "b1"))
        await submit_callback(latest_token(bus, "order-1"), callback("ready", "b2"))
        assert (await order_store.get("order-1")).bartender_id == "b1"

        await submit_callback(latest_token(bus, "order-1"), callback("completed", "b3"))

        order = await order_store.get("order-1")
        assert order.status == OrderStatus.COMPLETED
        assert order.bartender_id == "b1"
        published = [e.detail.get("bartenderId") for e in bus.published if e.order_id == "order-1"]
        assert published == [None, "b1", "b1", "b1"]

    @pytest.mark.asyncio
    async def test_generated_order_id(self, resources, bus):
        order_id = await start_order(BODY)

        assert len(order_id) == 36
        assert bus.published[0].detail["taskToken"].startswith(f"{order_id}:cb_")

    @pytest.mark.asyncio
    async def test_callback_payload_as_json_string(self, resources, order_store, bus):
        await start_order(BODY, request_id="order-1")

        await submit_callback(latest_token(bus, "order-1"), json.dumps(callback("accepted")))

        assert (await order_store.get("order-1")).status == OrderStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_each_wait_publishes_once(self, resources, bus):
        """Replays on later submissions do not republish earlier events."""
        await start_order(BODY, request_id="order-1")
        await submit_callback(latest_token(bus, "order-1"), callback("accepted"))
        await resume("order-1")
        await resume("order-1")

        assert bus.detail_types("order-1") == ["OrderCreated", "OrderAccepted"]


class TestAdmissionControl:
    """Tests for the capacity ceiling."""

    async def _fill(self, order_store, count):
        item = MenuItem.model_validate(ITEM)
        for i in range(count):
            await order_store.put(
                Order(id=f"busy-{i}", customer_id="c", item=item, status=OrderStatus.ACCEPTED)
            )

    @pytest.mark.asyncio
    async def test_rejected_at_ceiling(self, resources, order_store, bus):
        await self._fill(order_store, 5)

        order_id = await start_order(BODY, request_id="order-6")

        assert await resume(order_id) == {"orderId": "order-6", "status": "rejected"}
        assert bus.detail_types(order_id) == ["OrderRejected"]
        assert bus.published[-1].detail["reason"] == NO_CAPACITY_REASON
        assert await order_store.get(order_id) is None

    @pytest.mark.asyncio
    async def test_admitted_below_ceiling(self, resources, order_store, bus):
        await self._fill(order_store, 4)

        await start_order(BODY, request_id="order-5")

        assert bus.detail_types("order-5") == ["OrderCreated"]


class TestCancellation:
    """Tests for the paths that end in a cancelled order."""

    @pytest.mark.asyncio
    async def test_invalid_request(self, resources, order_store, bus):
        order_id = await start_order({"item": ITEM}, request_id="order-1")

        assert await resume(order_id) == {"orderId": "order-1", "status": "cancelled"}
        assert bus.detail_types() == ["OrderCancelled"]
        assert bus.published[0].detail["reason"] == "customerId and item are required"
        assert len(order_store) == 0

    @pytest.mark.asyncio
    async def test_transition_mismatch(self, resources, order_store, bus):
        await start_order(BODY, request_id="order-1")

        result = await submit_callback(latest_token(bus, "order-1"), callback("ready"))

        assert result.result == {"orderId": "order-1", "status": "cancelled"}
        assert (await order_store.get("order-1")).status == OrderStatus.CANCELLED
        assert bus.detail_types("order-1") == ["OrderCreated", "OrderCancelled"]

    @pytest.mark.asyncio
    async def test_timeout_then_late_callback(self, resources, order_store, bus):
        """After a timeout the token is dead and the order stays cancelled."""
        await start_order(BODY, request_id="order-1")
        token = latest_token(bus, "order-1")

        expired = await expire_callbacks(now=datetime.now(UTC) + timedelta(minutes=6))

        assert expired == [token]
        assert (await order_store.get("order-1")).status == OrderStatus.CANCELLED
        assert bus.published[-1].detail["reason"] == TIMEOUT_REASON

        with pytest.raises(CallbackExpiredError):
            await submit_callback(token, callback("accepted"))

        assert (await order_store.get("order-1")).status == OrderStatus.CANCELLED
        assert bus.detail_types("order-1") == ["OrderCreated", "OrderCancelled"]

    @pytest.mark.asyncio
    async def test_completion_wait_times_out(self, resources, order_store, bus):
        """The completion wait uses its own, longer deadline."""
        await start_order(BODY, request_id="order-1")
        await submit_callback(latest_token(bus, "order-1"), callback("accepted"))
        await submit_callback(latest_token(bus, "order-1"), callback("ready"))

        assert await expire_callbacks(now=datetime.now(UTC) + timedelta(minutes=6)) == []

        await expire_callbacks(now=datetime.now(UTC) + timedelta(minutes=11))

        assert (await order_store.get("order-1")).status == OrderStatus.CANCELLED


class TestRecovery:
    """Tests for resuming after a crash or a restart."""

    @pytest.mark.asyncio
    async def test_crash_during_status_update(self, resources, order_store, bus, monkeypatch):
        """Work finished before the crash is replayed, not repeated."""
        await start_order(BODY, request_id="order-1")
        real_update = order_store.update_status
        crashes = {"left": 1}

        async def crashing_update(*args, **kwargs):
            if crashes["left"]:
                crashes["left"] -= 1
                raise Crash()
            return await real_update(*args, **kwargs)

        monkeypatch.setattr(order_store, "update_status", crashing_update)

        with pytest.raises(Crash):
            await submit_callback(latest_token(bus, "order-1"), callback("accepted"))

        assert (await get_execution("order-1")).status == ExecutionStatus.RUNNING

        await resume("order-1")

        assert (await order_store.get("order-1")).status == OrderStatus.ACCEPTED
        assert bus.detail_types("order-1") == ["OrderCreated", "OrderAccepted"]

    @pytest.mark.asyncio
    async def test_restart_with_file_stores(self, tmp_path):
        """A new process with fresh store instances finishes the order."""
        configure(journal=FileJournalStore(str(tmp_path / "journal")), registrar_retry_delay=0)
        first_bus = InMemoryEventBus()
        init_resources(store=FileOrderStore(str(tmp_path / "orders")), publisher=first_bus)

        await start_order(BODY, request_id="order-1")
        token = latest_token(first_bus, "order-1")

        # Restart
        journal = FileJournalStore(str(tmp_path / "journal"))
        configure(journal=journal)
        store = FileOrderStore(str(tmp_path / "orders"))
        second_bus = InMemoryEventBus()
        init_resources(store=store, publisher=second_bus)

        await submit_callback(token, callback("accepted"))
        await submit_callback(latest_token(second_bus, "order-1"), callback("ready"))
        result = await submit_callback(
            latest_token(second_bus, "order-1"), callback("completed")
        )

        assert result.result == {"orderId": "order-1", "status": "completed"}
        assert (await store.get("order-1")).status == OrderStatus.COMPLETED
        assert second_bus.detail_types() == [
            "OrderAccepted",
            "OrderReadyForPickup",
            "OrderCompleted",
        ]
        assert (await journal.get_execution("order-1")).status == ExecutionStatus.COMPLETED
