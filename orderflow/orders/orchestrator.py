"""
Order orchestrator workflow.

One execution per order, run id = order id. The workflow validates the
request, applies admission control, persists the order and then waits three
times for a bartender callback (accepted, ready, completed), publishing an
event each time it starts waiting. Any error or wait timeout ends in the
cancellation path; the workflow always returns ``{orderId, status}``.

Step bodies take plain JSON arguments and reach the store and publisher
through get_resources(), so the journal records readable inputs.
"""

import json
import uuid
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError

from orderflow.context import get_context
from orderflow.core.exceptions import CallbackTimeoutError, StepFailedError
from orderflow.core.workflow import workflow
from orderflow.engine.executor import start
from orderflow.observability.logging import bind_order_context
from orderflow.orders.exceptions import OrderTransitionError, OrderValidationError
from orderflow.orders.models import MenuItem, Order, OrderEvent, OrderEventType, OrderStatus
from orderflow.orders.resources import get_resources
from orderflow.storage.base import JournalStore

ORCHESTRATOR_NAME = "order-orchestrator"
NO_CAPACITY_REASON = "No available bartender capacity"
TIMEOUT_REASON = "Timeout waiting for response"


# Step bodies


def validate_order(request_id: Optional[str], body: Any) -> Dict[str, Any]:
    """Build the pending order from the request, or raise OrderValidationError."""
    if not isinstance(body, dict):
        raise OrderValidationError("Request body is required")
    if not body.get("customerId") or not body.get("item"):
        raise OrderValidationError("customerId and item are required")
    if not request_id:
        raise OrderValidationError("requestId is required")

    try:
        item = MenuItem.model_validate(body["item"])
    except ValidationError as e:
        raise OrderValidationError(f"Invalid item: {e.errors()[0]['msg']}") from e

    return Order(id=request_id, customer_id=str(body["customerId"]), item=item).to_dict()


async def check_capacity(ceiling: int) -> bool:
    # Read once without a lock: two concurrent admissions may both pass.
    open_orders = await get_resources().store.count_by_status(OrderStatus.ACCEPTED)
    logger.info("Open orders count", open_orders=open_orders, capacity_ceiling=ceiling)
    return open_orders < ceiling


async def create_order(order_data: Dict[str, Any]) -> None:
    await get_resources().store.put(Order.from_dict(order_data))


async def update_order_status(
    order_id: str,
    status: str,
    bartender_id: Optional[str] = None,
) -> Dict[str, Any]:
    bind_order_context(order_id).info(
        "Updating order status", status=status, bartender_id=bartender_id
    )
    order = await get_resources().store.update_status(
        order_id, OrderStatus(status), bartender_id=bartender_id
    )
    return order.to_dict()


async def publish_order_event(detail_type: str, detail: Dict[str, Any]) -> str:
    event = await get_resources().publisher.publish(detail_type, detail)
    return event.event_id


async def complete_order(order_id: str) -> Dict[str, Any]:
    order_data = await update_order_status(order_id, OrderStatus.COMPLETED.value)
    order = Order.from_dict(order_data)
    await publish_order_event(
        OrderEventType.COMPLETED.value,
        OrderEvent.for_order(order, OrderStatus.COMPLETED).to_detail(),
    )
    return order_data


# Callback payloads


def parse_callback_payload(payload: Any) -> Dict[str, Any]:
    """Callback output is ``{status, bartenderId}``, possibly as a JSON string."""
    if isinstance(payload, str):
        payload = json.loads(payload)
    if not isinstance(payload, dict):
        raise OrderValidationError("Callback payload must be an object")
    return payload


def expect_status(order_id: str, payload: Dict[str, Any], expected: OrderStatus) -> None:
    if payload.get("status") != expected.value:
        raise OrderTransitionError(order_id, expected.value, payload.get("status"))


def _registrar(detail_type: OrderEventType, order: Order, status: OrderStatus) -> Any:
    async def register(token: str) -> None:
        detail = OrderEvent.for_order(order, status, task_token=token).to_detail()
        await publish_order_event(detail_type.value, detail)

    return register


def _cancel_reason(error: Exception) -> str:
    if isinstance(error, CallbackTimeoutError):
        return TIMEOUT_REASON
    if isinstance(error, StepFailedError):
        return error.error
    return str(error) or type(error).__name__


@workflow(name=ORCHESTRATOR_NAME)
async def order_orchestrator(event: Dict[str, Any]) -> Dict[str, str]:
    """
    Drive one order from request to a terminal status.

    Args:
        event: ``{"request_id": <order id>, "body": {"customerId", "item"}}``

    Returns:
        ``{"orderId": ..., "status": "completed" | "rejected" | "cancelled"}``
    """
    ctx = get_context()
    config = get_resources().config

    request_id = event.get("request_id")
    body = event.get("body")
    log = bind_order_context(request_id or "unknown", ctx.run_id)
    order_created = False

    try:
        order = Order.from_dict(await ctx.step("validate-order", validate_order, request_id, body))

        has_capacity = await ctx.step("check-capacity", check_capacity, config.capacity_ceiling)
        if not has_capacity:
            order.status = OrderStatus.REJECTED
            await ctx.step(
                "reject-order",
                publish_order_event,
                OrderEventType.REJECTED.value,
                OrderEvent.for_order(order, OrderStatus.REJECTED, reason=NO_CAPACITY_REASON).to_detail(),
            )
            log.info("Order rejected, no capacity")
            return {"orderId": order.id, "status": OrderStatus.REJECTED.value}

        await ctx.step("create-order", create_order, order.to_dict())
        order_created = True

        accepted = parse_callback_payload(
            await ctx.wait_for_callback(
                "wait-for-acceptance",
                _registrar(OrderEventType.CREATED, order, OrderStatus.PENDING),
                timeout=config.acceptance_timeout,
            )
        )
        expect_status(order.id, accepted, OrderStatus.ACCEPTED)
        order = Order.from_dict(
            await ctx.step(
                "order-accepted",
                update_order_status,
                order.id,
                OrderStatus.ACCEPTED.value,
                accepted.get("bartenderId"),
            )
        )

        ready = parse_callback_payload(
            await ctx.wait_for_callback(
                "wait-for-ready",
                _registrar(OrderEventType.ACCEPTED, order, OrderStatus.ACCEPTED),
                timeout=config.ready_timeout,
            )
        )
        expect_status(order.id, ready, OrderStatus.READY)
        order = Order.from_dict(
            await ctx.step("order-ready", update_order_status, order.id, OrderStatus.READY.value)
        )

        completed = parse_callback_payload(
            await ctx.wait_for_callback(
                "wait-for-completion",
                _registrar(OrderEventType.READY_FOR_PICKUP, order, OrderStatus.READY),
                timeout=config.completion_timeout,
            )
        )
        expect_status(order.id, completed, OrderStatus.COMPLETED)
        await ctx.step("order-completed", complete_order, order.id)

        log.info("Order completed")
        return {"orderId": order.id, "status": OrderStatus.COMPLETED.value}

    except Exception as error:
        order_id = request_id or "unknown"
        reason = _cancel_reason(error)
        log.warning("Cancelling order", reason=reason, error_type=type(error).__name__)

        if order_created:
            try:
                await ctx.step("cancel-order", update_order_status, order_id, OrderStatus.CANCELLED.value)
            except Exception as e:
                log.error("Failed to mark order cancelled", error=str(e))

        customer_id = body.get("customerId") if isinstance(body, dict) else None
        item = body.get("item") if isinstance(body, dict) else None
        cancelled = OrderEvent(
            order_id=order_id,
            customer_id=customer_id,
            status=OrderStatus.CANCELLED,
            item=item if isinstance(item, dict) else None,
            reason=reason,
        )
        try:
            await ctx.step(
                "publish-cancelled",
                publish_order_event,
                OrderEventType.CANCELLED.value,
                cancelled.to_detail(),
            )
        except Exception as e:
            log.error("Failed to publish cancellation", error=str(e))

        return {"orderId": order_id, "status": OrderStatus.CANCELLED.value}


async def start_order(
    body: Any,
    request_id: Optional[str] = None,
    storage: Optional[JournalStore] = None,
) -> str:
    """
    Start an orchestrator execution for a create-order request.

    The order id doubles as the run id so a callback token, an order and its
    execution can always be matched up.

    Returns:
        The order id
    """
    request_id = request_id or str(uuid.uuid4())
    await start(
        order_orchestrator,
        {"request_id": request_id, "body": body},
        run_id=request_id,
        storage=storage,
    )
    return request_id
