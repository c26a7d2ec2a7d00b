"""Helpers shared by the order and callback commands."""

from typing import Any, Dict, Optional

import click

from orderflow.orders.resources import OrderResources, init_resources
from orderflow.serialization import deserialize
from orderflow.storage.schemas import CallbackStatus


def open_resources() -> OrderResources:
    """Build the order resources for one CLI invocation."""
    return init_resources()


async def order_summary(resources: OrderResources, order_id: str) -> Dict[str, Any]:
    """
    Current state of an order as the CLI reports it.

    Orders that were rejected or failed validation are never stored, so
    their status comes from the workflow result. The pending task token is
    what a bartender passes to ``orderflow callbacks submit``.
    """
    journal = resources.config.get_journal()
    order = await resources.store.get(order_id)
    execution = await journal.get_execution(order_id)

    result = deserialize(execution.result) if execution and execution.result else None
    if order is not None:
        status = order.status.value
    elif isinstance(result, dict):
        status = result.get("status", "unknown")
    else:
        status = "unknown"

    pending = await journal.list_callbacks(run_id=order_id, status=CallbackStatus.PENDING)
    task_token: Optional[str] = pending[-1].token if pending else None

    return {
        "orderId": order_id,
        "status": status,
        "bartenderId": order.bartender_id if order else None,
        "executionStatus": execution.status.value if execution else None,
        "waitingFor": pending[-1].name if pending else None,
        "taskToken": task_token,
    }


def fail(ctx: click.Context, error: Exception) -> None:
    """Abort the command; re-raise the original error in verbose mode."""
    if ctx.obj.get("verbose"):
        raise error
    raise click.Abort()
