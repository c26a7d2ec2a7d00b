"""Order commands (create, show, list)."""

import json
from typing import Any, Dict, Optional

import click

from orderflow.cli.output.formatters import (
    format_json,
    format_key_value,
    format_plain,
    format_table,
    print_error,
    print_info,
    print_success,
)
from orderflow.cli.utils.async_helpers import async_command
from orderflow.cli.utils.orders import fail, open_resources, order_summary
from orderflow.orders.models import OPEN_STATUSES
from orderflow.orders.orchestrator import start_order
from orderflow.orders.resources import OrderResources


@click.group(name="orders")
def orders() -> None:
    """Create and inspect orders."""
    pass


async def _resolve_item(resources: OrderResources, item: str) -> Dict[str, Any]:
    """An item is either a JSON object or the id of a menu item."""
    if item.lstrip().startswith("{"):
        return json.loads(item)

    for menu_item in await resources.store.list_menu():
        if menu_item.id == item:
            return menu_item.snapshot()
    raise click.BadParameter(f"No menu item with id '{item}'", param_hint="--item")


def _print_summary(output: str, summary: Dict[str, Any], title: str) -> None:
    if output == "json":
        format_json(summary)
    elif output == "plain":
        format_plain([f"{summary['orderId']} {summary['status']} {summary['taskToken'] or '-'}"])
    else:
        format_key_value(
            {
                "Order ID": summary["orderId"],
                "Status": summary["status"],
                "Bartender": summary["bartenderId"],
                "Execution": summary["executionStatus"],
                "Waiting for": summary["waitingFor"],
                "Task token": summary["taskToken"],
            },
            title=title,
        )


@orders.command(name="create")
@click.option("--customer", "customer_id", required=True, help="Customer id")
@click.option("--item", required=True, help="Menu item id, or the item as a JSON object")
@click.option("--order-id", help="Order id (generated when omitted)")
@click.pass_context
@async_command
async def create_order(
    ctx: click.Context,
    customer_id: str,
    item: str,
    order_id: Optional[str],
) -> None:
    """
    Place an order and run its workflow until it waits for a bartender.

    Examples:

        orderflow orders create --customer c-1 --item mojito

        orderflow orders create --customer c-1 --item '{"id": "m1", "name": "Mojito", "price": 12}'
    """
    output = ctx.obj["output"]
    resources = open_resources()

    try:
        body = {"customerId": customer_id, "item": await _resolve_item(resources, item)}
        order_id = await start_order(body, request_id=order_id)
        summary = await order_summary(resources, order_id)
    except click.BadParameter:
        raise
    except Exception as e:
        print_error(f"Failed to create order: {e}")
        fail(ctx, e)
        return

    if output == "table":
        print_success(f"Order {order_id} is {summary['status']}")
    _print_summary(output, summary, title="Order")


@orders.command(name="show")
@click.argument("order_id")
@click.pass_context
@async_command
async def show_order(ctx: click.Context, order_id: str) -> None:
    """
    Show an order, its workflow status and the pending task token.

    Args:
        ORDER_ID: Order identifier
    """
    output = ctx.obj["output"]
    resources = open_resources()

    summary = await order_summary(resources, order_id)
    if summary["executionStatus"] is None and summary["status"] == "unknown":
        print_error(f"Order '{order_id}' not found")
        raise click.Abort()

    order = await resources.store.get(order_id)
    if output == "json":
        format_json({**summary, "order": order.to_dict() if order else None})
        return

    _print_summary(output, summary, title="Order")
    if order is not None and output == "table":
        format_key_value(
            {
                "Customer": order.customer_id,
                "Item": order.item.name,
                "Price": order.item.price,
                "Created": order.created_at,
                "Updated": order.updated_at,
            }
        )


@orders.command(name="list")
@click.pass_context
@async_command
async def list_orders(ctx: click.Context) -> None:
    """List open orders (pending, accepted, ready), oldest first."""
    output = ctx.obj["output"]
    resources = open_resources()

    open_orders = await resources.store.list_by_status(OPEN_STATUSES)
    if output == "json":
        format_json([order.to_dict() for order in open_orders])
    elif not open_orders:
        print_info("No open orders")
    elif output == "plain":
        format_plain([order.id for order in open_orders])
    else:
        format_table(
            [
                {
                    "Order ID": order.id,
                    "Customer": order.customer_id,
                    "Item": order.item.name,
                    "Status": order.status.value,
                    "Bartender": order.bartender_id,
                    "Created": order.created_at,
                }
                for order in open_orders
            ],
            ["Order ID", "Customer", "Item", "Status", "Bartender", "Created"],
            title="Open Orders",
        )
