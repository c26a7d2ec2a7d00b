"""Menu commands (add, list)."""

from typing import Optional

import click
from pydantic import ValidationError

from orderflow.cli.output.formatters import (
    format_json,
    format_plain,
    format_table,
    print_error,
    print_info,
    print_success,
)
from orderflow.cli.utils.async_helpers import async_command
from orderflow.cli.utils.orders import open_resources
from orderflow.orders.models import MenuItem


@click.group(name="menu")
def menu() -> None:
    """Manage the menu."""
    pass


@menu.command(name="add")
@click.option("--id", "item_id", required=True, help="Item id")
@click.option("--name", required=True, help="Display name")
@click.option("--price", required=True, type=float, help="Price")
@click.option("--description", help="Description")
@click.option("--category", help="Category (e.g. cocktails)")
@click.option("--unavailable", is_flag=True, help="Add the item as not available")
@click.pass_context
@async_command
async def add_item(
    ctx: click.Context,
    item_id: str,
    name: str,
    price: float,
    description: Optional[str],
    category: Optional[str],
    unavailable: bool,
) -> None:
    """Add or replace a menu item."""
    try:
        item = MenuItem(
            id=item_id,
            name=name,
            price=price,
            description=description,
            category=category,
            available=not unavailable,
        )
    except ValidationError as e:
        print_error(f"Invalid menu item: {e.errors()[0]['msg']}")
        raise click.Abort()

    await open_resources().store.put_menu_item(item)

    if ctx.obj["output"] == "json":
        format_json(item.model_dump(mode="json"))
    else:
        print_success(f"Menu item '{item.id}' saved")


@menu.command(name="list")
@click.pass_context
@async_command
async def list_items(ctx: click.Context) -> None:
    """List the menu."""
    output = ctx.obj["output"]
    items = await open_resources().store.list_menu()

    if output == "json":
        format_json([item.model_dump(mode="json") for item in items])
    elif not items:
        print_info("The menu is empty")
    elif output == "plain":
        format_plain([item.id for item in items])
    else:
        format_table(
            [
                {
                    "ID": item.id,
                    "Name": item.name,
                    "Category": item.category,
                    "Price": f"{item.price:.2f}",
                    "Available": "yes" if item.available else "no",
                }
                for item in items
            ],
            ["ID", "Name", "Category", "Price", "Available"],
            title="Menu",
        )
