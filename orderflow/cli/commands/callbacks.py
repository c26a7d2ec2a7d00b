"""Callback commands (submit, list, expire)."""

from typing import Optional

import click

from orderflow.cli.output.formatters import (
    format_json,
    format_plain,
    format_table,
    print_error,
    print_info,
    print_success,
)
from orderflow.cli.utils.async_helpers import async_command
from orderflow.cli.utils.orders import fail, open_resources, order_summary
from orderflow.core.exceptions import WorkflowError
from orderflow.engine.callbacks import expire_callbacks, submit_callback
from orderflow.storage.schemas import CallbackStatus


@click.group(name="callbacks")
def callbacks() -> None:
    """Resolve and inspect callback waits."""
    pass


@callbacks.command(name="submit")
@click.argument("token")
@click.option(
    "--status",
    required=True,
    type=click.Choice(["accepted", "ready", "completed"]),
    help="Status the bartender moves the order to",
)
@click.option("--bartender", "bartender_id", required=True, help="Bartender id")
@click.pass_context
@async_command
async def submit(ctx: click.Context, token: str, status: str, bartender_id: str) -> None:
    """
    Answer a callback wait and resume its order workflow.

    Args:
        TOKEN: Task token from the order event (see `orderflow orders show`)

    Examples:

        orderflow callbacks submit <token> --status accepted --bartender b-7
    """
    output = ctx.obj["output"]
    resources = open_resources()

    try:
        result = await submit_callback(token, {"status": status, "bartenderId": bartender_id})
    except WorkflowError as e:
        print_error(str(e))
        fail(ctx, e)
        return

    summary = await order_summary(resources, result.run_id)
    if output == "json":
        format_json(summary)
    elif output == "plain":
        format_plain([f"{summary['orderId']} {summary['status']} {summary['taskToken'] or '-'}"])
    else:
        print_success(f"Callback processed, order {summary['orderId']} is {summary['status']}")
        if summary["taskToken"]:
            print_info(f"Next task token: {summary['taskToken']}")


@callbacks.command(name="list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in CallbackStatus], case_sensitive=False),
    default=CallbackStatus.PENDING.value,
    show_default=True,
    help="Filter by callback status",
)
@click.option("--order", "order_id", help="Only callbacks of this order")
@click.pass_context
@async_command
async def list_callbacks(ctx: click.Context, status: str, order_id: Optional[str]) -> None:
    """List callback waits with their tokens."""
    output = ctx.obj["output"]
    journal = open_resources().config.get_journal()

    waits = await journal.list_callbacks(run_id=order_id, status=CallbackStatus(status))
    if output == "json":
        format_json([cb.to_dict() for cb in waits])
    elif not waits:
        print_info(f"No {status} callbacks")
    elif output == "plain":
        format_plain([cb.token for cb in waits])
    else:
        format_table(
            [
                {
                    "Order": cb.run_id,
                    "Wait": cb.name,
                    "Status": cb.status.value,
                    "Expires": cb.expires_at,
                    "Token": cb.token,
                }
                for cb in waits
            ],
            ["Order", "Wait", "Status", "Expires", "Token"],
            title="Callbacks",
        )


@callbacks.command(name="expire")
@click.pass_context
@async_command
async def expire(ctx: click.Context) -> None:
    """
    Time out every past-due callback wait.

    Each affected order runs its timeout handling and ends cancelled. Run it
    periodically (e.g. from cron) when the HTTP server's sweeper is not
    running.
    """
    output = ctx.obj["output"]
    open_resources()

    tokens = await expire_callbacks()
    if output == "json":
        format_json(tokens)
    elif output == "plain":
        format_plain(tokens)
    elif tokens:
        print_success(f"Expired {len(tokens)} callback(s)")
    else:
        print_info("No past-due callbacks")
