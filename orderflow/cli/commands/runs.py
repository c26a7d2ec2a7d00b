"""Execution inspection commands (show, events)."""

from typing import Optional

import click

from orderflow.cli.output.formatters import (
    format_json,
    format_key_value,
    format_plain,
    format_table,
    print_error,
)
from orderflow.cli.utils.async_helpers import async_command
from orderflow.cli.utils.orders import open_resources
from orderflow.serialization import deserialize


@click.group(name="runs")
def runs() -> None:
    """Inspect workflow executions and their journals."""
    pass


@runs.command(name="show")
@click.argument("run_id")
@click.pass_context
@async_command
async def show_run(ctx: click.Context, run_id: str) -> None:
    """
    Show execution status and details.

    Args:
        RUN_ID: Execution identifier (the order id for orders)
    """
    output = ctx.obj["output"]
    journal = open_resources().config.get_journal()

    execution = await journal.get_execution(run_id)
    if not execution:
        print_error(f"Execution '{run_id}' not found")
        raise click.Abort()

    callbacks = await journal.list_callbacks(run_id=run_id)

    if output == "json":
        data = execution.to_dict()
        data["result"] = deserialize(execution.result) if execution.result else None
        data["callbacks"] = [cb.to_dict() for cb in callbacks]
        format_json(data)
        return

    if output == "plain":
        format_plain([f"{execution.run_id} {execution.status.value}"])
        return

    format_key_value(
        {
            "Run ID": execution.run_id,
            "Workflow": execution.workflow_name,
            "Status": execution.status.value,
            "Created": execution.created_at,
            "Updated": execution.updated_at,
            "Completed": execution.completed_at,
            "Result": deserialize(execution.result) if execution.result else None,
            "Error": execution.error,
        },
        title="Execution",
    )
    if callbacks:
        format_table(
            [
                {"Wait": cb.name, "Status": cb.status.value, "Expires": cb.expires_at}
                for cb in callbacks
            ],
            ["Wait", "Status", "Expires"],
            title="Callback Waits",
        )


@runs.command(name="events")
@click.argument("run_id")
@click.option("--type", "event_type", help="Only events of this type (e.g. step.completed)")
@click.pass_context
@async_command
async def run_events(ctx: click.Context, run_id: str, event_type: Optional[str]) -> None:
    """
    Show the journal of an execution.

    Args:
        RUN_ID: Execution identifier
    """
    output = ctx.obj["output"]
    journal = open_resources().config.get_journal()

    if await journal.get_execution(run_id) is None:
        print_error(f"Execution '{run_id}' not found")
        raise click.Abort()

    events = await journal.get_events(run_id, event_types=[event_type] if event_type else None)

    if output == "json":
        format_json([event.to_dict() for event in events])
    elif output == "plain":
        format_plain([event.type.value for event in events])
    else:
        format_table(
            [
                {
                    "Seq": event.sequence,
                    "Type": event.type.value,
                    "Name": event.data.get("step_name") or event.data.get("name") or "",
                    "Time": event.timestamp,
                }
                for event in events
            ],
            ["Seq", "Type", "Name", "Time"],
            title=f"Journal of {run_id}",
        )
