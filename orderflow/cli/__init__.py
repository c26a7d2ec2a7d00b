"""orderflow CLI - Place orders, answer callbacks, inspect executions."""

from pathlib import Path
from typing import Optional

import click
from loguru import logger

from orderflow import __version__
from orderflow.config import configure, get_config
from orderflow.observability.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="orderflow")
@click.option(
    "--data-dir",
    envvar="ORDERFLOW_DATA_DIR",
    type=click.Path(file_okay=False),
    help="Directory for the journal and the order store (default: from config, ./orderflow_data)",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json", "plain"], case_sensitive=False),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def main(
    ctx: click.Context,
    data_dir: Optional[str],
    output: str,
    verbose: bool,
) -> None:
    """
    orderflow CLI - Bar orders on durable workflows.

    Every command works on file-backed stores, so an order suspended while
    waiting for a bartender in one invocation is resumed by the next.

    Examples:

        # Add a drink and order it
        orderflow menu add --id mojito --name Mojito --price 12
        orderflow orders create --customer c-1 --item mojito

        # Accept it as bartender b-7 with the printed task token
        orderflow callbacks submit <token> --status accepted --bartender b-7

        # Look at the workflow journal
        orderflow runs events <order-id>

    Configuration:

        orderflow.config.yaml, ORDERFLOW_* environment variables and
        --data-dir (highest priority).
    """
    if verbose:
        configure_logging(level="DEBUG")
        logger.enable("orderflow")
        logger.info("Verbose logging enabled")
    else:
        logger.disable("orderflow")

    config = get_config()
    journal_path = str(Path(data_dir) / "journal") if data_dir else config.journal_path
    store_path = str(Path(data_dir) / "orders") if data_dir else config.order_store_path

    # Executions outlive one invocation, so both stores always live on disk.
    configure(
        journal=None,
        journal_backend="file",
        journal_path=journal_path,
        order_store_backend="file",
        order_store_path=store_path,
    )

    ctx.ensure_object(dict)
    ctx.obj["output"] = output.lower()
    ctx.obj["verbose"] = verbose


# Import and register commands
from orderflow.cli.commands.callbacks import callbacks
from orderflow.cli.commands.menu import menu
from orderflow.cli.commands.orders import orders
from orderflow.cli.commands.runs import runs
from orderflow.cli.commands.serve import serve

main.add_command(orders)
main.add_command(callbacks)
main.add_command(runs)
main.add_command(menu)
main.add_command(serve)


# Export main for entry point
__all__ = ["main"]
