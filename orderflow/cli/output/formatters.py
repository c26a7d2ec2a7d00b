"""Output formatting utilities using Rich."""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from orderflow.cli.output.styles import EVENT_TYPE_COLORS, ORDERFLOW_THEME, STATUS_COLORS

console = Console(theme=ORDERFLOW_THEME)
err_console = Console(theme=ORDERFLOW_THEME, stderr=True)


def format_table(
    data: List[Dict[str, Any]],
    columns: List[str],
    title: Optional[str] = None,
) -> None:
    """
    Format and print data as a Rich table.

    Args:
        data: List of dictionaries containing row data
        columns: List of column names to display
        title: Optional table title

    Examples:
        data = [
            {"Order": "o-1", "Status": "pending"},
            {"Order": "o-2", "Status": "accepted"},
        ]
        format_table(data, ["Order", "Status"], title="Open Orders")
    """
    if not data:
        console.print("[dim]No data to display[/dim]")
        return

    table = Table(
        title=title,
        show_header=True,
        header_style="bold magenta",
        box=box.ROUNDED,
    )

    for col in columns:
        table.add_column(col, style="cyan")

    for row in data:
        cells = []
        for col in columns:
            value = row.get(col, "")

            if col.lower() == "status":
                cells.append(format_status(str(value)))
            elif col.lower() == "type":
                cells.append(format_event_type(str(value)))
            elif isinstance(value, datetime):
                cells.append(value.strftime("%Y-%m-%d %H:%M:%S"))
            elif value is None:
                cells.append("-")
            else:
                cells.append(str(value))

        table.add_row(*cells)

    console.print(table)


def format_json(data: Any, indent: int = 2) -> None:
    """
    Format and print data as JSON.

    Highlighted on a terminal; printed verbatim otherwise so the output can
    be piped into other tools.
    """
    json_str = json.dumps(data, indent=indent, default=str)
    if console.is_terminal:
        console.print(Syntax(json_str, "json", theme="monokai", line_numbers=False))
    else:
        console.print(json_str, soft_wrap=True, markup=False, highlight=False, emoji=False)


def format_plain(data: List[str]) -> None:
    """Print one item per line."""
    for item in data:
        console.print(item, soft_wrap=True, markup=False, highlight=False, emoji=False)


def format_status(status: str) -> Text:
    """
    Colorize an order, execution or callback status.

    Examples:
        >>> format_status("completed").style
        'green'
    """
    return Text(status, style=STATUS_COLORS.get(status.lower(), "white"))


def format_event_type(event_type: str) -> Text:
    """Format journal event type with appropriate color."""
    return Text(event_type, style=EVENT_TYPE_COLORS.get(event_type, "white"))


def format_key_value(data: Dict[str, Any], title: Optional[str] = None) -> None:
    """
    Format and print key-value pairs.

    Examples:
        format_key_value({"Order": "o-1", "Status": "pending"}, title="Order")
    """
    if title:
        console.print(f"\n[bold magenta]{title}[/bold magenta]")

    for key, value in data.items():
        if isinstance(value, datetime):
            value_text = Text(value.strftime("%Y-%m-%d %H:%M:%S"))
        elif isinstance(value, (dict, list)):
            value_text = Text(json.dumps(value, indent=2, default=str))
        elif value is None:
            value_text = Text("None", style="dim")
        elif key.lower() == "status":
            value_text = format_status(str(value))
        else:
            value_text = Text(str(value))

        console.print(Text.assemble(("  " + key + ": ", "cyan"), value_text), soft_wrap=True)


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print error message."""
    err_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_info(message: str) -> None:
    """Print info message."""
    console.print(f"[blue]ℹ[/blue] {message}")
