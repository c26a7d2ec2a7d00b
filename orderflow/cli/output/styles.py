"""Rich styles and themes for CLI output."""

from rich.theme import Theme

STATUS_COLORS = {
    # Orders
    "pending": "cyan",
    "accepted": "blue",
    "ready": "yellow",
    "completed": "green",
    "cancelled": "magenta",
    "rejected": "red",
    # Executions
    "running": "blue",
    "suspended": "yellow",
    "failed": "red",
    # Callback waits
    "received": "green",
    "expired": "magenta",
}

EVENT_TYPE_COLORS = {
    "execution.started": "blue",
    "execution.completed": "green",
    "execution.failed": "red",
    "execution.suspended": "yellow",
    "step.started": "cyan",
    "step.completed": "green",
    "step.failed": "red",
    "callback.created": "yellow",
    "callback.registered": "yellow",
    "callback.registrar_retrying": "yellow",
    "callback.failed": "red",
    "callback.received": "green",
    "callback.timed_out": "magenta",
}

ORDERFLOW_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "workflow": "magenta",
    "step": "blue",
})
