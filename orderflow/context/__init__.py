"""
Workflow execution contexts.

- DurableContext: journaled execution with replay
- MockContext: direct execution for unit tests
"""

from orderflow.context.base import (
    Registrar,
    RetryPolicy,
    StepFunction,
    WorkflowContext,
    get_context,
    has_context,
    reset_context,
    set_context,
)
from orderflow.context.durable import (
    DurableContext,
    create_callback_token,
    mark_callback_timed_out,
    parse_callback_token,
)
from orderflow.context.mock import MockContext

__all__ = [
    "WorkflowContext",
    "DurableContext",
    "MockContext",
    "RetryPolicy",
    "Registrar",
    "StepFunction",
    "get_context",
    "has_context",
    "set_context",
    "reset_context",
    "create_callback_token",
    "parse_callback_token",
    "mark_callback_timed_out",
]
