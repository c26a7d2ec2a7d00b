"""
orderflow - Durable order workflows for a bar

A durable, journaled workflow engine plus the bar order lifecycle built on
it. A workflow runs checkpointed steps and suspends on callback waits; an
external actor resolves a wait with its token and the execution resumes by
replaying its journal.

Quick Start:
    >>> import orderflow
    >>> from orderflow import workflow, get_context, start, submit_callback
    >>>
    >>> @workflow(name="greeting")
    >>> async def greeting(name: str):
    >>>     ctx = get_context()
    >>>     reply = await ctx.wait_for_callback("reply", registrar=send_token, timeout="5m")
    >>>     return await ctx.step("greet", make_greeting, name, reply)
    >>>
    >>> run_id = await start(greeting, "Alice")
    >>> await submit_callback(token, {"text": "hi"})
"""

__version__ = "0.1.0"

# Configuration
from orderflow.config import OrderflowConfig, configure, get_config, get_journal, reset_config

# Core decorator and registry
from orderflow.core.registry import get_workflow, list_workflows
from orderflow.core.workflow import workflow

# Execution engine
from orderflow.engine.callbacks import SubmitResult, expire_callbacks, submit_callback
from orderflow.engine.executor import (
    get_execution,
    get_execution_events,
    list_executions,
    resume,
    start,
)

# Exceptions
from orderflow.core.exceptions import (
    CallbackAlreadyReceivedError,
    CallbackExpiredError,
    CallbackRegistrationError,
    CallbackTimeoutError,
    DuplicateStepError,
    ExecutionAlreadyExistsError,
    ExecutionNotFoundError,
    InvalidTokenError,
    StepFailedError,
    SuspensionSignal,
    WorkflowError,
    WorkflowNotRegisteredError,
)

# Context API
from orderflow.context import (
    DurableContext,
    MockContext,
    RetryPolicy,
    WorkflowContext,
    get_context,
    has_context,
    reset_context,
    set_context,
)

# Journal stores
from orderflow.storage import (
    Callback,
    CallbackStatus,
    Execution,
    ExecutionStatus,
    FileJournalStore,
    InMemoryJournalStore,
    JournalStore,
)

# Logging
from orderflow.observability.logging import configure_logging, configure_logging_from_env

__all__ = [
    # Version
    "__version__",
    # Configuration
    "OrderflowConfig",
    "configure",
    "get_config",
    "get_journal",
    "reset_config",
    # Core
    "workflow",
    "get_workflow",
    "list_workflows",
    # Execution
    "start",
    "resume",
    "submit_callback",
    "expire_callbacks",
    "SubmitResult",
    "get_execution",
    "get_execution_events",
    "list_executions",
    # Exceptions
    "WorkflowError",
    "SuspensionSignal",
    "StepFailedError",
    "DuplicateStepError",
    "CallbackTimeoutError",
    "CallbackRegistrationError",
    "InvalidTokenError",
    "CallbackAlreadyReceivedError",
    "CallbackExpiredError",
    "ExecutionNotFoundError",
    "ExecutionAlreadyExistsError",
    "WorkflowNotRegisteredError",
    # Context
    "WorkflowContext",
    "DurableContext",
    "MockContext",
    "RetryPolicy",
    "get_context",
    "has_context",
    "set_context",
    "reset_context",
    # Storage
    "JournalStore",
    "InMemoryJournalStore",
    "FileJournalStore",
    "Execution",
    "ExecutionStatus",
    "Callback",
    "CallbackStatus",
    # Logging
    "configure_logging",
    "configure_logging_from_env",
]
