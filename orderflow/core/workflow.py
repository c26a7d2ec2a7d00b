"""
The @workflow decorator and in-context execution.

A workflow is a plain async function. It receives its input arguments and
reaches the execution context through ``get_context()``.
"""

import functools
from typing import Any, Callable, Dict, List, Optional

from orderflow.context.base import RetryPolicy, reset_context, set_context
from orderflow.context.durable import DurableContext
from orderflow.core.registry import register_workflow
from orderflow.engine.events import Event
from orderflow.observability.logging import workflow_logging_context
from orderflow.storage.base import JournalStore


def workflow(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Register an async function as a workflow.

    Can be used bare or with arguments:

        @workflow
        async def greet(event): ...

        @workflow(name="order-orchestrator")
        async def order_orchestrator(event): ...

    Args:
        func: The workflow function (when used without parentheses)
        name: Registry name (defaults to the function name)
        metadata: Free-form metadata kept on the registry entry
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        workflow_name = name or fn.__name__

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await fn(*args, **kwargs)

        wrapper.__workflow__ = True  # type: ignore[attr-defined]
        wrapper.__workflow_name__ = workflow_name  # type: ignore[attr-defined]

        register_workflow(
            name=workflow_name,
            func=wrapper,
            original_func=fn,
            metadata=metadata,
        )
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


async def execute_workflow_with_context(
    workflow_func: Callable[..., Any],
    run_id: str,
    workflow_name: str,
    storage: JournalStore,
    args: tuple,
    kwargs: dict,
    event_log: Optional[List[Event]] = None,
    default_retry: Optional[RetryPolicy] = None,
) -> Any:
    """
    Run a workflow function with a DurableContext set as the current context.

    SuspensionSignal and workflow errors propagate to the caller.
    """
    ctx = DurableContext(
        run_id=run_id,
        workflow_name=workflow_name,
        storage=storage,
        event_log=event_log,
        default_retry=default_retry,
    )
    token = set_context(ctx)
    try:
        with workflow_logging_context(run_id, workflow_name):
            return await workflow_func(*args, **kwargs)
    finally:
        reset_context(token)
