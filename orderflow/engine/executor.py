"""
Workflow execution engine.

The executor is responsible for:
- Starting new executions
- Resuming suspended (or crashed) executions by replaying their journal
- Recording execution lifecycle events and status
- Serializing all mutations of one execution with a per-run lock
"""

import asyncio
import traceback
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from loguru import logger

from orderflow.config import get_config
from orderflow.core.exceptions import (
    ExecutionNotFoundError,
    SuspensionSignal,
    WorkflowNotRegisteredError,
)
from orderflow.core.registry import get_workflow, get_workflow_by_func
from orderflow.core.workflow import execute_workflow_with_context
from orderflow.engine.events import (
    Event,
    create_execution_completed_event,
    create_execution_failed_event,
    create_execution_started_event,
    create_execution_suspended_event,
)
from orderflow.serialization import (
    deserialize,
    deserialize_args,
    deserialize_kwargs,
    serialize,
    serialize_args,
    serialize_kwargs,
)
from orderflow.storage.base import JournalStore
from orderflow.storage.schemas import Execution, ExecutionStatus

FINISHED_STATUSES = (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class _RunLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


# asyncio locks belong to one event loop; the CLI and the test client each
# run their own, so locks are kept per loop.
_run_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, _RunLock]]" = (
    weakref.WeakKeyDictionary()
)


def held_run_locks() -> int:
    """Number of run locks kept for the running event loop."""
    return len(_run_locks.get(asyncio.get_running_loop(), {}))


@asynccontextmanager
async def run_lock(run_id: str, storage: JournalStore) -> AsyncIterator[None]:
    """
    Hold the lock serializing every mutation of one execution.

    The lock is forgotten when the last holder leaves and the execution is
    finished or does not exist, so finished runs do not pile up locks.
    """
    locks = _run_locks.setdefault(asyncio.get_running_loop(), {})
    entry = locks.get(run_id)
    if entry is None:
        entry = locks[run_id] = _RunLock()

    entry.users += 1
    finished = False
    try:
        async with entry.lock:
            try:
                yield
            finally:
                execution = await storage.get_execution(run_id)
                finished = execution is None or execution.status in FINISHED_STATUSES
    finally:
        entry.users -= 1
        if entry.users == 0 and finished and locks.get(run_id) is entry:
            del locks[run_id]


def resolve_journal(storage: Optional[JournalStore]) -> JournalStore:
    # Empty in-memory stores are falsy.
    return storage if storage is not None else get_config().get_journal()


async def start(
    workflow_func: Callable[..., Any],
    *args: Any,
    run_id: Optional[str] = None,
    storage: Optional[JournalStore] = None,
    **kwargs: Any,
) -> str:
    """
    Start a new execution and run it until it completes or suspends.

    Args:
        workflow_func: Function decorated with @workflow
        *args: Positional arguments for the workflow
        run_id: Execution id (generated when omitted)
        storage: Journal store (None = configured journal)
        **kwargs: Keyword arguments for the workflow

    Returns:
        run_id of the execution

    Raises:
        WorkflowNotRegisteredError: If the function is not a registered workflow
        ExecutionAlreadyExistsError: If run_id is already taken
        Exception: Whatever the workflow raised (the execution is marked failed)

    Examples:
        run_id = await start(order_orchestrator, {"request_id": "o-1", "body": {...}})

        run_id = await start(my_workflow, 42, run_id="job-42", storage=InMemoryJournalStore())
    """
    workflow_meta = get_workflow_by_func(workflow_func)
    if not workflow_meta:
        raise WorkflowNotRegisteredError(getattr(workflow_func, "__name__", repr(workflow_func)))

    journal = resolve_journal(storage)
    run_id = run_id or f"run_{uuid.uuid4().hex[:16]}"

    logger.info(
        f"Starting workflow: {workflow_meta.name}",
        run_id=run_id,
        workflow_name=workflow_meta.name,
    )

    async with run_lock(run_id, journal):
        execution = Execution(
            run_id=run_id,
            workflow_name=workflow_meta.name,
            status=ExecutionStatus.RUNNING,
            input_args=serialize_args(*args),
            input_kwargs=serialize_kwargs(**kwargs),
        )
        await journal.create_execution(execution)
        await journal.record_event(
            create_execution_started_event(
                run_id=run_id,
                workflow_name=workflow_meta.name,
                args=execution.input_args,
                kwargs=execution.input_kwargs,
            )
        )

        await _run_execution(
            execution=execution,
            workflow_func=workflow_meta.func,
            storage=journal,
            event_log=None,
        )

    return run_id


async def resume(run_id: str, storage: Optional[JournalStore] = None) -> Any:
    """
    Resume an execution by replaying its journal.

    Returns:
        Workflow result if it completed, None if it suspended again

    Raises:
        ExecutionNotFoundError: If there is no such execution
        WorkflowNotRegisteredError: If its workflow is not registered in this process
    """
    journal = resolve_journal(storage)
    async with run_lock(run_id, journal):
        return await resume_locked(run_id, journal)


async def resume_locked(run_id: str, storage: JournalStore) -> Any:
    """Resume an execution; the caller holds its run lock."""
    execution = await storage.get_execution(run_id)
    if execution is None:
        raise ExecutionNotFoundError(run_id)

    if execution.status == ExecutionStatus.COMPLETED:
        logger.debug("Execution already completed, returning stored result", run_id=run_id)
        return deserialize(execution.result)

    if execution.status == ExecutionStatus.FAILED:
        logger.warning("Execution already failed, nothing to resume", run_id=run_id)
        return None

    workflow_meta = get_workflow(execution.workflow_name)
    if not workflow_meta:
        raise WorkflowNotRegisteredError(execution.workflow_name)

    logger.info(
        f"Resuming workflow: {execution.workflow_name}",
        run_id=run_id,
        workflow_name=execution.workflow_name,
        current_status=execution.status.value,
    )

    events = await storage.get_events(run_id)
    await storage.update_execution_status(run_id, ExecutionStatus.RUNNING)

    return await _run_execution(
        execution=execution,
        workflow_func=workflow_meta.func,
        storage=storage,
        event_log=events,
    )


async def _run_execution(
    execution: Execution,
    workflow_func: Callable[..., Any],
    storage: JournalStore,
    event_log: Optional[List[Event]],
) -> Any:
    run_id = execution.run_id
    workflow_name = execution.workflow_name

    try:
        result = await execute_workflow_with_context(
            workflow_func=workflow_func,
            run_id=run_id,
            workflow_name=workflow_name,
            storage=storage,
            args=deserialize_args(execution.input_args),
            kwargs=deserialize_kwargs(execution.input_kwargs),
            event_log=event_log,
            default_retry=get_config().registrar_retry_policy(),
        )

    except SuspensionSignal as e:
        await storage.record_event(create_execution_suspended_event(run_id, e.reason))
        await storage.update_execution_status(run_id, ExecutionStatus.SUSPENDED)

        logger.info(
            "Workflow suspended",
            run_id=run_id,
            workflow_name=workflow_name,
            reason=e.reason,
        )
        return None

    except Exception as e:
        await storage.record_event(
            create_execution_failed_event(
                run_id=run_id,
                error=str(e),
                error_type=type(e).__name__,
                traceback=traceback.format_exc(),
            )
        )
        await storage.update_execution_status(run_id, ExecutionStatus.FAILED, error=str(e))

        logger.exception(
            f"Workflow failed: {workflow_name}",
            run_id=run_id,
            workflow_name=workflow_name,
            error=str(e),
        )
        raise

    serialized = serialize(result)
    await storage.record_event(create_execution_completed_event(run_id, serialized))
    await storage.update_execution_status(run_id, ExecutionStatus.COMPLETED, result=serialized)

    logger.info(
        f"Workflow completed: {workflow_name}",
        run_id=run_id,
        workflow_name=workflow_name,
    )
    return deserialize(serialized)


async def get_execution(run_id: str, storage: Optional[JournalStore] = None) -> Optional[Execution]:
    """Get an execution record, None if it does not exist."""
    return await resolve_journal(storage).get_execution(run_id)


async def get_execution_events(
    run_id: str,
    storage: Optional[JournalStore] = None,
    event_types: Optional[List[str]] = None,
) -> List[Event]:
    """Get the journal of an execution, ordered by sequence."""
    return await resolve_journal(storage).get_events(run_id, event_types=event_types)


async def list_executions(
    workflow_name: Optional[str] = None,
    status: Optional[ExecutionStatus] = None,
    limit: int = 100,
    offset: int = 0,
    storage: Optional[JournalStore] = None,
) -> List[Execution]:
    return await resolve_journal(storage).list_executions(
        workflow_name=workflow_name, status=status, limit=limit, offset=offset
    )
