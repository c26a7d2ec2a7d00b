"""
Resolving callback waits from outside the workflow.

An external actor holding a token submits a payload with
``submit_callback``; the owning execution is resumed in the same call.
``expire_callbacks`` is the timeout side: it times out every pending wait
past its deadline and resumes the executions so their timeout path runs.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, List, Optional

from loguru import logger

from orderflow.context.durable import mark_callback_timed_out, parse_callback_token
from orderflow.core.exceptions import (
    CallbackAlreadyReceivedError,
    CallbackExpiredError,
    InvalidTokenError,
)
from orderflow.engine.events import create_callback_received_event
from orderflow.engine.executor import resolve_journal, resume_locked, run_lock
from orderflow.serialization import serialize
from orderflow.storage.base import JournalStore
from orderflow.storage.schemas import CallbackStatus, ExecutionStatus


@dataclass
class SubmitResult:
    """Outcome of a callback submission."""

    token: str
    run_id: str
    callback_id: str
    execution_status: Optional[ExecutionStatus] = None
    result: Any = None


async def submit_callback(
    token: str,
    payload: Any,
    storage: Optional[JournalStore] = None,
) -> SubmitResult:
    """
    Resolve a pending callback wait and resume its execution.

    Args:
        token: Token handed out by the wait's registrar
        payload: JSON-serializable result for the workflow
        storage: Journal store (None = configured journal)

    Returns:
        SubmitResult with the execution status after resuming

    Raises:
        InvalidTokenError: Malformed or unknown token
        CallbackAlreadyReceivedError: A payload was already submitted
        CallbackExpiredError: The wait timed out or its registration failed

    Example:
        await submit_callback(token, {"status": "accepted", "bartenderId": "b-7"})
    """
    journal = resolve_journal(storage)

    try:
        run_id, _ = parse_callback_token(token)
    except ValueError:
        raise InvalidTokenError(token) from None

    async with run_lock(run_id, journal):
        # Read under the lock so a concurrent submission sees the new status.
        callback = await journal.get_callback_by_token(token)
        if callback is None or callback.run_id != run_id:
            raise InvalidTokenError(token)

        if callback.status == CallbackStatus.RECEIVED:
            raise CallbackAlreadyReceivedError(token)
        if callback.status in (CallbackStatus.EXPIRED, CallbackStatus.FAILED):
            raise CallbackExpiredError(token, callback.status.value)

        if callback.is_past_due():
            await mark_callback_timed_out(journal, callback)
            await resume_locked(run_id, journal)
            raise CallbackExpiredError(token, CallbackStatus.EXPIRED.value)

        serialized = serialize(payload)
        await journal.update_callback_status(
            callback.callback_id, CallbackStatus.RECEIVED, payload=serialized
        )
        await journal.record_event(
            create_callback_received_event(run_id, callback.callback_id, serialized)
        )

        logger.info(
            "Callback received",
            run_id=run_id,
            callback_id=callback.callback_id,
            callback_name=callback.name,
        )

        result = await resume_locked(run_id, journal)
        execution = await journal.get_execution(run_id)

    return SubmitResult(
        token=token,
        run_id=run_id,
        callback_id=callback.callback_id,
        execution_status=execution.status if execution else None,
        result=result,
    )


async def expire_callbacks(
    storage: Optional[JournalStore] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Time out every pending callback past its deadline.

    Each owning execution is resumed so its timeout handling runs. A failure
    resuming one execution is logged and does not stop the sweep.

    Returns:
        Tokens of the callbacks that were expired
    """
    journal = resolve_journal(storage)
    now = now or datetime.now(UTC)
    expired: List[str] = []

    for due in await journal.list_due_callbacks(now):
        async with run_lock(due.run_id, journal):
            callback = await journal.get_callback(due.callback_id)
            if callback is None or callback.status != CallbackStatus.PENDING:
                continue
            if not callback.is_past_due(now):
                continue

            await mark_callback_timed_out(journal, callback)
            expired.append(callback.token)

            try:
                await resume_locked(callback.run_id, journal)
            except Exception as e:
                logger.exception(
                    "Failed to resume execution after callback timeout",
                    run_id=callback.run_id,
                    callback_id=callback.callback_id,
                    error=str(e),
                )

    if expired:
        logger.info(f"Expired {len(expired)} callback(s)")
    return expired
