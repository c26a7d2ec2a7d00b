"""
In-memory journal store for testing and single-process deployments.

This backend stores all data in memory and is ideal for:
- Unit testing
- Development and prototyping
- Ephemeral containers

Note: All data is lost when the process exits.
"""

import threading
from datetime import UTC, datetime

from orderflow.core.exceptions import ExecutionAlreadyExistsError
from orderflow.engine.events import Event
from orderflow.storage.base import JournalStore
from orderflow.storage.schemas import Callback, CallbackStatus, Execution, ExecutionStatus


class InMemoryJournalStore(JournalStore):
    """
    Thread-safe in-memory journal store.

    All data is stored in dictionaries and protected by a reentrant lock
    for thread safety.

    Example:
        >>> journal = InMemoryJournalStore()
        >>> orderflow.configure(journal=journal)
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._executions: dict[str, Execution] = {}
        self._events: dict[str, list[Event]] = {}
        self._callbacks: dict[str, Callback] = {}
        self._token_index: dict[str, str] = {}  # token -> callback_id
        self._event_sequences: dict[str, int] = {}  # run_id -> next sequence
        self._lock = threading.RLock()

    # Execution Operations

    async def create_execution(self, execution: Execution) -> None:
        """Create a new execution record."""
        with self._lock:
            if execution.run_id in self._executions:
                raise ExecutionAlreadyExistsError(execution.run_id)
            self._executions[execution.run_id] = execution
            self._events.setdefault(execution.run_id, [])
            self._event_sequences.setdefault(execution.run_id, 0)

    async def get_execution(self, run_id: str) -> Execution | None:
        with self._lock:
            return self._executions.get(run_id)

    async def update_execution_status(
        self,
        run_id: str,
        status: ExecutionStatus,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        """Update execution status and optionally result/error."""
        with self._lock:
            execution = self._executions.get(run_id)
            if execution:
                execution.status = status
                execution.updated_at = datetime.now(UTC)
                if result is not None:
                    execution.result = result
                if error is not None:
                    execution.error = error
                if status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
                    execution.completed_at = datetime.now(UTC)

    async def list_executions(
        self,
        workflow_name: str | None = None,
        status: ExecutionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Execution]:
        """List executions with optional filtering."""
        with self._lock:
            executions = list(self._executions.values())

            if workflow_name:
                executions = [e for e in executions if e.workflow_name == workflow_name]

            if status:
                executions = [e for e in executions if e.status == status]

            executions.sort(key=lambda e: e.created_at, reverse=True)

            return executions[offset : offset + limit]

    # Event Log Operations

    async def record_event(self, event: Event) -> None:
        """Record an event to the append-only event log."""
        with self._lock:
            run_id = event.run_id
            if run_id not in self._events:
                self._events[run_id] = []
                self._event_sequences[run_id] = 0

            event.sequence = self._event_sequences[run_id]
            self._event_sequences[run_id] += 1

            self._events[run_id].append(event)

    async def get_events(
        self,
        run_id: str,
        event_types: list[str] | None = None,
    ) -> list[Event]:
        """Retrieve all events for an execution, ordered by sequence."""
        with self._lock:
            events = list(self._events.get(run_id, []))

            if event_types:
                events = [e for e in events if e.type.value in event_types]

            events.sort(key=lambda e: e.sequence or 0)

            return events

    # Callback Operations

    async def create_callback(self, callback: Callback) -> None:
        with self._lock:
            self._callbacks[callback.callback_id] = callback
            self._token_index[callback.token] = callback.callback_id

    async def get_callback(self, callback_id: str) -> Callback | None:
        with self._lock:
            return self._callbacks.get(callback_id)

    async def get_callback_by_token(self, token: str) -> Callback | None:
        """Retrieve a callback by its token."""
        with self._lock:
            callback_id = self._token_index.get(token)
            if callback_id:
                return self._callbacks.get(callback_id)
            return None

    async def update_callback_status(
        self,
        callback_id: str,
        status: CallbackStatus,
        payload: str | None = None,
    ) -> None:
        """Update callback status and optionally payload."""
        with self._lock:
            callback = self._callbacks.get(callback_id)
            if callback:
                callback.status = status
                if payload is not None:
                    callback.payload = payload
                if status == CallbackStatus.RECEIVED:
                    callback.received_at = datetime.now(UTC)

    async def list_callbacks(
        self,
        run_id: str | None = None,
        status: CallbackStatus | None = None,
    ) -> list[Callback]:
        with self._lock:
            callbacks = list(self._callbacks.values())

            if run_id:
                callbacks = [c for c in callbacks if c.run_id == run_id]

            if status:
                callbacks = [c for c in callbacks if c.status == status]

            callbacks.sort(key=lambda c: c.created_at)
            return callbacks

    # Utility methods

    def clear(self) -> None:
        """
        Clear all data from storage.

        Useful for testing to reset state between tests.
        """
        with self._lock:
            self._executions.clear()
            self._events.clear()
            self._callbacks.clear()
            self._token_index.clear()
            self._event_sequences.clear()

    def __len__(self) -> int:
        """Return total number of executions."""
        with self._lock:
            return len(self._executions)

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"InMemoryJournalStore("
                f"executions={len(self._executions)}, "
                f"events={sum(len(e) for e in self._events.values())}, "
                f"callbacks={len(self._callbacks)})"
            )
