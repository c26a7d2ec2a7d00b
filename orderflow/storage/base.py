"""
Abstract base class for journal stores.

All journal implementations must implement this interface so the engine can
run on any of them (in-memory for tests, file-based for durable local runs).
"""

from abc import ABC, abstractmethod
from datetime import datetime

from orderflow.engine.events import Event
from orderflow.storage.schemas import Callback, CallbackStatus, Execution, ExecutionStatus


class JournalStore(ABC):
    """
    Abstract base class for execution journals.

    Journal stores are responsible for:
    - Persisting executions and callbacks
    - Managing the event log (append-only)
    - Providing query capabilities

    All methods are async to support both sync and async backends.
    """

    # Execution Operations

    @abstractmethod
    async def create_execution(self, execution: Execution) -> None:
        """
        Create a new execution record.

        Args:
            execution: Execution instance to persist

        Raises:
            ExecutionAlreadyExistsError: If run_id already exists
        """
        pass

    @abstractmethod
    async def get_execution(self, run_id: str) -> Execution | None:
        """
        Retrieve an execution by ID.

        Args:
            run_id: Unique execution identifier

        Returns:
            Execution if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_execution_status(
        self,
        run_id: str,
        status: ExecutionStatus,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        """
        Update execution status and optionally result/error.

        Args:
            run_id: Execution identifier
            status: New status
            result: Serialized result (if completed)
            error: Error message (if failed)
        """
        pass

    @abstractmethod
    async def list_executions(
        self,
        workflow_name: str | None = None,
        status: ExecutionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Execution]:
        """
        List executions with optional filtering, newest first.

        Args:
            workflow_name: Filter by workflow name
            status: Filter by status
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    # Event Log Operations

    @abstractmethod
    async def record_event(self, event: Event) -> None:
        """
        Record an event to the append-only event log.

        Events must be assigned a sequence number by the storage backend
        to ensure ordering.

        Args:
            event: Event to record (sequence will be assigned)
        """
        pass

    @abstractmethod
    async def get_events(
        self,
        run_id: str,
        event_types: list[str] | None = None,
    ) -> list[Event]:
        """
        Retrieve all events for an execution, ordered by sequence.

        Args:
            run_id: Execution identifier
            event_types: Optional filter by event type values
        """
        pass

    # Callback Operations

    @abstractmethod
    async def create_callback(self, callback: Callback) -> None:
        """
        Create a callback record and index its token.

        Args:
            callback: Callback instance to persist
        """
        pass

    @abstractmethod
    async def get_callback(self, callback_id: str) -> Callback | None:
        pass

    @abstractmethod
    async def get_callback_by_token(self, token: str) -> Callback | None:
        """
        Retrieve a callback by its token.

        Args:
            token: Callback token (composite format: run_id:callback_id)

        Returns:
            Callback if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_callback_status(
        self,
        callback_id: str,
        status: CallbackStatus,
        payload: str | None = None,
    ) -> None:
        """
        Update callback status and optionally payload.

        Args:
            callback_id: Callback identifier
            status: New status
            payload: JSON serialized payload (if received)
        """
        pass

    @abstractmethod
    async def list_callbacks(
        self,
        run_id: str | None = None,
        status: CallbackStatus | None = None,
    ) -> list[Callback]:
        """List callbacks with optional filtering, oldest first."""
        pass

    async def list_due_callbacks(self, now: datetime) -> list[Callback]:
        """Pending callbacks whose deadline has passed."""
        pending = await self.list_callbacks(status=CallbackStatus.PENDING)
        return [cb for cb in pending if cb.is_past_due(now)]

    # Lifecycle

    async def connect(self) -> None:
        """
        Initialize connection to storage backend.

        Override if your backend requires explicit connection setup.
        """
        pass

    async def disconnect(self) -> None:
        """
        Close connection to storage backend.

        Override if your backend requires explicit cleanup.
        """
        pass

    async def health_check(self) -> bool:
        """
        Check if the journal is healthy and accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self.list_executions(limit=1)
            return True
        except Exception:
            return False
