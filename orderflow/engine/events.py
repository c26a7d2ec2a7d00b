"""
Event types and schemas for the execution journal.

Every state change of an execution is recorded as an event in an
append-only log. Replaying the log restores completed steps and resolved
callbacks, which is what makes an execution resumable after suspension or
a crash.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class EventType(Enum):
    """All possible journal event types."""

    # Execution lifecycle events
    EXECUTION_STARTED = "execution.started"
    EXECUTION_COMPLETED = "execution.completed"
    EXECUTION_FAILED = "execution.failed"
    EXECUTION_SUSPENDED = "execution.suspended"

    # Step lifecycle events
    STEP_STARTED = "step.started"
    STEP_COMPLETED = "step.completed"
    STEP_FAILED = "step.failed"

    # Callback wait events
    CALLBACK_CREATED = "callback.created"
    CALLBACK_REGISTERED = "callback.registered"
    CALLBACK_REGISTRAR_RETRYING = "callback.registrar_retrying"
    CALLBACK_FAILED = "callback.failed"
    CALLBACK_RECEIVED = "callback.received"
    CALLBACK_TIMED_OUT = "callback.timed_out"


@dataclass
class Event:
    """
    Base event structure for all journal events.

    Events are immutable records of state changes, stored in an append-only log.
    The sequence number is assigned by the storage layer to ensure ordering.
    """

    event_id: str = field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:16]}")
    run_id: str = ""
    type: EventType = EventType.EXECUTION_STARTED
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    data: Dict[str, Any] = field(default_factory=dict)
    sequence: Optional[int] = None  # Assigned by storage layer

    def __post_init__(self) -> None:
        """Validate event after initialization."""
        if not self.run_id:
            raise ValueError("Event must have a run_id")
        if not isinstance(self.type, EventType):
            raise TypeError(f"Event type must be EventType enum, got {type(self.type)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "run_id": self.run_id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            event_id=data["event_id"],
            run_id=data["run_id"],
            type=EventType(data["type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            data=data.get("data", {}),
            sequence=data.get("sequence"),
        )


# Event creation helpers


def create_execution_started_event(
    run_id: str,
    workflow_name: str,
    args: Any,
    kwargs: Any,
) -> Event:
    """Create an execution started event."""
    return Event(
        run_id=run_id,
        type=EventType.EXECUTION_STARTED,
        data={
            "workflow_name": workflow_name,
            "args": args,
            "kwargs": kwargs,
        },
    )


def create_execution_completed_event(run_id: str, result: Any) -> Event:
    """Create an execution completed event."""
    return Event(
        run_id=run_id,
        type=EventType.EXECUTION_COMPLETED,
        data={"result": result},
    )


def create_execution_failed_event(
    run_id: str, error: str, error_type: str, traceback: Optional[str] = None
) -> Event:
    """Create an execution failed event."""
    return Event(
        run_id=run_id,
        type=EventType.EXECUTION_FAILED,
        data={
            "error": error,
            "error_type": error_type,
            "traceback": traceback,
        },
    )


def create_execution_suspended_event(run_id: str, reason: str) -> Event:
    return Event(
        run_id=run_id,
        type=EventType.EXECUTION_SUSPENDED,
        data={"reason": reason},
    )


def create_step_started_event(
    run_id: str,
    step_name: str,
    args: Any,
    kwargs: Any,
) -> Event:
    """Create a step started event."""
    return Event(
        run_id=run_id,
        type=EventType.STEP_STARTED,
        data={
            "step_name": step_name,
            "args": args,
            "kwargs": kwargs,
        },
    )


def create_step_completed_event(run_id: str, step_name: str, result: Any) -> Event:
    """Create a step completed event."""
    return Event(
        run_id=run_id,
        type=EventType.STEP_COMPLETED,
        data={
            "step_name": step_name,
            "result": result,
        },
    )


def create_step_failed_event(
    run_id: str,
    step_name: str,
    error: str,
    error_type: str,
    traceback: Optional[str] = None,
) -> Event:
    """Create a step failed event."""
    return Event(
        run_id=run_id,
        type=EventType.STEP_FAILED,
        data={
            "step_name": step_name,
            "error": error,
            "error_type": error_type,
            "traceback": traceback,
        },
    )


def create_callback_created_event(
    run_id: str,
    callback_id: str,
    name: str,
    token: str,
    expires_at: Optional[datetime] = None,
) -> Event:
    """
    Create a callback created event.

    Args:
        run_id: Execution run ID
        callback_id: Unique callback identifier
        name: Wait name inside the workflow (unique per execution)
        token: Token an external actor submits to resolve the wait
        expires_at: When the wait times out (None waits forever)
    """
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_CREATED,
        data={
            "callback_id": callback_id,
            "name": name,
            "token": token,
            "expires_at": expires_at.isoformat() if expires_at else None,
        },
    )


def create_callback_registered_event(run_id: str, callback_id: str, attempts: int) -> Event:
    """Recorded once the registrar handed the token to its delivery channel."""
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_REGISTERED,
        data={"callback_id": callback_id, "attempts": attempts},
    )


def create_callback_registrar_retrying_event(
    run_id: str,
    callback_id: str,
    attempt: int,
    delay_seconds: float,
    error: str,
) -> Event:
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_REGISTRAR_RETRYING,
        data={
            "callback_id": callback_id,
            "attempt": attempt,
            "delay_seconds": delay_seconds,
            "error": error,
        },
    )


def create_callback_failed_event(
    run_id: str, callback_id: str, error: str, attempts: int
) -> Event:
    """Recorded when the registrar exhausted its retries."""
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_FAILED,
        data={"callback_id": callback_id, "error": error, "attempts": attempts},
    )


def create_callback_received_event(run_id: str, callback_id: str, payload: Any) -> Event:
    """Create a callback received event."""
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_RECEIVED,
        data={
            "callback_id": callback_id,
            "payload": payload,
        },
    )


def create_callback_timed_out_event(run_id: str, callback_id: str) -> Event:
    """Create a callback timed out event."""
    return Event(
        run_id=run_id,
        type=EventType.CALLBACK_TIMED_OUT,
        data={
            "callback_id": callback_id,
            "timed_out_at": datetime.now(UTC).isoformat(),
        },
    )
