"""
Data models for executions and callbacks.

These schemas define the structure of data stored in the journal backends.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ExecutionStatus(Enum):
    """Execution status."""

    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


class CallbackStatus(Enum):
    """Callback wait status."""

    PENDING = "pending"
    RECEIVED = "received"
    EXPIRED = "expired"
    FAILED = "failed"


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass
class Execution:
    """
    One run of a workflow.

    This is the primary entity tracking execution state; the journal holds
    the detail.
    """

    run_id: str
    workflow_name: str
    status: ExecutionStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    # Input/output
    input_args: str = "[]"  # JSON serialized list
    input_kwargs: str = "{}"  # JSON serialized dict
    result: str | None = None  # JSON serialized result
    error: str | None = None  # Error message if failed

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "input_args": self.input_args,
            "input_kwargs": self.input_kwargs,
            "result": self.result,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Execution":
        """Create from dictionary."""
        return cls(
            run_id=data["run_id"],
            workflow_name=data["workflow_name"],
            status=ExecutionStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            completed_at=_parse_dt(data.get("completed_at")),
            input_args=data.get("input_args", "[]"),
            input_kwargs=data.get("input_kwargs", "{}"),
            result=data.get("result"),
            error=data.get("error"),
            metadata=data.get("metadata", {}),
        )


@dataclass
class Callback:
    """
    A suspension point waiting for an external result.

    The token is what the registrar hands out; whoever holds it may resolve
    the wait exactly once while it is pending.
    """

    callback_id: str
    run_id: str
    name: str
    token: str
    status: CallbackStatus = CallbackStatus.PENDING

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    received_at: datetime | None = None

    payload: str | None = None  # JSON serialized payload

    def is_past_due(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "callback_id": self.callback_id,
            "run_id": self.run_id,
            "name": self.name,
            "token": self.token,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "received_at": self.received_at.isoformat() if self.received_at else None,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Callback":
        """Create from dictionary."""
        return cls(
            callback_id=data["callback_id"],
            run_id=data["run_id"],
            name=data["name"],
            token=data["token"],
            status=CallbackStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=_parse_dt(data.get("expires_at")),
            received_at=_parse_dt(data.get("received_at")),
            payload=data.get("payload"),
        )
