"""
File-based journal store.

Executions and callbacks are stored as one JSON document each, events as a
JSON-lines log per execution:

    <base_path>/
        executions/<run_id>.json
        events/<run_id>.jsonl
        callbacks/<callback_id>.json

Documents are written to a temporary file and moved into place so a crash
never leaves a half-written record. A suspended execution survives process
restarts and can be resumed by another process pointing at the same
directory.
"""

import json
import os
import re
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from orderflow.core.exceptions import ExecutionAlreadyExistsError
from orderflow.engine.events import Event
from orderflow.storage.base import JournalStore
from orderflow.storage.schemas import Callback, CallbackStatus, Execution, ExecutionStatus

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to ``path`` via a temp file in the same directory."""
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def safe_key(key: str) -> str:
    """Reject keys that could escape the storage directory."""
    if not _SAFE_KEY.match(key) or key in (".", ".."):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class FileJournalStore(JournalStore):
    """
    Journal store persisting to the local filesystem.

    Example:
        >>> journal = FileJournalStore(base_path="./orderflow_data/journal")
        >>> orderflow.configure(journal=journal)
    """

    def __init__(self, base_path: str = "./orderflow_data/journal") -> None:
        self.base_path = Path(base_path)
        self._executions_dir = self.base_path / "executions"
        self._events_dir = self.base_path / "events"
        self._callbacks_dir = self.base_path / "callbacks"
        for directory in (self._executions_dir, self._events_dir, self._callbacks_dir):
            directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _execution_path(self, run_id: str) -> Path:
        return self._executions_dir / f"{safe_key(run_id)}.json"

    def _events_path(self, run_id: str) -> Path:
        return self._events_dir / f"{safe_key(run_id)}.jsonl"

    def _callback_path(self, callback_id: str) -> Path:
        return self._callbacks_dir / f"{safe_key(callback_id)}.json"

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)

    # Execution Operations

    async def create_execution(self, execution: Execution) -> None:
        with self._lock:
            path = self._execution_path(execution.run_id)
            if path.exists():
                raise ExecutionAlreadyExistsError(execution.run_id)
            atomic_write_json(path, execution.to_dict())

    async def get_execution(self, run_id: str) -> Execution | None:
        with self._lock:
            data = self._read_json(self._execution_path(run_id))
            return Execution.from_dict(data) if data else None

    async def update_execution_status(
        self,
        run_id: str,
        status: ExecutionStatus,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            path = self._execution_path(run_id)
            data = self._read_json(path)
            if not data:
                return
            execution = Execution.from_dict(data)
            execution.status = status
            execution.updated_at = datetime.now(UTC)
            if result is not None:
                execution.result = result
            if error is not None:
                execution.error = error
            if status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
                execution.completed_at = datetime.now(UTC)
            atomic_write_json(path, execution.to_dict())

    async def list_executions(
        self,
        workflow_name: str | None = None,
        status: ExecutionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Execution]:
        with self._lock:
            executions = []
            for path in self._executions_dir.glob("*.json"):
                data = self._read_json(path)
                if data:
                    executions.append(Execution.from_dict(data))

        if workflow_name:
            executions = [e for e in executions if e.workflow_name == workflow_name]
        if status:
            executions = [e for e in executions if e.status == status]

        executions.sort(key=lambda e: e.created_at, reverse=True)
        return executions[offset : offset + limit]

    # Event Log Operations

    async def record_event(self, event: Event) -> None:
        with self._lock:
            path = self._events_path(event.run_id)
            sequence = 0
            if path.exists():
                with open(path) as f:
                    sequence = sum(1 for line in f if line.strip())
            event.sequence = sequence
            with open(path, "a") as f:
                f.write(json.dumps(event.to_dict()) + "\n")
                f.flush()
                os.fsync(f.fileno())

    async def get_events(
        self,
        run_id: str,
        event_types: list[str] | None = None,
    ) -> list[Event]:
        with self._lock:
            path = self._events_path(run_id)
            if not path.exists():
                return []
            with open(path) as f:
                events = [Event.from_dict(json.loads(line)) for line in f if line.strip()]

        if event_types:
            events = [e for e in events if e.type.value in event_types]

        events.sort(key=lambda e: e.sequence or 0)
        return events

    # Callback Operations

    async def create_callback(self, callback: Callback) -> None:
        with self._lock:
            atomic_write_json(self._callback_path(callback.callback_id), callback.to_dict())

    async def get_callback(self, callback_id: str) -> Callback | None:
        with self._lock:
            try:
                data = self._read_json(self._callback_path(callback_id))
            except ValueError:
                return None
            return Callback.from_dict(data) if data else None

    async def get_callback_by_token(self, token: str) -> Callback | None:
        # Tokens are "<run_id>:<callback_id>"; the stored token must match exactly.
        _, sep, callback_id = token.rpartition(":")
        if not sep or not callback_id:
            return None
        callback = await self.get_callback(callback_id)
        if callback is None or callback.token != token:
            return None
        return callback

    async def update_callback_status(
        self,
        callback_id: str,
        status: CallbackStatus,
        payload: str | None = None,
    ) -> None:
        with self._lock:
            path = self._callback_path(callback_id)
            data = self._read_json(path)
            if not data:
                return
            callback = Callback.from_dict(data)
            callback.status = status
            if payload is not None:
                callback.payload = payload
            if status == CallbackStatus.RECEIVED:
                callback.received_at = datetime.now(UTC)
            atomic_write_json(path, callback.to_dict())

    async def list_callbacks(
        self,
        run_id: str | None = None,
        status: CallbackStatus | None = None,
    ) -> list[Callback]:
        with self._lock:
            callbacks = []
            for path in self._callbacks_dir.glob("*.json"):
                data = self._read_json(path)
                if data:
                    callbacks.append(Callback.from_dict(data))

        if run_id:
            callbacks = [c for c in callbacks if c.run_id == run_id]
        if status:
            callbacks = [c for c in callbacks if c.status == status]

        callbacks.sort(key=lambda c: c.created_at)
        return callbacks

    def __repr__(self) -> str:
        return f"FileJournalStore(base_path={str(self.base_path)!r})"
