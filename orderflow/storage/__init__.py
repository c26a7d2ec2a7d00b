"""
Journal stores for executions, callbacks and their event logs.

- InMemoryJournalStore: tests and single-process deployments
- FileJournalStore: survives restarts, shared between CLI invocations
"""

from orderflow.storage.base import JournalStore
from orderflow.storage.file import FileJournalStore
from orderflow.storage.memory import InMemoryJournalStore
from orderflow.storage.schemas import Callback, CallbackStatus, Execution, ExecutionStatus

__all__ = [
    "JournalStore",
    "InMemoryJournalStore",
    "FileJournalStore",
    "Execution",
    "ExecutionStatus",
    "Callback",
    "CallbackStatus",
]
