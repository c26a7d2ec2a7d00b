"""
Process-wide workflow registry.

``resume`` only knows a workflow by the name stored on its execution, so
every workflow function is registered under that name at import time.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class WorkflowMetadata:
    """Metadata for a registered workflow."""

    name: str
    func: Callable[..., Any]
    original_func: Callable[..., Any]
    metadata: Dict[str, Any] = field(default_factory=dict)


class WorkflowRegistry:
    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowMetadata] = {}
        self._by_func: Dict[Callable[..., Any], str] = {}

    def register(
        self,
        name: str,
        func: Callable[..., Any],
        original_func: Callable[..., Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> WorkflowMetadata:
        """
        Register a workflow under ``name``.

        Registering the same function again (module reload) replaces the
        entry; a different function under a taken name is an error.
        """
        existing = self._workflows.get(name)
        if existing is not None and existing.original_func.__qualname__ != original_func.__qualname__:
            raise ValueError(f"Workflow name '{name}' is already registered")

        meta = WorkflowMetadata(
            name=name,
            func=func,
            original_func=original_func,
            metadata=metadata or {},
        )
        self._workflows[name] = meta
        self._by_func[func] = name
        self._by_func[original_func] = name
        return meta

    def get(self, name: str) -> Optional[WorkflowMetadata]:
        return self._workflows.get(name)

    def get_by_func(self, func: Callable[..., Any]) -> Optional[WorkflowMetadata]:
        name = self._by_func.get(func)
        return self._workflows.get(name) if name else None

    def list(self) -> List[WorkflowMetadata]:
        return list(self._workflows.values())

    def clear(self) -> None:
        self._workflows.clear()
        self._by_func.clear()


_registry = WorkflowRegistry()


def register_workflow(
    name: str,
    func: Callable[..., Any],
    original_func: Callable[..., Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> WorkflowMetadata:
    return _registry.register(name, func, original_func, metadata)


def get_workflow(name: str) -> Optional[WorkflowMetadata]:
    return _registry.get(name)


def get_workflow_by_func(func: Callable[..., Any]) -> Optional[WorkflowMetadata]:
    return _registry.get_by_func(func)


def list_workflows() -> List[WorkflowMetadata]:
    return _registry.list()
