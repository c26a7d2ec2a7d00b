"""
WorkflowContext - base class for workflow execution contexts.

The context is passed implicitly through ``contextvars``: the executor sets
it before running a workflow function and every checkpointed operation
inside reads it back with ``get_context()``.

Usage:
    from orderflow.context import get_context

    @workflow(name="greeting")
    async def greeting(event: dict):
        ctx = get_context()
        name = await ctx.step("load-name", load_name, event["user_id"])
        reply = await ctx.wait_for_callback("wait-for-reply", send_prompt, timeout="5m")
        return {"name": name, "reply": reply}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, TypeVar, Union

from loguru import logger

T = TypeVar("T")
StepFunction = Callable[..., Union[T, Coroutine[Any, Any, T]]]

# Called with the callback token; delivers it to whoever will resolve the wait.
Registrar = Callable[[str], Union[None, Awaitable[None]]]

_current_context: ContextVar[Optional["WorkflowContext"]] = ContextVar(
    "workflow_context", default=None
)


@dataclass
class RetryPolicy:
    """
    Retry policy for callback registrars.

    Attributes:
        max_attempts: Total number of registrar invocations before giving up
        delay: Backoff strategy between attempts:
            - "exponential": 1, 2, 4, 8, ... seconds (capped at 300)
            - int/float: fixed number of seconds
            - list: per-attempt delays, the last value repeats
    """

    max_attempts: int = 3
    delay: Union[str, int, float, List[Union[int, float]]] = "exponential"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds after the given failed attempt (0-indexed)."""
        if self.delay == "exponential":
            return min(2**attempt, 300)
        if isinstance(self.delay, (int, float)):
            return self.delay
        if isinstance(self.delay, list):
            if attempt < len(self.delay):
                return self.delay[attempt]
            return self.delay[-1] if self.delay else 1
        return 1


def get_context() -> "WorkflowContext":
    """
    Get the current workflow context (implicit).

    Raises:
        RuntimeError: If called outside of a workflow execution
    """
    ctx = _current_context.get()
    if ctx is None:
        raise RuntimeError(
            "No workflow context available. "
            "This function must be called within a workflow execution. "
            "Make sure the workflow was started with orderflow.start()."
        )
    return ctx


def has_context() -> bool:
    return _current_context.get() is not None


def set_context(ctx: Optional["WorkflowContext"]) -> Token:
    """
    Set the current workflow context.

    This is called by the executor, not user code.

    Returns:
        Token that can be used to reset the context
    """
    return _current_context.set(ctx)


def reset_context(token: Token) -> None:
    _current_context.reset(token)


class WorkflowContext(ABC):
    """
    Abstract base class for all workflow execution contexts.

    The context provides:
    - Checkpointed step execution
    - Suspend-until-callback waits with timeouts
    - Logging with workflow context
    """

    def __init__(
        self,
        run_id: str = "unknown",
        workflow_name: str = "unknown",
    ) -> None:
        self._run_id = run_id
        self._workflow_name = workflow_name

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def workflow_name(self) -> str:
        return self._workflow_name

    @abstractmethod
    async def step(
        self,
        name: str,
        fn: StepFunction[T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run ``fn`` at most once per execution and checkpoint its result.

        Args:
            name: Step name, unique within the execution
            fn: The step function (sync or async)
            *args: Positional arguments for ``fn``
            **kwargs: Keyword arguments for ``fn``

        Returns:
            The step result (the recorded one on replay)

        Raises:
            DuplicateStepError: If ``name`` was already used in this execution
            StepFailedError: On replay of a step whose failure was recorded
        """
        ...

    @abstractmethod
    async def wait_for_callback(
        self,
        name: str,
        registrar: Registrar,
        timeout: Optional[Union[str, int, float, timedelta]] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> Any:
        """
        Suspend the execution until an external actor submits a result.

        The registrar is called with a fresh token and is responsible for
        handing it to whoever will resolve the wait.

        Args:
            name: Wait name, unique within the execution
            registrar: Called with the token (sync or async)
            timeout: How long to wait ("5m", seconds, timedelta); None waits forever
            retry: Registrar retry policy (None uses the configured default)

        Returns:
            The submitted payload

        Raises:
            CallbackTimeoutError: If the wait expired
            CallbackRegistrationError: If the registrar kept failing
        """
        ...

    def log(self, message: str, level: str = "info", **kwargs: Any) -> None:
        """Log a message with workflow context."""
        log_fn = getattr(logger, level, logger.info)
        log_fn(
            message,
            run_id=self._run_id,
            workflow_name=self._workflow_name,
            **kwargs,
        )

    def __enter__(self) -> "WorkflowContext":
        self._token = set_context(self)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        reset_context(self._token)

    async def __aenter__(self) -> "WorkflowContext":
        self._token = set_context(self)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        reset_context(self._token)
