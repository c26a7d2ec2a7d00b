"""
MockContext - testing context for workflows.

Runs steps directly and answers callback waits from a dict of canned
payloads, so a workflow body can be exercised without a journal.
"""

from __future__ import annotations

import inspect
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from orderflow.context.base import Registrar, RetryPolicy, StepFunction, WorkflowContext
from orderflow.core.exceptions import CallbackTimeoutError, DuplicateStepError


class MockContext(WorkflowContext):
    """
    Mock context for testing workflows.

    Features:
    - Executes steps directly (no checkpointing)
    - Calls registrars with a fake token
    - Returns canned callback payloads; an exception instance is raised instead
    - A wait without a canned payload times out
    - Tracks all operations for verification

    Example:
        async def test_happy_path():
            ctx = MockContext(mock_callbacks={
                "wait-for-acceptance": {"status": "accepted", "bartenderId": "b-1"},
                "wait-for-ready": {"status": "ready"},
                "wait-for-completion": {"status": "completed"},
            })
            with ctx:
                result = await order_orchestrator(event)

            assert "create-order" in ctx.step_names
            assert ctx.callback_names == ["wait-for-acceptance", "wait-for-ready", "wait-for-completion"]
    """

    def __init__(
        self,
        run_id: str = "test_run",
        workflow_name: str = "test_workflow",
        mock_results: Optional[Dict[str, Any]] = None,
        mock_callbacks: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            run_id: Run ID for the test
            workflow_name: Workflow name for the test
            mock_results: Dict of step_name -> result for mocking step results
            mock_callbacks: Dict of wait name -> payload (or exception to raise)
        """
        super().__init__(run_id=run_id, workflow_name=workflow_name)
        self._mock_results = mock_results or {}
        self._mock_callbacks = mock_callbacks or {}

        self._steps: List[Dict[str, Any]] = []
        self._callbacks: List[Dict[str, Any]] = []
        self._used_names: set = set()

    @property
    def steps(self) -> List[Dict[str, Any]]:
        return self._steps.copy()

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def step_names(self) -> List[str]:
        return [s["name"] for s in self._steps]

    @property
    def callbacks(self) -> List[Dict[str, Any]]:
        return self._callbacks.copy()

    @property
    def callback_names(self) -> List[str]:
        return [c["name"] for c in self._callbacks]

    def _claim_name(self, name: str) -> None:
        if name in self._used_names:
            raise DuplicateStepError(name)
        self._used_names.add(name)

    async def step(
        self,
        name: str,
        fn: StepFunction,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Execute a step directly, or return its mocked result."""
        self._claim_name(name)
        self._steps.append({"name": name, "func": fn, "args": args, "kwargs": kwargs})

        logger.debug(f"[mock] Running step: {name}")

        if name in self._mock_results:
            return self._mock_results[name]

        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        return result

    async def wait_for_callback(
        self,
        name: str,
        registrar: Registrar,
        timeout: Optional[Union[str, int, float, timedelta]] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> Any:
        self._claim_name(name)
        token = f"{self._run_id}:mock_{name}"
        self._callbacks.append({"name": name, "token": token, "timeout": timeout})

        logger.debug(f"[mock] Waiting for callback: {name}")

        registered = registrar(token)
        if inspect.isawaitable(registered):
            await registered

        if name not in self._mock_callbacks:
            raise CallbackTimeoutError(name, token)

        payload = self._mock_callbacks[name]
        if isinstance(payload, BaseException):
            raise payload
        return payload

    def assert_step_called(self, step_name: str, times: Optional[int] = None) -> None:
        call_count = sum(1 for s in self._steps if s["name"] == step_name)

        if times is not None:
            assert call_count == times, (
                f"Step '{step_name}' expected {times} calls, got {call_count}"
            )
        else:
            assert call_count > 0, f"Step '{step_name}' was not called"

    def assert_step_not_called(self, step_name: str) -> None:
        assert step_name not in self.step_names, f"Step '{step_name}' was called"
