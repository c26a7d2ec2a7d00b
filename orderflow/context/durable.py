"""
DurableContext - journaled workflow execution.

Every step and callback wait is recorded in the journal. When an execution
is resumed the workflow function runs again from the top and the context
answers each operation from the recorded events instead of running it,
until it reaches the first operation that has no outcome yet.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from loguru import logger

from orderflow.context.base import Registrar, RetryPolicy, StepFunction, WorkflowContext
from orderflow.core.exceptions import (
    CallbackRegistrationError,
    CallbackTimeoutError,
    DuplicateStepError,
    StepFailedError,
    SuspensionSignal,
)
from orderflow.engine.events import (
    Event,
    EventType,
    create_callback_created_event,
    create_callback_failed_event,
    create_callback_registered_event,
    create_callback_registrar_retrying_event,
    create_callback_timed_out_event,
    create_step_completed_event,
    create_step_failed_event,
    create_step_started_event,
)
from orderflow.observability.logging import step_logging_context
from orderflow.serialization import deserialize, serialize, serialize_args, serialize_kwargs
from orderflow.storage.base import JournalStore
from orderflow.storage.schemas import Callback, CallbackStatus
from orderflow.utils.duration import parse_duration


def create_callback_token(run_id: str, callback_id: str) -> str:
    """Composite token: ``<run_id>:<callback_id>``."""
    return f"{run_id}:{callback_id}"


def parse_callback_token(token: str) -> Tuple[str, str]:
    """
    Split a token into run id and callback id.

    Raises:
        ValueError: If the token is not in ``run_id:callback_id`` form
    """
    run_id, sep, callback_id = token.rpartition(":")
    if not sep or not run_id or not callback_id:
        raise ValueError(f"Malformed callback token: {token!r}")
    return run_id, callback_id


async def mark_callback_timed_out(storage: JournalStore, callback: Callback) -> None:
    """Expire a pending callback and journal the timeout for its execution."""
    await storage.update_callback_status(callback.callback_id, CallbackStatus.EXPIRED)
    await storage.record_event(
        create_callback_timed_out_event(callback.run_id, callback.callback_id)
    )
    logger.info(
        "Callback timed out",
        run_id=callback.run_id,
        callback_id=callback.callback_id,
        callback_name=callback.name,
    )


class DurableContext(WorkflowContext):
    """
    Journaled execution context.

    Example:
        ctx = DurableContext(
            run_id="order-123",
            workflow_name="order-orchestrator",
            storage=FileJournalStore("./orderflow_data/journal"),
            event_log=await storage.get_events("order-123"),
        )
    """

    def __init__(
        self,
        run_id: str,
        workflow_name: str,
        storage: JournalStore,
        event_log: Optional[List[Event]] = None,
        default_retry: Optional[RetryPolicy] = None,
    ) -> None:
        """
        Args:
            run_id: Unique identifier for this execution
            workflow_name: Name of the workflow
            storage: Journal store the events are recorded to
            event_log: Existing events for replay (when resuming)
            default_retry: Registrar retry policy for waits that set none
        """
        super().__init__(run_id=run_id, workflow_name=workflow_name)
        self._storage = storage
        self._default_retry = default_retry or RetryPolicy()

        self._step_results: Dict[str, Any] = {}
        self._step_failures: Dict[str, Tuple[str, str]] = {}

        # Wait name -> {callback_id, token, expires_at}
        self._callbacks: Dict[str, Dict[str, Any]] = {}
        self._callback_names: Dict[str, str] = {}  # callback_id -> wait name
        self._registered: Set[str] = set()
        self._callback_results: Dict[str, Any] = {}
        self._timed_out: Set[str] = set()
        self._callback_failures: Dict[str, Tuple[str, int]] = {}

        self._used_names: Set[str] = set()
        self._is_replaying = False

        if event_log:
            self._is_replaying = True
            self._replay_events(event_log)
            self._is_replaying = False

    def _replay_events(self, events: List[Event]) -> None:
        """Replay events to restore state."""
        for event in events:
            data = event.data

            if event.type == EventType.STEP_COMPLETED:
                step_name = data["step_name"]
                self._step_results[step_name] = deserialize(data.get("result"))
                self._step_failures.pop(step_name, None)

            elif event.type == EventType.STEP_FAILED:
                step_name = data["step_name"]
                self._step_failures[step_name] = (
                    data.get("error", ""),
                    data.get("error_type", "Exception"),
                )

            elif event.type == EventType.CALLBACK_CREATED:
                name = data["name"]
                expires_at = data.get("expires_at")
                self._callbacks[name] = {
                    "callback_id": data["callback_id"],
                    "token": data["token"],
                    "expires_at": datetime.fromisoformat(expires_at) if expires_at else None,
                }
                self._callback_names[data["callback_id"]] = name

            elif event.type == EventType.CALLBACK_REGISTERED:
                self._registered.add(data["callback_id"])

            elif event.type == EventType.CALLBACK_RECEIVED:
                name = self._callback_names.get(data["callback_id"])
                if name is not None:
                    self._callback_results[name] = deserialize(data.get("payload"))

            elif event.type == EventType.CALLBACK_TIMED_OUT:
                name = self._callback_names.get(data["callback_id"])
                if name is not None:
                    self._timed_out.add(name)

            elif event.type == EventType.CALLBACK_FAILED:
                name = self._callback_names.get(data["callback_id"])
                if name is not None:
                    self._callback_failures[name] = (
                        data.get("error", ""),
                        data.get("attempts", 1),
                    )

    @property
    def storage(self) -> JournalStore:
        return self._storage

    @property
    def is_replaying(self) -> bool:
        return self._is_replaying

    @property
    def step_results(self) -> Dict[str, Any]:
        return self._step_results

    def _claim_name(self, name: str) -> None:
        if name in self._used_names:
            raise DuplicateStepError(name)
        self._used_names.add(name)

    # =========================================================================
    # Steps
    # =========================================================================

    async def step(
        self,
        name: str,
        fn: StepFunction,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """
        Run a checkpointed step.

        The result is passed through the journal serializer on the first run
        as well, so the workflow sees the same value whether the step ran now
        or was replayed.
        """
        self._claim_name(name)

        if name in self._step_results:
            logger.debug(f"[replay] Step {name} already completed, using recorded result")
            return self._step_results[name]

        if name in self._step_failures:
            error, error_type = self._step_failures[name]
            logger.debug(f"[replay] Step {name} failed before, raising recorded error")
            raise StepFailedError(name, error, error_type)

        await self._storage.record_event(
            create_step_started_event(
                run_id=self._run_id,
                step_name=name,
                args=serialize_args(*args),
                kwargs=serialize_kwargs(**kwargs),
            )
        )

        logger.info("Running step", run_id=self._run_id, step_name=name)

        try:
            with step_logging_context(self._run_id, name):
                result = await self._execute_func(fn, *args, **kwargs)
        except Exception as e:
            await self._storage.record_event(
                create_step_failed_event(
                    run_id=self._run_id,
                    step_name=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            )
            self._step_failures[name] = (str(e), type(e).__name__)
            logger.warning(
                "Step failed",
                run_id=self._run_id,
                step_name=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        serialized = serialize(result)
        await self._storage.record_event(
            create_step_completed_event(
                run_id=self._run_id,
                step_name=name,
                result=serialized,
            )
        )

        result = deserialize(serialized)
        self._step_results[name] = result
        logger.info("Step completed", run_id=self._run_id, step_name=name)
        return result

    async def _execute_func(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Execute a function, handling both sync and async."""
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        return result

    # =========================================================================
    # Callback waits
    # =========================================================================

    async def wait_for_callback(
        self,
        name: str,
        registrar: Registrar,
        timeout: Optional[Union[str, int, float, timedelta]] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> Any:
        """
        Suspend until an external actor submits a result for this wait.

        First run: the callback is created, the registrar receives the token
        and the execution suspends. Replay: a received payload is returned, a
        recorded timeout or registrar failure is raised, and a wait that is
        still pending suspends again without calling the registrar a second
        time once its registration was journaled.
        """
        self._claim_name(name)

        if name in self._callback_results:
            logger.debug(f"[replay] Callback {name} already received")
            return self._callback_results[name]

        existing = self._callbacks.get(name)

        if name in self._timed_out:
            raise CallbackTimeoutError(name, existing["token"] if existing else None)

        if name in self._callback_failures:
            error, attempts = self._callback_failures[name]
            raise CallbackRegistrationError(name, error, attempts)

        if existing is None:
            existing = await self._create_callback(name, timeout)
        else:
            await self._expire_if_past_due(name, existing)

        callback_id = existing["callback_id"]
        token = existing["token"]

        if callback_id not in self._registered:
            await self._register(name, callback_id, token, registrar, retry or self._default_retry)

        logger.info(
            "Waiting for callback",
            run_id=self._run_id,
            callback_id=callback_id,
            callback_name=name,
        )

        raise SuspensionSignal(
            reason=f"callback:{name}",
            callback_id=callback_id,
            token=token,
            resume_at=existing["expires_at"],
        )

    async def _create_callback(
        self,
        name: str,
        timeout: Optional[Union[str, int, float, timedelta]],
    ) -> Dict[str, Any]:
        callback_id = f"cb_{uuid.uuid4().hex[:16]}"
        token = create_callback_token(self._run_id, callback_id)

        expires_at = None
        if timeout:
            expires_at = datetime.now(UTC) + timedelta(seconds=parse_duration(timeout))

        # The event is the source of truth for replay, the record is for lookup.
        await self._storage.record_event(
            create_callback_created_event(
                run_id=self._run_id,
                callback_id=callback_id,
                name=name,
                token=token,
                expires_at=expires_at,
            )
        )
        await self._storage.create_callback(
            Callback(
                callback_id=callback_id,
                run_id=self._run_id,
                name=name,
                token=token,
                expires_at=expires_at,
            )
        )

        info = {"callback_id": callback_id, "token": token, "expires_at": expires_at}
        self._callbacks[name] = info
        self._callback_names[callback_id] = name
        return info

    async def _expire_if_past_due(self, name: str, info: Dict[str, Any]) -> None:
        """Time out a replayed wait whose deadline passed while nobody swept it."""
        callback = await self._storage.get_callback(info["callback_id"])
        if callback is None or callback.status != CallbackStatus.PENDING:
            return
        if not callback.is_past_due():
            return

        await mark_callback_timed_out(self._storage, callback)
        self._timed_out.add(name)
        raise CallbackTimeoutError(name, info["token"])

    async def _register(
        self,
        name: str,
        callback_id: str,
        token: str,
        registrar: Registrar,
        retry: RetryPolicy,
    ) -> None:
        """Invoke the registrar with bounded retries and journal the outcome."""
        for attempt in range(1, retry.max_attempts + 1):
            try:
                await self._execute_func(registrar, token)
                break
            except Exception as e:
                if attempt < retry.max_attempts:
                    delay = retry.get_delay(attempt - 1)
                    await self._storage.record_event(
                        create_callback_registrar_retrying_event(
                            run_id=self._run_id,
                            callback_id=callback_id,
                            attempt=attempt,
                            delay_seconds=delay,
                            error=str(e),
                        )
                    )
                    logger.warning(
                        f"Registrar for {name} failed (attempt {attempt}/{retry.max_attempts}), "
                        f"retrying in {delay}s",
                        run_id=self._run_id,
                        callback_id=callback_id,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
                    continue

                await self._storage.record_event(
                    create_callback_failed_event(
                        run_id=self._run_id,
                        callback_id=callback_id,
                        error=str(e),
                        attempts=attempt,
                    )
                )
                await self._storage.update_callback_status(callback_id, CallbackStatus.FAILED)
                self._callback_failures[name] = (str(e), attempt)
                logger.error(
                    f"Registrar for {name} failed after {attempt} attempts",
                    run_id=self._run_id,
                    callback_id=callback_id,
                    error=str(e),
                )
                raise CallbackRegistrationError(name, str(e), attempt) from e

        await self._storage.record_event(
            create_callback_registered_event(
                run_id=self._run_id,
                callback_id=callback_id,
                attempts=attempt,
            )
        )
        self._registered.add(callback_id)
