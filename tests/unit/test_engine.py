"""Tests for checkpointed steps, callback waits and replay."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from orderflow import (
    CallbackAlreadyReceivedError,
    CallbackExpiredError,
    CallbackRegistrationError,
    CallbackTimeoutError,
    DuplicateStepError,
    ExecutionAlreadyExistsError,
    ExecutionNotFoundError,
    InvalidTokenError,
    RetryPolicy,
    WorkflowNotRegisteredError,
    expire_callbacks,
    get_context,
    get_execution,
    get_execution_events,
    resume,
    start,
    submit_callback,
    workflow,
)
from orderflow.engine.events import EventType
from orderflow.engine.executor import held_run_locks
from orderflow.storage.memory import InMemoryJournalStore
from orderflow.storage.schemas import CallbackStatus, ExecutionStatus

OUTBOX: list = []
CALLS: dict = {}
ERRORS: list = []


class Crash(BaseException):
    """Simulates the process dying in the middle of a step."""


@pytest.fixture(autouse=True)
def clear_tracking():
    OUTBOX.clear()
    CALLS.clear()
    ERRORS.clear()
    yield


def _count(name):
    CALLS[name] = CALLS.get(name, 0) + 1


async def deliver(token):
    _count("deliver")
    OUTBOX.append(token)


def make_greeting(name):
    _count("make-greeting")
    return f"Hello, {name}"


def explode():
    _count("explode")
    raise ValueError("boom")


@workflow(name="test-greeting")
async def greeting_workflow(name):
    ctx = get_context()
    greeting = await ctx.step("make-greeting", make_greeting, name)
    reply = await ctx.wait_for_callback("wait-for-reply", deliver, timeout="5m")
    return {"greeting": greeting, "reply": reply}


@workflow(name="test-timeout")
async def timeout_workflow():
    ctx = get_context()
    try:
        return await ctx.wait_for_callback("wait-briefly", deliver, timeout="1m")
    except CallbackTimeoutError:
        return "timed out"


@workflow(name="test-duplicate")
async def duplicate_workflow():
    ctx = get_context()
    await ctx.step("same-name", make_greeting, "a")
    await ctx.step("same-name", make_greeting, "b")


@workflow(name="test-failing")
async def failing_workflow():
    ctx = get_context()
    await ctx.step("explode", explode)


@workflow(name="test-recover")
async def recover_workflow():
    ctx = get_context()
    try:
        await ctx.step("explode", explode)
    except Exception as e:
        ERRORS.append(type(e).__name__)
    return await ctx.wait_for_callback("wait-after-failure", deliver)


FLAKY = {"failures_left": 0}


async def flaky_deliver(token):
    _count("flaky")
    if FLAKY["failures_left"] > 0:
        FLAKY["failures_left"] -= 1
        raise ConnectionError("bus unavailable")
    OUTBOX.append(token)


@workflow(name="test-flaky-registrar")
async def flaky_registrar_workflow(max_attempts):
    ctx = get_context()
    try:
        return await ctx.wait_for_callback(
            "wait-flaky",
            flaky_deliver,
            retry=RetryPolicy(max_attempts=max_attempts, delay=0),
        )
    except CallbackRegistrationError as e:
        return f"registration failed after {e.attempts}"


def charge():
    _count("charge")
    return "charged"


def crash_once():
    _count("crash-once")
    if CALLS["crash-once"] == 1:
        raise Crash()
    return "ok"


@workflow(name="test-crash")
async def crash_workflow():
    ctx = get_context()
    receipt = await ctx.step("charge", charge)
    await ctx.step("crash-once", crash_once)
    return receipt


def event_types(events):
    return [e.type.value for e in events]


class TestStartAndSuspend:
    """Tests for running a workflow until its first wait."""

    @pytest.mark.asyncio
    async def test_start_suspends_on_wait(self, journal):
        """The execution suspends and the registrar receives the token."""
        run_id = await start(greeting_workflow, "Ada", run_id="greet-1")

        execution = await get_execution(run_id)
        assert execution.status == ExecutionStatus.SUSPENDED
        assert len(OUTBOX) == 1
        assert OUTBOX[0].startswith("greet-1:")

    @pytest.mark.asyncio
    async def test_journal_order(self, journal):
        """Events are journaled in execution order with increasing sequence."""
        run_id = await start(greeting_workflow, "Ada")

        events = await get_execution_events(run_id)
        assert event_types(events) == [
            "execution.started",
            "step.started",
            "step.completed",
            "callback.created",
            "callback.registered",
            "execution.suspended",
        ]
        assert [e.sequence for e in events] == list(range(len(events)))

    @pytest.mark.asyncio
    async def test_generated_run_id(self, journal):
        run_id = await start(greeting_workflow, "Ada")
        assert run_id.startswith("run_")

    @pytest.mark.asyncio
    async def test_run_id_taken(self, journal):
        await start(greeting_workflow, "Ada", run_id="taken")
        with pytest.raises(ExecutionAlreadyExistsError):
            await start(greeting_workflow, "Bob", run_id="taken")

    @pytest.mark.asyncio
    async def test_unregistered_workflow(self, journal):
        async def not_a_workflow():
            return 1

        with pytest.raises(WorkflowNotRegisteredError):
            await start(not_a_workflow)

    def test_get_context_outside_workflow(self):
        with pytest.raises(RuntimeError):
            get_context()


class TestReplay:
    """Tests for resuming executions from their journal."""

    @pytest.mark.asyncio
    async def test_submit_completes_execution(self, journal):
        """Submitting the callback resumes the run; steps and registrar run once."""
        run_id = await start(greeting_workflow, "Ada")

        result = await submit_callback(OUTBOX[0], {"text": "hi"})

        assert result.run_id == run_id
        assert result.execution_status == ExecutionStatus.COMPLETED
        assert result.result == {"greeting": "Hello, Ada", "reply": {"text": "hi"}}
        assert CALLS == {"make-greeting": 1, "deliver": 1}

    @pytest.mark.asyncio
    async def test_resume_without_result_suspends_again(self, journal):
        """Replaying a pending wait does not call its registrar again."""
        run_id = await start(greeting_workflow, "Ada")

        assert await resume(run_id) is None

        execution = await get_execution(run_id)
        assert execution.status == ExecutionStatus.SUSPENDED
        assert CALLS == {"make-greeting": 1, "deliver": 1}

    @pytest.mark.asyncio
    async def test_resume_completed_returns_stored_result(self, journal):
        run_id = await start(greeting_workflow, "Ada")
        await submit_callback(OUTBOX[0], "hi")

        assert await resume(run_id) == {"greeting": "Hello, Ada", "reply": "hi"}
        assert CALLS["make-greeting"] == 1

    @pytest.mark.asyncio
    async def test_resume_unknown_execution(self, journal):
        with pytest.raises(ExecutionNotFoundError):
            await resume("nope")

    @pytest.mark.asyncio
    async def test_replayed_failure_raises_step_failed(self, journal):
        """A recorded step failure is raised as StepFailedError on replay."""
        await start(recover_workflow)
        assert ERRORS == ["ValueError"]

        await submit_callback(OUTBOX[0], "done")

        assert ERRORS == ["ValueError", "StepFailedError"]
        assert CALLS["explode"] == 1

    @pytest.mark.asyncio
    async def test_crash_mid_step_resumes_without_repeating_work(self, journal):
        """Steps completed before a crash are not executed again."""
        with pytest.raises(Crash):
            await start(crash_workflow, run_id="crashy")

        execution = await get_execution("crashy")
        assert execution.status == ExecutionStatus.RUNNING

        assert await resume("crashy") == "charged"
        assert CALLS == {"charge": 1, "crash-once": 2}


class TestStepErrors:
    """Tests for step failures and naming."""

    @pytest.mark.asyncio
    async def test_duplicate_step_name(self, journal):
        with pytest.raises(DuplicateStepError):
            await start(duplicate_workflow, run_id="dup")

        execution = await get_execution("dup")
        assert execution.status == ExecutionStatus.FAILED

    @pytest.mark.asyncio
    async def test_uncaught_step_failure_fails_execution(self, journal):
        """The original exception propagates and the run is marked failed."""
        with pytest.raises(ValueError, match="boom"):
            await start(failing_workflow, run_id="fails")

        execution = await get_execution("fails")
        assert execution.status == ExecutionStatus.FAILED
        assert execution.error == "boom"

        events = await get_execution_events("fails")
        assert event_types(events)[-2:] == ["step.failed", "execution.failed"]

        # Nothing to resume
        assert await resume("fails") is None


class TestCallbackSubmission:
    """Tests for submit_callback error cases."""

    @pytest.mark.asyncio
    async def test_second_submission_rejected(self, journal):
        await start(greeting_workflow, "Ada")
        await submit_callback(OUTBOX[0], "first")

        with pytest.raises(CallbackAlreadyReceivedError):
            await submit_callback(OUTBOX[0], "second")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["garbage", "", "run-x:cb_unknown", ":cb_1", "run-x:"])
    async def test_invalid_token(self, journal, token):
        with pytest.raises(InvalidTokenError):
            await submit_callback(token, {})

    @pytest.mark.asyncio
    async def test_token_of_other_run_rejected(self, journal):
        """A callback id paired with another run id does not resolve."""
        await start(greeting_workflow, "Ada", run_id="run-a")
        callback_id = OUTBOX[0].split(":", 1)[1]

        with pytest.raises(InvalidTokenError):
            await submit_callback(f"run-b:{callback_id}", "hi")


class TestTimeouts:
    """Tests for wait deadlines."""

    @pytest.mark.asyncio
    async def test_expire_runs_timeout_path(self, journal):
        run_id = await start(timeout_workflow)

        # Nothing is due yet
        assert await expire_callbacks() == []

        expired = await expire_callbacks(now=datetime.now(UTC) + timedelta(minutes=2))

        assert expired == OUTBOX
        execution = await get_execution(run_id)
        assert execution.status == ExecutionStatus.COMPLETED
        assert await resume(run_id) == "timed out"

        events = await get_execution_events(run_id)
        assert "callback.timed_out" in event_types(events)

    @pytest.mark.asyncio
    async def test_late_submission_rejected(self, journal):
        await start(timeout_workflow)
        await expire_callbacks(now=datetime.now(UTC) + timedelta(minutes=2))

        with pytest.raises(CallbackExpiredError):
            await submit_callback(OUTBOX[0], "too late")

    @pytest.mark.asyncio
    async def test_submission_past_deadline_expires_on_the_spot(self, journal):
        """A past-due wait nobody swept is expired by the submission itself."""
        run_id = await start(timeout_workflow)
        callback = await journal.get_callback_by_token(OUTBOX[0])
        callback.expires_at = datetime.now(UTC) - timedelta(seconds=1)

        with pytest.raises(CallbackExpiredError):
            await submit_callback(OUTBOX[0], "too late")

        assert (await journal.get_callback(callback.callback_id)).status == CallbackStatus.EXPIRED
        assert await resume(run_id) == "timed out"

    @pytest.mark.asyncio
    async def test_replay_expires_past_due_wait(self, journal):
        """Resuming after the deadline takes the timeout path."""
        run_id = await start(timeout_workflow)
        callback = await journal.get_callback_by_token(OUTBOX[0])
        callback.expires_at = datetime.now(UTC) - timedelta(seconds=1)

        assert await resume(run_id) == "timed out"


class TestRegistrarRetries:
    """Tests for bounded registrar retries."""

    @pytest.mark.asyncio
    async def test_registrar_recovers_within_attempts(self, journal):
        FLAKY["failures_left"] = 2
        run_id = await start(flaky_registrar_workflow, 3)

        events = await get_execution_events(run_id)
        types = event_types(events)
        assert types.count("callback.registrar_retrying") == 2
        registered = [e for e in events if e.type == EventType.CALLBACK_REGISTERED]
        assert registered[0].data["attempts"] == 3
        assert CALLS["flaky"] == 3
        assert len(OUTBOX) == 1

    @pytest.mark.asyncio
    async def test_registrar_exhaustion(self, journal):
        """Exhausted retries fail the wait and its token stops resolving."""
        FLAKY["failures_left"] = 5
        run_id = await start(flaky_registrar_workflow, 2)

        assert await resume(run_id) == "registration failed after 2"
        assert CALLS["flaky"] == 2

        callbacks = await journal.list_callbacks(run_id=run_id)
        assert callbacks[0].status == CallbackStatus.FAILED

        with pytest.raises(CallbackExpiredError):
            await submit_callback(callbacks[0].token, "anything")

    def test_retry_policy_delays(self):
        assert RetryPolicy().get_delay(0) == 1
        assert RetryPolicy().get_delay(3) == 8
        assert RetryPolicy().get_delay(20) == 300
        assert RetryPolicy(delay=2.5).get_delay(4) == 2.5
        assert RetryPolicy(delay=[1, 5]).get_delay(0) == 1
        assert RetryPolicy(delay=[1, 5]).get_delay(7) == 5

    def test_retry_policy_needs_an_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestRunLocks:
    """Tests for the per-run locks kept by the executor."""

    @pytest.mark.asyncio
    async def test_lock_kept_while_suspended_and_dropped_when_finished(self, journal):
        run_id = await start(greeting_workflow, "Ada")
        assert held_run_locks() == 1

        await submit_callback(OUTBOX[0], "hi")

        assert (await get_execution(run_id)).status == ExecutionStatus.COMPLETED
        assert held_run_locks() == 0

    @pytest.mark.asyncio
    async def test_lock_dropped_after_failure(self, journal):
        with pytest.raises(ValueError):
            await start(failing_workflow)
        assert held_run_locks() == 0

    @pytest.mark.asyncio
    async def test_lock_dropped_for_unknown_run(self, journal):
        with pytest.raises(InvalidTokenError):
            await submit_callback("no-such-run:cb_0123456789abcdef", "hi")
        assert held_run_locks() == 0

    @pytest.mark.asyncio
    async def test_lock_shared_by_concurrent_callers(self, journal):
        """A queued caller keeps the lock alive until it is done with it."""
        run_id = await start(greeting_workflow, "Ada")

        submitted, resumed = await asyncio.gather(
            submit_callback(OUTBOX[0], "hi"),
            resume(run_id),
        )

        assert submitted.execution_status == ExecutionStatus.COMPLETED
        assert resumed in (None, {"greeting": "Hello, Ada", "reply": "hi"})
        assert CALLS == {"make-greeting": 1, "deliver": 1}
        assert held_run_locks() == 0


class TestExplicitJournal:
    @pytest.mark.asyncio
    async def test_empty_journal_passed_in_is_used(self, journal):
        """An empty store passed explicitly is not swapped for the configured one."""
        own = InMemoryJournalStore()
        assert len(own) == 0

        run_id = await start(greeting_workflow, "Ada", storage=own)

        assert await own.get_execution(run_id) is not None
        assert await journal.get_execution(run_id) is None
