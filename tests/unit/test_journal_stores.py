"""Tests for the in-memory and file journal stores."""

from datetime import UTC, datetime, timedelta

import pytest

from orderflow.core.exceptions import ExecutionAlreadyExistsError
from orderflow.engine.events import (
    EventType,
    create_callback_created_event,
    create_execution_started_event,
    create_step_completed_event,
)
from orderflow.storage import (
    Callback,
    CallbackStatus,
    Execution,
    ExecutionStatus,
    FileJournalStore,
    InMemoryJournalStore,
)
from orderflow.config import create_journal
from orderflow.storage.file import safe_key


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryJournalStore()
    return FileJournalStore(str(tmp_path / "journal"))


def make_execution(run_id="run-1", workflow_name="order-orchestrator"):
    return Execution(run_id=run_id, workflow_name=workflow_name, status=ExecutionStatus.RUNNING)


def make_callback(callback_id="cb_1", run_id="run-1", expires_at=None):
    return Callback(
        callback_id=callback_id,
        run_id=run_id,
        name="wait-for-acceptance",
        token=f"{run_id}:{callback_id}",
        expires_at=expires_at,
    )


class TestExecutions:
    """Tests for execution records."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        """Test an execution round-trips through the store."""
        await store.create_execution(make_execution())

        execution = await store.get_execution("run-1")
        assert execution.run_id == "run-1"
        assert execution.workflow_name == "order-orchestrator"
        assert execution.status == ExecutionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get_execution("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_run_id(self, store):
        """Test creating an execution twice is rejected."""
        await store.create_execution(make_execution())

        with pytest.raises(ExecutionAlreadyExistsError):
            await store.create_execution(make_execution())

    @pytest.mark.asyncio
    async def test_update_status(self, store):
        """Test completing an execution stores its result and finish time."""
        await store.create_execution(make_execution())

        await store.update_execution_status("run-1", ExecutionStatus.COMPLETED, result='"done"')

        execution = await store.get_execution("run-1")
        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.result == '"done"'
        assert execution.completed_at is not None
        assert execution.is_finished

    @pytest.mark.asyncio
    async def test_update_missing_is_noop(self, store):
        await store.update_execution_status("missing", ExecutionStatus.FAILED, error="x")
        assert await store.get_execution("missing") is None

    @pytest.mark.asyncio
    async def test_list_filters(self, store):
        """Test listing by workflow name and status."""
        await store.create_execution(make_execution("run-1"))
        await store.create_execution(make_execution("run-2", workflow_name="other"))
        await store.update_execution_status("run-2", ExecutionStatus.SUSPENDED)

        assert {e.run_id for e in await store.list_executions()} == {"run-1", "run-2"}
        by_name = await store.list_executions(workflow_name="other")
        assert [e.run_id for e in by_name] == ["run-2"]
        by_status = await store.list_executions(status=ExecutionStatus.RUNNING)
        assert [e.run_id for e in by_status] == ["run-1"]
        assert len(await store.list_executions(limit=1)) == 1


class TestEvents:
    """Tests for the append-only event log."""

    @pytest.mark.asyncio
    async def test_sequence_assigned_in_order(self, store):
        """Test events get consecutive sequence numbers per run."""
        await store.record_event(create_execution_started_event("run-1", "wf", "[]", "{}"))
        await store.record_event(create_step_completed_event("run-1", "validate-order", "{}"))
        await store.record_event(create_execution_started_event("run-2", "wf", "[]", "{}"))

        events = await store.get_events("run-1")
        assert [e.sequence for e in events] == [0, 1]
        assert [e.type for e in events] == [EventType.EXECUTION_STARTED, EventType.STEP_COMPLETED]
        assert events[1].data["step_name"] == "validate-order"
        assert [e.sequence for e in await store.get_events("run-2")] == [0]

    @pytest.mark.asyncio
    async def test_filter_by_type(self, store):
        await store.record_event(create_execution_started_event("run-1", "wf", "[]", "{}"))
        await store.record_event(create_step_completed_event("run-1", "validate-order", "{}"))

        events = await store.get_events("run-1", event_types=["step.completed"])
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_events_of_unknown_run(self, store):
        assert await store.get_events("missing") == []

    @pytest.mark.asyncio
    async def test_callback_created_expiry_round_trips(self, store):
        """Test the deadline survives the journal as an ISO string."""
        expires_at = datetime(2030, 1, 1, tzinfo=UTC)
        await store.record_event(
            create_callback_created_event("run-1", "cb_1", "wait", "run-1:cb_1", expires_at)
        )

        [event] = await store.get_events("run-1")
        assert event.data["token"] == "run-1:cb_1"
        assert datetime.fromisoformat(event.data["expires_at"]) == expires_at


class TestCallbacks:
    """Tests for callback records."""

    @pytest.mark.asyncio
    async def test_lookup_by_id_and_token(self, store):
        await store.create_callback(make_callback())

        assert (await store.get_callback("cb_1")).token == "run-1:cb_1"
        assert (await store.get_callback_by_token("run-1:cb_1")).callback_id == "cb_1"

    @pytest.mark.asyncio
    async def test_unknown_token(self, store):
        """Test tokens that do not exactly match a stored callback."""
        await store.create_callback(make_callback())

        assert await store.get_callback_by_token("run-1:cb_2") is None
        assert await store.get_callback_by_token("run-2:cb_1") is None
        assert await store.get_callback_by_token("garbage") is None

    @pytest.mark.asyncio
    async def test_receive_stores_payload(self, store):
        await store.create_callback(make_callback())

        await store.update_callback_status("cb_1", CallbackStatus.RECEIVED, payload='{"a": 1}')

        callback = await store.get_callback("cb_1")
        assert callback.status == CallbackStatus.RECEIVED
        assert callback.payload == '{"a": 1}'
        assert callback.received_at is not None

    @pytest.mark.asyncio
    async def test_list_filters(self, store):
        await store.create_callback(make_callback("cb_1", "run-1"))
        await store.create_callback(make_callback("cb_2", "run-2"))
        await store.update_callback_status("cb_2", CallbackStatus.EXPIRED)

        assert len(await store.list_callbacks()) == 2
        assert [c.callback_id for c in await store.list_callbacks(run_id="run-2")] == ["cb_2"]
        pending = await store.list_callbacks(status=CallbackStatus.PENDING)
        assert [c.callback_id for c in pending] == ["cb_1"]

    @pytest.mark.asyncio
    async def test_due_callbacks(self, store):
        """Test only pending callbacks past their deadline are due."""
        now = datetime.now(UTC)
        await store.create_callback(make_callback("cb_past", expires_at=now - timedelta(minutes=1)))
        await store.create_callback(make_callback("cb_future", expires_at=now + timedelta(minutes=1)))
        await store.create_callback(make_callback("cb_never"))
        await store.create_callback(make_callback("cb_done", expires_at=now - timedelta(minutes=1)))
        await store.update_callback_status("cb_done", CallbackStatus.RECEIVED)

        due = await store.list_due_callbacks(now)

        assert [c.callback_id for c in due] == ["cb_past"]


class TestInMemoryJournalStore:
    @pytest.mark.asyncio
    async def test_clear(self):
        store = InMemoryJournalStore()
        await store.create_execution(make_execution())
        assert len(store) == 1

        store.clear()

        assert len(store) == 0
        assert await store.get_execution("run-1") is None


class TestFileJournalStore:
    """Tests specific to the file layout."""

    @pytest.mark.asyncio
    async def test_layout(self, tmp_path):
        store = FileJournalStore(str(tmp_path))
        await store.create_execution(make_execution())
        await store.record_event(create_execution_started_event("run-1", "wf", "[]", "{}"))
        await store.create_callback(make_callback())

        assert (tmp_path / "executions" / "run-1.json").exists()
        assert (tmp_path / "events" / "run-1.jsonl").exists()
        assert (tmp_path / "callbacks" / "cb_1.json").exists()

    @pytest.mark.asyncio
    async def test_new_instance_sees_data(self, tmp_path):
        """Test a second store on the same directory reads the first one's writes."""
        await FileJournalStore(str(tmp_path)).create_execution(make_execution())

        execution = await FileJournalStore(str(tmp_path)).get_execution("run-1")

        assert execution.run_id == "run-1"

    @pytest.mark.asyncio
    async def test_path_traversal_key(self, tmp_path):
        store = FileJournalStore(str(tmp_path))
        with pytest.raises(ValueError):
            await store.get_execution("../escape")

    @pytest.mark.parametrize("key", ["../x", "a/b", "..", "", "a b"])
    def test_safe_key_rejects(self, key):
        with pytest.raises(ValueError):
            safe_key(key)

    def test_safe_key_accepts(self):
        assert safe_key("order-1_b.2") == "order-1_b.2"


class TestCreateJournal:
    def test_backends(self, tmp_path):
        assert isinstance(create_journal("memory"), InMemoryJournalStore)
        assert isinstance(create_journal("file", str(tmp_path)), FileJournalStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_journal("redis")
