"""Tests for duration parsing, journal serialization and the workflow registry."""

from datetime import UTC, datetime, timedelta
from enum import Enum

import pytest

from orderflow.core.registry import get_workflow, get_workflow_by_func, list_workflows
from orderflow.core.workflow import workflow
from orderflow.orders.models import MenuItem
from orderflow.serialization import deserialize, serialize
from orderflow.serialization.decoder import deserialize_args, deserialize_kwargs
from orderflow.serialization.encoder import serialize_args, serialize_kwargs
from orderflow.utils.duration import parse_duration


class Colour(Enum):
    GREEN = "green"


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "value,seconds",
        [
            ("30s", 30),
            ("5m", 300),
            ("1h", 3600),
            ("2d", 172800),
            ("1w", 604800),
            ("90", 90),
            (" 10m ", 600),
            ("1.5m", 90),
            (45, 45),
            (2.7, 2),
            (timedelta(minutes=2), 120),
        ],
    )
    def test_valid(self, value, seconds):
        assert parse_duration(value) == seconds

    @pytest.mark.parametrize("value", ["", "5x", "m5", "-5m", "five minutes"])
    def test_invalid_string(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_negative_number(self):
        with pytest.raises(ValueError):
            parse_duration(-1)


class TestSerialization:
    """Tests for journal payload serialization."""

    def test_plain_json(self):
        value = {"orderId": "o-1", "items": [1, 2.5, None, True]}
        assert deserialize(serialize(value)) == value

    def test_pydantic_model(self):
        """Test models are dumped without None fields."""
        item = MenuItem(id="mojito", name="Mojito", price=9.5)
        assert deserialize(serialize(item)) == {
            "id": "mojito",
            "name": "Mojito",
            "price": 9.5,
            "available": True,
        }

    def test_enum_and_datetime(self):
        moment = datetime(2030, 1, 1, tzinfo=UTC)
        data = deserialize(serialize({"colour": Colour.GREEN, "at": moment}))
        assert data == {"colour": "green", "at": "2030-01-01T00:00:00+00:00"}

    def test_tuple_becomes_list(self):
        assert deserialize(serialize((1, 2))) == [1, 2]

    def test_unserializable(self):
        with pytest.raises(TypeError):
            serialize(object())

    def test_args_and_kwargs(self):
        assert deserialize_args(serialize_args("a", 1)) == ("a", 1)
        assert deserialize_kwargs(serialize_kwargs(x=1)) == {"x": 1}

    def test_empty_inputs(self):
        assert deserialize(None) is None
        assert deserialize_args(None) == ()
        assert deserialize_kwargs(None) == {}


class TestWorkflowRegistry:
    """Tests for the @workflow decorator and registry."""

    def test_register_with_name(self):
        @workflow(name="test-registry-named")
        async def named_flow():
            return 1

        meta = get_workflow("test-registry-named")
        assert meta.func is named_flow
        assert named_flow.__workflow_name__ == "test-registry-named"
        assert get_workflow_by_func(named_flow) is meta
        assert meta in list_workflows()

    def test_register_bare(self):
        @workflow
        async def test_registry_bare_flow():
            return 1

        assert get_workflow("test_registry_bare_flow") is not None

    def test_name_taken_by_other_function(self):
        """Test a different function cannot reuse a registered name."""

        @workflow(name="test-registry-taken")
        async def first():
            return 1

        with pytest.raises(ValueError, match="already registered"):

            @workflow(name="test-registry-taken")
            async def second():
                return 2

    @pytest.mark.asyncio
    async def test_wrapper_calls_function(self):
        @workflow(name="test-registry-call")
        async def add(a, b):
            return a + b

        assert await add(1, 2) == 3
