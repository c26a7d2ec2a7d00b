"""
JSON serialization for journal payloads.

Step results, callback payloads and workflow inputs are stored as JSON
strings so that every journal backend can persist them.
"""

import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> str:
    """Serialize a single value to a JSON string."""
    return json.dumps(value, default=_default)


def serialize_args(*args: Any) -> str:
    """Serialize positional arguments to a JSON list."""
    return json.dumps(list(args), default=_default)


def serialize_kwargs(**kwargs: Any) -> str:
    """Serialize keyword arguments to a JSON object."""
    return json.dumps(kwargs, default=_default)
