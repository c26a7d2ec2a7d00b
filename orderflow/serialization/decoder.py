"""JSON deserialization counterpart of the encoder."""

import json
from typing import Any, Optional


def deserialize(data: Optional[str]) -> Any:
    """Deserialize a JSON string; None stays None."""
    if data is None:
        return None
    return json.loads(data)


def deserialize_args(data: Optional[str]) -> tuple:
    """Deserialize positional arguments."""
    if not data:
        return ()
    return tuple(json.loads(data))


def deserialize_kwargs(data: Optional[str]) -> dict:
    """Deserialize keyword arguments."""
    if not data:
        return {}
    return dict(json.loads(data))
