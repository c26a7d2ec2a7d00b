"""JSON serialization helpers for journal payloads."""

from orderflow.serialization.decoder import deserialize, deserialize_args, deserialize_kwargs
from orderflow.serialization.encoder import serialize, serialize_args, serialize_kwargs

__all__ = [
    "serialize",
    "serialize_args",
    "serialize_kwargs",
    "deserialize",
    "deserialize_args",
    "deserialize_kwargs",
]
