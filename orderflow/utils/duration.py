"""Duration string parsing ("30s", "5m", "1h", "2d", "1w")."""

import re
from datetime import timedelta
from typing import Union

_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhdw]?)\s*$")


def parse_duration(duration: Union[str, int, float, timedelta]) -> int:
    """
    Convert a duration to whole seconds.

    Args:
        duration: "5m"-style string, number of seconds, or timedelta.
            A bare number string is treated as seconds.

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string cannot be parsed or is negative

    Examples:
        >>> parse_duration("5m")
        300
        >>> parse_duration(90)
        90
    """
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    if isinstance(duration, (int, float)):
        if duration < 0:
            raise ValueError(f"Duration must not be negative: {duration}")
        return int(duration)

    match = _DURATION_RE.match(duration)
    if not match:
        raise ValueError(
            f"Invalid duration: {duration!r}. Use a number followed by s, m, h, d or w."
        )

    value, unit = match.groups()
    return int(float(value) * _UNITS[unit or "s"])
