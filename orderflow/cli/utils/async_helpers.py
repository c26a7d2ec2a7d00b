"""Run async click commands."""

import asyncio
import functools
from typing import Any, Callable, Coroutine


def async_command(f: Callable[..., Coroutine[Any, Any, Any]]) -> Callable[..., Any]:
    """
    Decorator running an async click command in a fresh event loop.

    Place it below @click.pass_context so click sees a plain function.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return wrapper
