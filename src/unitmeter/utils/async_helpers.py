from __future__ import annotations

import asyncio
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")


async def with_timeout(coro: Coroutine[Any, Any, T], seconds: float | None) -> T:
    """Run *coro* with a deadline, raising ``asyncio.TimeoutError`` if it exceeds *seconds*.

    ``None`` disables the deadline and simply awaits *coro*.

    Args:
        coro: The coroutine to run.
        seconds: Maximum number of seconds to wait, or ``None``.

    Returns:
        The value returned by *coro*.
    """
    if seconds is None:
        return await coro
    return await asyncio.wait_for(coro, timeout=seconds)
