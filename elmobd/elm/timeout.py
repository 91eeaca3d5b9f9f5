# elmobd/elm/timeout.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import OBDTimeoutError

T = TypeVar("T")


async def run_with_timeout(
    work: Awaitable[T],
    timeout: float,
    *,
    operation: str,
    on_timeout: Optional[Callable[[], Awaitable[None]]] = None,
) -> T:
    """
    Race `work` against a timer of `timeout` seconds.

    The loser is cancelled. On timeout the work branch has fully unwound
    before `on_timeout` runs, and `on_timeout` has finished before
    OBDTimeoutError reaches the caller.
    """
    try:
        return await asyncio.wait_for(work, timeout)
    except asyncio.TimeoutError as exc:
        if on_timeout is not None:
            await on_timeout()
        raise OBDTimeoutError(operation, timeout) from exc
