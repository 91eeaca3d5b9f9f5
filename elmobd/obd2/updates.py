"""
Continuous PID polling.

A background task repeats snapshot -> request -> publish -> sleep until it is
closed. A request already on the wire when the stream is closed is allowed to
finish (the adapter would otherwise answer into the next command), but no new
request starts after close.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from ..elm.errors import NotConnectedError, OBDError
from ..pid_list import PIDRequestList
from ..pids.batch import PIDResults
from ..pids.catalog import OBDCommand
from ..pids.units import MeasurementSystem
from ..config import poll_interval_s

logger = logging.getLogger(__name__)

_DONE = object()


class ContinuousUpdates:
    """Async iterator of PIDResults; close with `aclose()` or `async with`."""

    def __init__(
        self,
        poll: Callable[[], Awaitable[PIDResults]],
        *,
        interval_s: float,
        max_pending: int = 4,
    ):
        self._poll = poll
        self.interval_s = interval_s
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, max_pending))
        self._task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self.last_error: Optional[OBDError] = None
        self.iterations = 0

    def start(self) -> "ContinuousUpdates":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        try:
            while True:
                self._inflight = asyncio.ensure_future(self._poll())
                try:
                    results = await asyncio.shield(self._inflight)
                except NotConnectedError as e:
                    self.last_error = e
                    logger.info("continuous updates stopped: %s", e)
                    return
                except OBDError as e:
                    self.last_error = e
                    logger.warning("continuous update failed: %s", e)
                else:
                    self.iterations += 1
                    self._publish(results)
                finally:
                    if self._inflight.done():
                        self._inflight = None
                await asyncio.sleep(self.interval_s)
        except asyncio.CancelledError:
            inflight = self._inflight
            if inflight is not None and not inflight.done():
                await asyncio.wait([inflight])
                if not inflight.cancelled() and inflight.exception() is not None:
                    logger.debug("in-flight update ended with: %s", inflight.exception())
            raise
        finally:
            self._publish(_DONE)

    def _publish(self, item) -> None:
        # slow consumers see the newest readings; the oldest are dropped
        while self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def __aiter__(self) -> "ContinuousUpdates":
        return self

    async def __anext__(self) -> PIDResults:
        item = await self._queue.get()
        if item is _DONE:
            self._queue.put_nowait(_DONE)
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "ContinuousUpdates":
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class UpdatesMixin:
    """Expects parent class to provide request_pids() and a `pid_list`."""

    pid_list: PIDRequestList

    async def add_pid(self, *cmds: OBDCommand) -> None:
        await self.pid_list.add(*cmds)

    async def remove_pid(self, *cmds: OBDCommand) -> None:
        await self.pid_list.remove(*cmds)

    def start_continuous_updates(
        self,
        cmds: Optional[Iterable[OBDCommand]] = None,
        *,
        interval_s: Optional[float] = None,
        system: Optional[MeasurementSystem] = None,
    ) -> ContinuousUpdates:
        """
        Poll `cmds`, or the live request list when none are given, every
        `interval_s` seconds. Returns the running stream.
        """
        fixed = tuple(cmds) if cmds is not None else None

        async def poll() -> PIDResults:
            wanted = fixed if fixed is not None else self.pid_list.snapshot()
            return await self.request_pids(wanted, system=system)

        interval = poll_interval_s() if interval_s is None else interval_s
        return ContinuousUpdates(poll, interval_s=interval).start()
