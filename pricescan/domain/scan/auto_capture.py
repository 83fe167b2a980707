from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pricescan.domain.ports.clock_port import ClockPort

logger = logging.getLogger(__name__)


class AutoCaptureTimer:
    """Periodic capture trigger.

    Fires ``on_tick`` every ``interval_ms`` as an independent task and never
    waits for it; whether a tick actually captures is decided by the
    orchestrator. ``stop()`` only stops future ticks.
    """

    def __init__(
        self,
        on_tick: Callable[[], Awaitable[Any]],
        *,
        interval_ms: int,
        clock: ClockPort,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self._on_tick = on_tick
        self._interval = interval_ms / 1000.0
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await self._clock.sleep(self._interval)
            self.tick_count += 1
            task = asyncio.get_running_loop().create_task(self._on_tick())
            self._ticks.add(task)
            task.add_done_callback(self._tick_done)

    def _tick_done(self, task: asyncio.Task) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("auto_capture_tick_failed", exc_info=exc)
