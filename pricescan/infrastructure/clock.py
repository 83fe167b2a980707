from __future__ import annotations

import asyncio
import time

from pricescan.domain.ports.clock_port import ClockPort


class AsyncioClock(ClockPort):
    """Wall-independent monotonic clock backed by the running event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))
