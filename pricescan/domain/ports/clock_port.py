"""ClockPort protocol: time source and suspension for the scan pipeline."""

from __future__ import annotations

from typing import Protocol


class ClockPort(Protocol):
    def monotonic(self) -> float:
        """Current time in seconds; only differences are meaningful."""
        ...

    async def sleep(self, seconds: float) -> None: ...
