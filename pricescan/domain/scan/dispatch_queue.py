"""FIFO, single-in-flight, spaced scheduler in front of the recognition service.

Rapid successive captures must never turn into a burst of requests against
the recognition service. Every submission is queued; exactly one request is
in flight at a time, and the next one is dispatched no sooner than
``spacing_ms`` after the previous one completed (successfully or not).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from pricescan.domain.ports.clock_port import ClockPort
from pricescan.domain.ports.recognition_port import RecognitionPort
from pricescan.domain.scan.models import ImagePayload, RecognitionPayload, RecognitionResult

logger = logging.getLogger(__name__)


class ResultHandle:
    """Deferred RecognitionResult created together with its submission.

    The caller may poll it (``done()`` / ``result()``), ``await`` it, or
    register a single continuation. It is resolved or rejected exactly once,
    by the queue only.
    """

    def __init__(self, request_id: int) -> None:
        self.request_id = request_id
        self._future: asyncio.Future[RecognitionResult] = asyncio.get_running_loop().create_future()
        self._continuation: Optional[Callable[["ResultHandle"], None]] = None

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> RecognitionResult:
        """Return the result, or raise the rejection error.

        Raises asyncio.InvalidStateError while still pending.
        """
        return self._future.result()

    def exception(self) -> Optional[BaseException]:
        return self._future.exception()

    def add_done_callback(self, fn: Callable[["ResultHandle"], None]) -> None:
        if self._continuation is not None:
            raise RuntimeError("ResultHandle accepts a single continuation")
        self._continuation = fn
        self._future.add_done_callback(lambda _fut: fn(self))

    def __await__(self):
        # Cancelling a waiter detaches it; the request itself still completes.
        return asyncio.shield(self._future).__await__()

    def _resolve(self, result: RecognitionResult) -> None:
        self._future.set_result(result)

    def _reject(self, exc: BaseException) -> None:
        self._future.set_exception(exc)
        # Abandoned handles must not log "exception was never retrieved"
        self._future.exception()


@dataclass
class DispatchRequest:
    payload: RecognitionPayload
    handle: ResultHandle
    submitted_at: float = field(default=0.0)


class DispatchQueue:
    """Serializes and throttles recognition requests.

    Args:
        client: Recognition service port
        spacing_ms: Minimum gap between one completion and the next dispatch
        clock: Time source and sleep, injected for deterministic tests
    """

    def __init__(self, client: RecognitionPort, spacing_ms: int, clock: ClockPort) -> None:
        if spacing_ms < 0:
            raise ValueError("spacing_ms must be >= 0")
        self._client = client
        self._spacing = spacing_ms / 1000.0
        self._clock = clock
        self._pending: deque[DispatchRequest] = deque()
        self._in_flight = False
        self._draining = False
        self._last_completed_at: Optional[float] = None
        self._next_id = 0
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def spacing_ms(self) -> int:
        return int(self._spacing * 1000)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def submit(self, payload: RecognitionPayload) -> ResultHandle:
        """Queue ``payload`` and return its unresolved handle immediately.

        Must be called from within the running event loop.
        """
        self._next_id += 1
        handle = ResultHandle(self._next_id)
        self._pending.append(
            DispatchRequest(payload=payload, handle=handle, submitted_at=self._clock.monotonic())
        )
        logger.debug(
            "dispatch_request_queued",
            extra={"request_id": handle.request_id, "pending": len(self._pending)},
        )
        if not self._draining:
            self._draining = True
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return handle

    async def _wait_for_spacing(self) -> None:
        if self._last_completed_at is None:
            return
        remaining = self._spacing - (self._clock.monotonic() - self._last_completed_at)
        if remaining > 0:
            await self._clock.sleep(remaining)

    async def _drain(self) -> None:
        try:
            while self._pending:
                await self._wait_for_spacing()
                request = self._pending.popleft()
                await self._dispatch(request)
        finally:
            self._draining = False

    async def _dispatch(self, request: DispatchRequest) -> None:
        handle = request.handle
        kind = "image" if isinstance(request.payload, ImagePayload) else "text"
        self._in_flight = True
        dispatched_at = self._clock.monotonic()
        try:
            result = await self._client.recognize(request.payload)
        except Exception as exc:
            # A failure belongs to this request only; the queue keeps going.
            logger.warning(
                "dispatch_request_failed",
                extra={"request_id": handle.request_id, "kind": kind, "error": repr(exc)},
            )
            handle._reject(exc)
        else:
            logger.debug(
                "dispatch_request_done",
                extra={
                    "request_id": handle.request_id,
                    "kind": kind,
                    "queued_seconds": round(dispatched_at - request.submitted_at, 3),
                },
            )
            handle._resolve(result)
        finally:
            self._in_flight = False
            self._last_completed_at = self._clock.monotonic()

    async def join(self) -> None:
        """Wait until everything submitted so far has been resolved or rejected."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)
