"""Scan orchestrator: capture → recognize → fallback → dedup → cart.

State machine per cycle::

    IDLE → CAPTURING → AWAITING_RESULT → EVALUATING → (ACCEPTED | REJECTED | FAILED) → IDLE

Notes:
- A trigger arriving while this orchestrator's own request is still
  outstanding is skipped, not queued. This is the pipeline's backpressure.
- Remote failures fall back to the heuristic parser on whatever raw text the
  cycle has. Image captures carry no text, so they end FAILED.
- A ConfigurationError from the remote path switches the remote path off for
  the rest of the orchestrator's life.
- DedupState is mutated only on acceptance and lives for one session.
"""

from __future__ import annotations

import logging
from typing import Optional

from pricescan.core.exceptions import ConfigurationError, InvalidFrameError, RecognitionError
from pricescan.core.logging import bind_scan_id, reset_scan_id
from pricescan.domain.ports.cart_port import CartPort, NotifierPort
from pricescan.domain.ports.clock_port import ClockPort
from pricescan.domain.ports.frame_source_port import FrameCropperPort, FrameSourcePort
from pricescan.domain.scan import heuristic_parser
from pricescan.domain.scan.auto_capture import AutoCaptureTimer
from pricescan.domain.scan.capture_region import map_to_source
from pricescan.domain.scan.constants import DEDUP_WINDOW_MS, MIN_PRICE, UNKNOWN_ITEM_NAME
from pricescan.domain.scan.dispatch_queue import DispatchQueue, ResultHandle
from pricescan.domain.scan.models import (
    DedupState,
    ImagePayload,
    OutcomeStatus,
    RecognitionPayload,
    RecognitionResult,
    ResultSource,
    ScanOutcome,
    ScanRecord,
    ScanState,
    TextPayload,
)

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Price not found"
MSG_CAMERA_NOT_READY = "Camera not ready, try again"
MSG_SKIPPED = "Still analyzing the previous scan"
MSG_DETACHED = "Scan session closed"


def _won(price: int) -> str:
    return f"{price:,}원"


class _SessionClosed(Exception):
    """The session ended while the cycle was waiting for its result."""


class ScanOrchestrator:
    """Owns one scanning session's acceptance policy.

    Args:
        frame_source: Camera collaborator providing frame + overlay geometry
        cropper: Crops and encodes the mapped region
        queue: Dispatch queue in front of the recognition service
        cart: Receives a ScanRecord per accepted scan
        clock: Time source for the dedup window and auto-capture
        notifier: Optional sink for transient status messages
        dedup_window_ms: Identical prices within this window are duplicates
        min_price: Heuristic parser threshold
        remote_enabled: False when the recognition client could not be built
    """

    def __init__(
        self,
        *,
        frame_source: FrameSourcePort,
        cropper: FrameCropperPort,
        queue: DispatchQueue,
        cart: CartPort,
        clock: ClockPort,
        notifier: Optional[NotifierPort] = None,
        dedup_window_ms: int = DEDUP_WINDOW_MS,
        min_price: int = MIN_PRICE,
        remote_enabled: bool = True,
    ) -> None:
        self._frame_source = frame_source
        self._cropper = cropper
        self._queue = queue
        self._cart = cart
        self._clock = clock
        self._notifier = notifier
        self._dedup_window = dedup_window_ms / 1000.0
        self._min_price = min_price
        self._remote_enabled = remote_enabled

        self._state = ScanState.IDLE
        self._dedup = DedupState()
        self._outstanding: Optional[ResultHandle] = None
        self._session = 0
        self._timer: Optional[AutoCaptureTimer] = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def dedup_state(self) -> DedupState:
        return self._dedup.model_copy()

    @property
    def has_outstanding_request(self) -> bool:
        return self._outstanding is not None

    @property
    def remote_enabled(self) -> bool:
        return self._remote_enabled

    # --- triggers ---------------------------------------------------------

    async def trigger(self) -> ScanOutcome:
        """Run one image capture cycle (manual tap or auto-capture tick)."""
        return await self._guarded_cycle(None)

    async def scan_text(self, text: str) -> ScanOutcome:
        """Run one cycle on raw price-tag text instead of a camera frame."""
        return await self._guarded_cycle(text)

    async def _guarded_cycle(self, text: Optional[str]) -> ScanOutcome:
        if self._outstanding is not None:
            logger.info("scan_trigger_skipped", extra={"reason": "request_outstanding"})
            return ScanOutcome(status=OutcomeStatus.SKIPPED, message=MSG_SKIPPED)

        session = self._session
        token = bind_scan_id()
        try:
            if text is not None:
                return await self._run_cycle(TextPayload(text=text), fallback_text=text)

            self._state = ScanState.CAPTURING
            try:
                payload = self._capture()
            except InvalidFrameError as exc:
                logger.info("scan_capture_failed", extra={"error": exc.error_code, "detail": exc.message})
                self._state = ScanState.FAILED
                return self._emit(ScanOutcome(status=OutcomeStatus.FAILED, message=MSG_CAMERA_NOT_READY))
            return await self._run_cycle(payload, fallback_text="")
        finally:
            # a cycle from a closed session must not touch the new session's state
            if session == self._session:
                self._state = ScanState.IDLE
            reset_scan_id(token)

    # --- session ----------------------------------------------------------

    def start_auto_capture(self, interval_ms: int) -> AutoCaptureTimer:
        """Start periodic triggers; the timer is stopped by ``close()``."""
        if self._timer is not None and self._timer.running:
            return self._timer
        self._timer = AutoCaptureTimer(self.trigger, interval_ms=interval_ms, clock=self._clock)
        self._timer.start()
        return self._timer

    def close(self) -> None:
        """End the scanning session.

        Stops auto-capture and detaches from any outstanding request, which
        still resolves in the queue but no longer reaches the cart. DedupState
        starts fresh for the next session.
        """
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        self._session += 1
        self._outstanding = None
        self._dedup = DedupState()
        self._state = ScanState.IDLE
        logger.info("scan_session_closed")

    # --- cycle steps ------------------------------------------------------

    def _capture(self) -> ImagePayload:
        frame = self._frame_source.capture_frame()
        viewport = self._frame_source.viewport()
        guide = self._frame_source.guide_rect()
        rect = map_to_source(frame.size, viewport.size, guide)
        logger.debug(
            "scan_region_mapped",
            extra={"frame": (frame.width, frame.height), "crop": rect.to_box()},
        )
        return ImagePayload.from_bytes(self._cropper.crop(frame, rect))

    async def _run_cycle(self, payload: RecognitionPayload, *, fallback_text: str) -> ScanOutcome:
        try:
            result, source = await self._recognize(payload, fallback_text)
        except _SessionClosed:
            logger.info("scan_result_detached")
            return ScanOutcome(status=OutcomeStatus.SKIPPED, message=MSG_DETACHED)
        return self._emit(self._evaluate(result, source))

    async def _await_remote(self, payload: RecognitionPayload) -> Optional[RecognitionResult]:
        session = self._session
        handle = self._queue.submit(payload)
        self._outstanding = handle
        self._state = ScanState.AWAITING_RESULT
        result: Optional[RecognitionResult] = None
        try:
            result = await handle
        except ConfigurationError as exc:
            self._remote_enabled = False
            logger.error(
                "remote_recognition_disabled",
                extra={"error": exc.error_code, "detail": exc.message},
            )
        except RecognitionError as exc:
            logger.warning(
                "remote_recognition_failed",
                extra={"error": exc.error_code, "detail": exc.message},
            )
        except Exception:
            logger.exception("remote_recognition_error")
        finally:
            if self._outstanding is handle:
                self._outstanding = None
        if session != self._session:
            raise _SessionClosed()
        return result

    async def _recognize(
        self, payload: RecognitionPayload, fallback_text: str
    ) -> tuple[Optional[RecognitionResult], ResultSource]:
        remote: Optional[RecognitionResult] = None
        if self._remote_enabled:
            remote = await self._await_remote(payload)
            if remote is not None and remote.has_price:
                return remote, ResultSource.REMOTE

        text = (remote.raw_text if remote is not None else "") or fallback_text
        local = heuristic_parser.parse(text, min_price=self._min_price)
        if local.has_price:
            logger.info("heuristic_fallback_used", extra={"price": local.price_candidate})
            return local, ResultSource.HEURISTIC
        return remote or local, ResultSource.NONE

    def _evaluate(self, result: Optional[RecognitionResult], source: ResultSource) -> ScanOutcome:
        self._state = ScanState.EVALUATING
        if result is None or not result.has_price:
            self._state = ScanState.FAILED
            return ScanOutcome(status=OutcomeStatus.FAILED, message=MSG_NOT_FOUND, result=result, source=source)

        price = result.price_candidate
        now = self._clock.monotonic()
        last_at = self._dedup.last_accepted_at
        if (
            self._dedup.last_accepted_price == price
            and last_at is not None
            and now - last_at < self._dedup_window
        ):
            self._state = ScanState.REJECTED
            return ScanOutcome(
                status=OutcomeStatus.DUPLICATE,
                message=f"Already scanned: {_won(price)}",
                result=result,
                source=source,
            )

        record = ScanRecord(name=result.product_name_candidate or UNKNOWN_ITEM_NAME, price=price)
        self._dedup = DedupState(last_accepted_price=price, last_accepted_at=now)
        self._state = ScanState.ACCEPTED
        self._cart.add(record)
        return ScanOutcome(
            status=OutcomeStatus.ACCEPTED,
            message=f"Added {record.name} {_won(price)}",
            record=record,
            result=result,
            source=source,
        )

    def _emit(self, outcome: ScanOutcome) -> ScanOutcome:
        logger.info(
            f"scan_{outcome.status.value}",
            extra={"source": outcome.source.value, "scan_message": outcome.message},
        )
        if self._notifier is not None:
            self._notifier.notify(outcome.message)
        return outcome
