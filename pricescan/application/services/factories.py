from __future__ import annotations

import logging
from typing import Optional

from pricescan.application.llm.adapters.gemini_adapter import GeminiPriceTagAdapter
from pricescan.core.config import Settings, get_settings
from pricescan.core.exceptions import RECOGNITION_CREDENTIALS_MISSING, ConfigurationError
from pricescan.domain.ports.cart_port import CartPort, NotifierPort
from pricescan.domain.ports.clock_port import ClockPort
from pricescan.domain.ports.frame_source_port import FrameCropperPort, FrameSourcePort
from pricescan.domain.ports.recognition_port import RecognitionPort
from pricescan.domain.scan.dispatch_queue import DispatchQueue
from pricescan.domain.scan.orchestrator import ScanOrchestrator
from pricescan.infrastructure.clients.gemini_http import GeminiHttpClient
from pricescan.infrastructure.clients.recognition_http import RecognitionHttpClient
from pricescan.infrastructure.clock import AsyncioClock
from pricescan.infrastructure.imaging.pillow_cropper import PillowFrameCropper

logger = logging.getLogger(__name__)


def build_recognition_client(settings: Optional[Settings] = None) -> RecognitionHttpClient:
    s = settings or get_settings()
    return RecognitionHttpClient(
        base_url=s.RECOGNITION_BASE_URL,
        timeout_seconds=s.RECOGNITION_TIMEOUT_SECONDS,
        verify_ssl=s.RECOGNITION_VERIFY_SSL,
    )


def build_price_tag_adapter(settings: Optional[Settings] = None) -> GeminiPriceTagAdapter:
    """Service side: raises ConfigurationError when GEMINI_API_KEY is missing."""
    s = settings or get_settings()
    api_key = s.GEMINI_API_KEY.get_secret_value() if s.GEMINI_API_KEY else ""
    if not api_key.strip():
        raise ConfigurationError("GEMINI_API_KEY is not set", error_code=RECOGNITION_CREDENTIALS_MISSING)
    client = GeminiHttpClient(
        base_url=s.GEMINI_BASE_URL,
        api_key=api_key,
        model=s.GEMINI_MODEL,
        timeout_seconds=s.GEMINI_TIMEOUT_SECONDS,
    )
    return GeminiPriceTagAdapter(client)


class _DisabledRecognition(RecognitionPort):
    """Stands in when the remote client cannot be built; never called by the orchestrator."""

    def __init__(self, error: ConfigurationError) -> None:
        self._error = error

    async def recognize(self, payload):
        raise self._error


def build_scan_orchestrator(
    *,
    frame_source: FrameSourcePort,
    cart: CartPort,
    notifier: Optional[NotifierPort] = None,
    settings: Optional[Settings] = None,
    clock: Optional[ClockPort] = None,
    cropper: Optional[FrameCropperPort] = None,
    recognition: Optional[RecognitionPort] = None,
) -> ScanOrchestrator:
    """Wire one scanning session.

    Each call builds its own DispatchQueue; queues are never shared across
    sessions. A ConfigurationError while building the recognition client is
    reported once here and the session runs on the heuristic parser only.
    """
    s = settings or get_settings()
    clock = clock or AsyncioClock()
    remote_enabled = True
    if recognition is None:
        try:
            recognition = build_recognition_client(s)
        except ConfigurationError as exc:
            logger.error("recognition_client_unavailable", extra={"error": exc.error_code, "detail": exc.message})
            recognition = _DisabledRecognition(exc)
            remote_enabled = False

    queue = DispatchQueue(recognition, spacing_ms=s.DISPATCH_SPACING_MS, clock=clock)
    return ScanOrchestrator(
        frame_source=frame_source,
        cropper=cropper or PillowFrameCropper(quality=s.JPEG_QUALITY),
        queue=queue,
        cart=cart,
        clock=clock,
        notifier=notifier,
        dedup_window_ms=s.DEDUP_WINDOW_MS,
        min_price=s.MIN_PRICE,
        remote_enabled=remote_enabled,
    )
