"""RecognitionPort protocol for the remote recognition service."""

from __future__ import annotations

from typing import Protocol

from pricescan.domain.scan.models import RecognitionPayload, RecognitionResult


class RecognitionPort(Protocol):
    """Abstraction over the recognition service used by the dispatch queue.

    Implementations raise ServiceUnavailableError / MalformedResponseError for
    recoverable failures and ConfigurationError when credentials are missing.
    """

    async def recognize(self, payload: RecognitionPayload) -> RecognitionResult: ...
