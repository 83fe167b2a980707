"""HTTP client adapter for the recognition service (``POST /api/parse``)."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pricescan.core.exceptions import (
    RECOGNITION_CREDENTIALS_MISSING,
    ConfigurationError,
    MalformedResponseError,
    RecognitionTimeoutError,
    ServiceUnavailableError,
)
from pricescan.domain.ports.recognition_port import RecognitionPort
from pricescan.domain.scan.models import (
    ImagePayload,
    RecognitionPayload,
    RecognitionResult,
    TextPayload,
    strip_data_url_prefix,
)

logger = logging.getLogger(__name__)

PARSE_PATH = "/api/parse"
ERROR_BODY_MAX_CHARS = 500


class ParseSuccessBody(BaseModel):
    """Success shape of the recognition service: both keys present, either may be null."""

    model_config = ConfigDict(extra="ignore")

    productName: Optional[str]
    price: Optional[float] = Field(strict=True, ge=0, allow_inf_nan=False)


def build_request_body(payload: RecognitionPayload) -> dict[str, str]:
    if isinstance(payload, ImagePayload):
        return {"image": strip_data_url_prefix(payload.content)}
    if isinstance(payload, TextPayload):
        return {"text": payload.text}
    raise TypeError(f"Unsupported recognition payload: {type(payload).__name__}")


def parse_success_body(data: Any, *, raw_text: str) -> RecognitionResult:
    """Validate a success body; the only place MalformedResponseError is produced."""
    if not isinstance(data, dict):
        raise MalformedResponseError("response body is not a JSON object", body=data)
    try:
        body = ParseSuccessBody.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"unexpected response shape ({exc.error_count()} errors)", body=data
        ) from exc

    name = body.productName.strip() if body.productName else None
    price = int(round(body.price)) if body.price is not None else None
    if price is not None and price <= 0:
        # a zero price is the model saying it found nothing
        price = None
    return RecognitionResult(
        price_candidate=price,
        product_name_candidate=name or None,
        raw_text=raw_text,
    )


def _error_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"error": resp.text[:ERROR_BODY_MAX_CHARS]}
    return data if isinstance(data, dict) else {"error": str(data)[:ERROR_BODY_MAX_CHARS]}


class RecognitionHttpClient(RecognitionPort):
    """Recognition client implementing RecognitionPort using httpx (async).

    Assumes endpoint:
    - POST /api/parse  {"text": "..."} | {"image": "<base64>"}
      -> 200 {"productName": "...", "price": 4830}
      -> non-2xx {"error": "...", "code": "..."}
    """

    def __init__(
        self,
        base_url: str | None,
        timeout_seconds: float,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError("Recognition service base_url is not configured")
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._verify_ssl = verify_ssl
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            verify=self._verify_ssl,
            transport=self._transport,
        )

    async def recognize(self, payload: RecognitionPayload) -> RecognitionResult:
        body = build_request_body(payload)
        raw_text = payload.text if isinstance(payload, TextPayload) else ""

        try:
            async with self._client() as client:
                resp = await client.post(PARSE_PATH, json=body)
        except httpx.TimeoutException as exc:
            raise RecognitionTimeoutError(self._timeout_seconds) from exc
        except httpx.TransportError as exc:
            raise ServiceUnavailableError(f"{type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            err = _error_body(resp)
            if err.get("code") == RECOGNITION_CREDENTIALS_MISSING:
                raise ConfigurationError(
                    str(err.get("error") or "Recognition service credentials missing"),
                    error_code=RECOGNITION_CREDENTIALS_MISSING,
                )
            raise ServiceUnavailableError(
                str(err.get("error") or resp.reason_phrase), status_code=resp.status_code
            )

        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponseError("response body is not JSON", body=resp.text[:ERROR_BODY_MAX_CHARS]) from exc

        result = parse_success_body(data, raw_text=raw_text)
        logger.debug(
            "recognition_response",
            extra={"price": result.price_candidate, "has_name": result.product_name_candidate is not None},
        )
        return result
