from __future__ import annotations

from fastapi import APIRouter, Request

from pricescan.application.llm.adapters.gemini_adapter import GeminiPriceTagAdapter
from pricescan.core.exceptions import RECOGNITION_CREDENTIALS_MISSING
from pricescan.core.logging import get_logger
from pricescan.domain.scan.models import strip_data_url_prefix
from pricescan.models.schemas import ErrorResponse, ParseRequest, ParseResponse
from pricescan.observability.errors import to_error_response

router = APIRouter(prefix="/api", tags=["parse"])


@router.post(
    "/parse",
    response_model=ParseResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def parse_price_tag(request: Request, body: ParseRequest):
    logger = get_logger(__name__)
    adapter: GeminiPriceTagAdapter | None = getattr(request.app.state, "price_tag_adapter", None)
    if adapter is None:
        # Reported once at startup; every request just answers with the stable code.
        return to_error_response(RECOGNITION_CREDENTIALS_MISSING)

    has_text = bool(body.text and body.text.strip())
    has_image = bool(body.image and body.image.strip())
    if has_text == has_image:
        return to_error_response("INVALID_PARSE_REQUEST")

    try:
        if has_image:
            data = await adapter.parse_image(strip_data_url_prefix(body.image or ""))
        else:
            data = await adapter.parse_text(body.text or "")
    except Exception as e:
        logger.error("parse_failed", extra={"error": repr(e), "kind": "image" if has_image else "text"})
        return to_error_response("PARSE_FAILED")

    logger.info("parse_succeeded", extra={"price": data.get("price"), "kind": "image" if has_image else "text"})
    return ParseResponse(**data)
