from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse

from pricescan.core.exceptions import RECOGNITION_CREDENTIALS_MISSING

ERROR_REGISTRY: dict[str, dict[str, Any]] = {
    "INVALID_PARSE_REQUEST": {
        "status": 400,
        "message": "Provide exactly one of 'text' or 'image'",
    },
    RECOGNITION_CREDENTIALS_MISSING: {
        "status": 500,
        "message": "GEMINI_API_KEY is not set",
    },
    "PARSE_FAILED": {
        "status": 500,
        "message": "Failed to parse text",
    },
}


def to_error_response(code: str, *, message: str | None = None, status: int | None = None) -> JSONResponse:
    """Build the service's failure body ``{"error": ..., "code": ...}``."""
    meta = ERROR_REGISTRY.get(code, {"status": 500, "message": code})
    status_code = int(status or meta.get("status", 500))
    return JSONResponse(
        status_code=status_code,
        content={"error": message or str(meta.get("message", code)), "code": code},
    )
