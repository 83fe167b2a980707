from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# Carries the scan cycle id (client side) or request id (service side)
_scan_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("scan_id", default="-")


def get_scan_id() -> str:
    return _scan_id_ctx.get()


def bind_scan_id(scan_id: str | None = None) -> contextvars.Token:
    """Bind a scan id to the current task; returns the token for reset."""
    return _scan_id_ctx.set(scan_id or uuid.uuid4().hex[:12])


def reset_scan_id(token: contextvars.Token) -> None:
    _scan_id_ctx.reset(token)


class ScanIdFilter(logging.Filter):
    """Inject scan_id from contextvars into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (shadow builtins)
        record.scan_id = get_scan_id()
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a consistent, structured-ish format.

    Called once on startup. Safe to call repeatedly.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Remove existing handlers to avoid duplicate logs in reload
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level.upper())
    handler.addFilter(ScanIdFilter())
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | scan_id=%(scan_id)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to each service request/response.

    - Reads X-Request-ID header if provided; otherwise generates one.
    - Binds it to the same contextvar the scan pipeline logs with.
    - Echoes header back in the response.
    """

    async def dispatch(self, request: Request, call_next):
        incoming: Optional[str] = request.headers.get("X-Request-ID")
        rid = incoming or uuid.uuid4().hex
        request.state.request_id = rid
        token = _scan_id_ctx.set(rid)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response
        finally:
            _scan_id_ctx.reset(token)
