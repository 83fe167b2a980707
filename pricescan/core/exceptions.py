"""Exception hierarchy for the price-tag scan pipeline.

Every error raised by pricescan inherits from PriceScanError and carries a
stable error code, a category and optional details. The scan orchestrator
converts these into state transitions; the recognition service maps them to
HTTP responses through ``pricescan.observability.errors``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and logging."""

    INPUT = "input"
    CONFIGURATION = "configuration"
    EXTERNAL_SERVICE = "external_service"


class PriceScanError(Exception):
    """Base exception for all pricescan errors.

    Attributes:
        message: Human-readable error message
        error_code: Stable, application-specific error code
        category: Error category for classification
        details: Additional context (dict)
        retryable: Whether the next scan cycle may succeed without intervention
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to a Problem Details style dict."""
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
        }


class InvalidFrameError(PriceScanError):
    """Frame, viewport or guide geometry cannot produce a crop.

    Typically the camera is not ready yet (zero-sized frame). The caller
    should simply try again on the next capture trigger.
    """

    def __init__(self, reason: str, **details: Any):
        details["detail"] = reason
        super().__init__(
            message=f"Invalid frame: {reason}",
            error_code="INVALID_FRAME",
            category=ErrorCategory.INPUT,
            details=details,
            retryable=True,
        )


# Stable identifiers for credential/config problems at the service boundary.
RECOGNITION_NOT_CONFIGURED = "RECOGNITION_NOT_CONFIGURED"
RECOGNITION_CREDENTIALS_MISSING = "RECOGNITION_CREDENTIALS_MISSING"


class ConfigurationError(PriceScanError):
    """Missing or invalid recognition service configuration.

    Fatal for the remote recognition path only; local heuristic parsing keeps
    working.
    """

    def __init__(self, message: str, error_code: str = RECOGNITION_NOT_CONFIGURED, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.CONFIGURATION,
            details=kwargs.pop("details", None),
            retryable=False,
        )


class RecognitionError(PriceScanError):
    """Base for recoverable failures of the remote recognition call."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.EXTERNAL_SERVICE,
            details=kwargs.pop("details", None),
            retryable=kwargs.pop("retryable", True),
        )


class ServiceUnavailableError(RecognitionError):
    """Recognition service unreachable or answered with a non-success status.

    Args:
        reason: Short description of the failure
        status_code: HTTP status when the service answered at all
    """

    def __init__(self, reason: str, status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"detail": reason, "status_code": status_code})
        super().__init__(
            message=f"Recognition service unavailable: {reason}",
            error_code=kwargs.pop("error_code", "RECOGNITION_UNAVAILABLE"),
            details=details,
        )
        self.status_code = status_code


class RecognitionTimeoutError(ServiceUnavailableError):
    """Recognition call exceeded the configured transport timeout."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            reason=f"no response within {timeout_seconds:g}s",
            error_code="RECOGNITION_TIMEOUT",
            details={"timeout_seconds": timeout_seconds},
        )


class MalformedResponseError(RecognitionError):
    """Recognition service answered, but not with the {productName, price} shape."""

    def __init__(self, reason: str, body: Any = None):
        super().__init__(
            message=f"Malformed recognition response: {reason}",
            error_code="RECOGNITION_MALFORMED_RESPONSE",
            details={"detail": reason, "body": body},
        )
