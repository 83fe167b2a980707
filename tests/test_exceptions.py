from __future__ import annotations

from pricescan.core.exceptions import (
    ConfigurationError,
    ErrorCategory,
    InvalidFrameError,
    MalformedResponseError,
    PriceScanError,
    RecognitionError,
    RecognitionTimeoutError,
    ServiceUnavailableError,
)


def test_hierarchy():
    assert issubclass(RecognitionTimeoutError, ServiceUnavailableError)
    assert issubclass(ServiceUnavailableError, RecognitionError)
    assert issubclass(MalformedResponseError, RecognitionError)
    assert not issubclass(ConfigurationError, RecognitionError)
    for cls in (ConfigurationError, RecognitionError, InvalidFrameError):
        assert issubclass(cls, PriceScanError)


def test_retryability_and_category():
    assert InvalidFrameError("zero-sized frame").retryable
    assert ServiceUnavailableError("down").retryable
    cfg = ConfigurationError("missing base url")
    assert not cfg.retryable
    assert cfg.category == ErrorCategory.CONFIGURATION


def test_to_dict():
    err = ServiceUnavailableError("bad gateway", status_code=502)
    d = err.to_dict()
    assert d["code"] == "RECOGNITION_UNAVAILABLE"
    assert d["detail"] == "bad gateway"
    assert d["category"] == "external_service"
    assert err.details["status_code"] == 502


def test_timeout_message():
    err = RecognitionTimeoutError(30.0)
    assert err.error_code == "RECOGNITION_TIMEOUT"
    assert "30s" in err.message
    assert err.details["timeout_seconds"] == 30.0
