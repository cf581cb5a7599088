"""Middleware components."""

from .error_capture import (
    CAPTURE_FAILURES_TOTAL,
    ERRORS_CAPTURED_TOTAL,
    ErrorCaptureMiddleware,
    add_error_capture_middleware,
)

__all__ = [
    "ErrorCaptureMiddleware",
    "add_error_capture_middleware",
    # Metrics
    "ERRORS_CAPTURED_TOTAL",
    "CAPTURE_FAILURES_TOTAL",
]
