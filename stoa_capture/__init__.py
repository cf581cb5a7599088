"""STOA Error Capture.

ASGI middleware that reports unhandled request errors to a remote collector
and keeps request-scoped tags from leaking between requests.
"""

from .capture import ErrorEvent, EventPublisher, Reporter, get_reporter, shutdown_reporter
from .config import CaptureSettings, clear_settings_cache, get_capture_settings
from .context import (
    RequestContext,
    extra_context,
    request_scope,
    reset_context,
    tags_context,
    user_context,
)
from .errors import CaptureError, EventBuildError, PublishError
from .logging_config import configure_logging
from .middleware import ErrorCaptureMiddleware, add_error_capture_middleware

__version__ = "0.1.0"

__all__ = [
    # Middleware
    "ErrorCaptureMiddleware",
    "add_error_capture_middleware",
    # Context
    "RequestContext",
    "tags_context",
    "user_context",
    "extra_context",
    "reset_context",
    "request_scope",
    # Capture
    "ErrorEvent",
    "EventPublisher",
    "Reporter",
    "get_reporter",
    "shutdown_reporter",
    # Config
    "CaptureSettings",
    "get_capture_settings",
    "clear_settings_cache",
    "configure_logging",
    # Errors
    "CaptureError",
    "EventBuildError",
    "PublishError",
]
