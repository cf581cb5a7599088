"""
Error Capture

Builds error events from failed requests and delivers them to the remote
collector.
"""

from .masking import REDACTED, mask_headers, mask_query_string, mask_string
from .models import (
    ErrorEvent,
    EventLevel,
    EventSource,
    ExceptionInfo,
    RequestInfo,
    StackFrame,
)
from .publisher import EventPublisher
from .reporter import Reporter, get_reporter, shutdown_reporter

__all__ = [
    # Models
    "ErrorEvent",
    "EventLevel",
    "EventSource",
    "ExceptionInfo",
    "RequestInfo",
    "StackFrame",
    # Capture
    "Reporter",
    "get_reporter",
    "shutdown_reporter",
    # Transport
    "EventPublisher",
    # Masking
    "REDACTED",
    "mask_headers",
    "mask_query_string",
    "mask_string",
]
