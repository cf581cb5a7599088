# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Error capture exceptions.

These never reach the wrapped application: the middleware and publisher
catch them at their boundary and log them, so instrumentation failures do
not change what the caller of the middleware observes.
"""

from typing import Any


class CaptureError(Exception):
    """Base exception for error capture failures.

    Usage:
        raise CaptureError(
            "Event could not be built",
            details={"source": "framework"},
        )
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class EventBuildError(CaptureError):
    """An event could not be built from the error and the request scope."""


class PublishError(CaptureError):
    """The collector rejected an event or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)
