# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Error Capture Middleware.

ASGI middleware that reports request errors to the collector and resets the
request context after every request.

An error reaches the middleware through one of three channels, checked in
this order, and at most one of them is captured per request:

1. An exception raised out of the downstream app. It is captured, then
   re-raised unchanged.
2. An exception the app stored in ``scope[exception_key]`` before returning
   normally. It is captured and the response is left alone.
3. An exception stored in ``scope[framework_error_key]``. The event is built
   with the framework capture path, then sent explicitly.

Whatever happens, the request context is cleared before control returns to
the caller. Capture failures are logged and never replace the original
outcome.
"""

from typing import Any, Optional

import structlog
from prometheus_client import Counter
from starlette.types import ASGIApp, Receive, Scope, Send

from ..capture import EventSource, Reporter, get_reporter
from ..config import CaptureSettings, get_capture_settings
from ..context import request_scope

logger = structlog.get_logger(__name__)
settings = get_capture_settings()
prefix = settings.metrics_prefix

# =============================================================================
# Metrics
# =============================================================================

ERRORS_CAPTURED_TOTAL = Counter(
    f"{prefix}_errors_captured_total",
    "Request errors captured by the middleware",
    ["source"],
)

CAPTURE_FAILURES_TOTAL = Counter(
    f"{prefix}_capture_failures_total",
    "Request errors the middleware failed to capture",
    ["source"],
)


# =============================================================================
# Middleware
# =============================================================================


class ErrorCaptureMiddleware:
    """Middleware capturing request errors for the remote collector."""

    def __init__(
        self,
        app: ASGIApp,
        reporter: Optional[Reporter] = None,
        settings: Optional[CaptureSettings] = None,
    ):
        """Initialize middleware.

        Args:
            app: The downstream ASGI application
            reporter: Reporter used for capture (defaults to the global one)
            settings: Capture settings (defaults to the cached settings)
        """
        self.app = app
        self._reporter = reporter
        self._settings = settings or get_capture_settings()

    @property
    def reporter(self) -> Reporter:
        # Global reporter is created on first use
        return self._reporter or get_reporter()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        # Children of the request (threadpool endpoints, tasks) inherit this context
        with request_scope():
            try:
                await self.app(scope, receive, send)
            except Exception as exc:
                if self._should_capture(scope):
                    await self._capture(exc, scope, EventSource.RAISED)
                raise

            if self._should_capture(scope):
                await self._capture_soft_error(scope)

    def _should_capture(self, scope: Scope) -> bool:
        if not self._settings.enabled:
            return False
        path = scope.get("path", "")
        return not any(path.startswith(exclude) for exclude in self._settings.exclude_paths)

    async def _capture_soft_error(self, scope: Scope) -> None:
        """Capture an error the app left in the scope without raising it."""
        error = self._slot_error(scope, self._settings.exception_key)
        if error is not None:
            await self._capture(error, scope, EventSource.SCOPE)
            return

        error = self._slot_error(scope, self._settings.framework_error_key)
        if error is not None:
            await self._capture_framework(error, scope)

    def _slot_error(self, scope: Scope, key: str) -> Optional[BaseException]:
        value: Any = scope.get(key)
        if value is None:
            return None
        if not isinstance(value, BaseException):
            logger.warning(
                "error_capture_slot_ignored",
                slot=key,
                value_type=type(value).__name__,
            )
            return None
        return value

    async def _capture(self, error: BaseException, scope: Scope, source: EventSource) -> None:
        try:
            event = await self.reporter.capture_exception(error, scope, source=source)
        except Exception as capture_error:
            self._record_failure(error, source, capture_error)
            return

        self._record_capture(error, source, event)

    async def _capture_framework(self, error: BaseException, scope: Scope) -> None:
        source = EventSource.FRAMEWORK
        try:
            event = self.reporter.capture_request_exception(error, scope)
            await self.reporter.send(event)
        except Exception as capture_error:
            self._record_failure(error, source, capture_error)
            return

        self._record_capture(error, source, event)

    def _record_capture(self, error: BaseException, source: EventSource, event: Any) -> None:
        ERRORS_CAPTURED_TOTAL.labels(source=source.value).inc()
        logger.info(
            "error_captured",
            source=source.value,
            error_type=type(error).__name__,
            event_id=getattr(event, "id", None),
        )

    def _record_failure(
        self,
        error: BaseException,
        source: EventSource,
        capture_error: Exception,
    ) -> None:
        CAPTURE_FAILURES_TOTAL.labels(source=source.value).inc()
        logger.warning(
            "error_capture_failed",
            source=source.value,
            error_type=type(error).__name__,
            capture_error=str(capture_error),
        )


def add_error_capture_middleware(
    app: Any,
    reporter: Optional[Reporter] = None,
    settings: Optional[CaptureSettings] = None,
) -> None:
    """Add error capture middleware to a FastAPI/Starlette app"""
    capture_settings = settings or get_capture_settings()

    if not capture_settings.enabled:
        logger.info("error_capture_middleware_disabled")

    # Context clearing still applies when capture is disabled
    app.add_middleware(ErrorCaptureMiddleware, reporter=reporter, settings=settings)
    logger.info(
        "error_capture_middleware_installed",
        exception_key=capture_settings.exception_key,
        framework_error_key=capture_settings.framework_error_key,
    )
