# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
Error Event Capture

Builds error events from an exception, the ASGI scope and the request
context, and hands them to the publisher.
"""

import asyncio
import socket
from typing import Any, Optional

import structlog

from ..config import CaptureSettings, get_capture_settings
from ..context import RequestContext
from ..errors import EventBuildError
from .masking import mask_headers, mask_query_string, mask_string
from .models import ErrorEvent, EventSource, ExceptionInfo, RequestInfo
from .publisher import EventPublisher

logger = structlog.get_logger(__name__)

# Global reporter instance
_reporter: Optional["Reporter"] = None


class Reporter:
    """
    Captures errors for the remote collector.

    Two capture paths exist:

    - ``capture_exception`` builds and sends in one step (raised errors and
      errors left in the generic scope slot).
    - ``capture_request_exception`` only builds the event; the caller sends it
      with ``send`` (errors left in the framework slot).
    """

    def __init__(
        self,
        settings: Optional[CaptureSettings] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        self._settings = settings or get_capture_settings()
        self._publisher = publisher or EventPublisher(self._settings)
        self._pending: set[asyncio.Task] = set()

    @property
    def settings(self) -> CaptureSettings:
        return self._settings

    async def capture_exception(
        self,
        error: BaseException,
        scope: dict[str, Any],
        *,
        source: EventSource = EventSource.RAISED,
    ) -> ErrorEvent:
        """Build an event for ``error`` and send it."""
        event = self.build_event(error, scope, source=source)
        await self.send(event)
        return event

    def capture_request_exception(
        self,
        error: BaseException,
        scope: dict[str, Any],
    ) -> ErrorEvent:
        """Build an event for an error reported through the framework slot."""
        return self.build_event(error, scope, source=EventSource.FRAMEWORK)

    async def send(self, event: ErrorEvent) -> bool:
        """
        Hand an event to the publisher.

        With ``async_send`` the event goes out in a background task and this
        returns True immediately.
        """
        if self._settings.async_send:
            task = asyncio.create_task(self._publish_safe(event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return True

        return await self._publish_safe(event)

    def build_event(
        self,
        error: BaseException,
        scope: dict[str, Any],
        *,
        source: EventSource = EventSource.RAISED,
    ) -> ErrorEvent:
        """Build an ErrorEvent from the error, the scope and the current context."""
        try:
            context = RequestContext.current().snapshot()
            exception = ExceptionInfo.from_exception(error)
            exception.value = mask_string(exception.value)
            request, masked_fields = _build_request_info(scope, self._settings)

            return ErrorEvent(
                message=f"{exception.type}: {exception.value}" if exception.value else exception.type,
                source=source,
                exception=exception,
                request=request,
                tags=context["tags"],
                user=context["user"],
                extra=context["extra"],
                environment=self._settings.environment,
                server_name=self._settings.server_name or socket.gethostname(),
                masked_fields=masked_fields,
            )
        except Exception as e:
            raise EventBuildError(
                f"Could not build event for {type(error).__name__}",
                details={"source": source.value, "error": str(e)},
            ) from e

    async def flush(self) -> None:
        """Wait for background sends to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        await self.flush()
        await self._publisher.stop()

    async def _publish_safe(self, event: ErrorEvent) -> bool:
        """Publish, catching any error"""
        try:
            return await self._publisher.publish(event)
        except Exception as e:
            logger.warning("error_event_send_failed", event_id=event.id, error=str(e))
            return False


def _build_request_info(
    scope: dict[str, Any],
    settings: CaptureSettings,
) -> tuple[Optional[RequestInfo], list[str]]:
    """Request data from the ASGI scope, with credentials masked"""
    if scope.get("type") not in ("http", "websocket"):
        return None, []

    headers: dict[str, str] = {}
    for raw_key, raw_value in scope.get("headers") or []:
        key = raw_key.decode("latin-1")
        value = raw_value.decode("latin-1")
        headers[key] = f"{headers[key]}, {value}" if key in headers else value

    masked_fields: list[str] = []
    if settings.mask_headers:
        headers, masked_keys = mask_headers(headers, settings.sensitive_headers)
        masked_fields.extend(f"request.headers.{k}" for k in masked_keys)

    query_string = (scope.get("query_string") or b"").decode("latin-1")
    query_string, masked_params = mask_query_string(
        query_string, settings.sensitive_query_params
    )
    masked_fields.extend(f"request.query_string.{k}" for k in masked_params)

    client = scope.get("client")

    return RequestInfo(
        method=scope.get("method"),
        url=_build_url(scope, headers),
        query_string=query_string,
        headers=headers,
        client_ip=client[0] if client else None,
        scheme=scope.get("scheme"),
    ), masked_fields


def _build_url(scope: dict[str, Any], headers: dict[str, str]) -> str:
    scheme = scope.get("scheme", "http")
    path = f"{scope.get('root_path', '')}{scope.get('path', '')}"

    host = headers.get("host")
    if not host and scope.get("server"):
        server_host, server_port = scope["server"]
        host = f"{server_host}:{server_port}" if server_port else server_host
    if not host:
        return path

    return f"{scheme}://{host}{path}"


def get_reporter() -> Reporter:
    """Get the global reporter"""
    global _reporter
    if _reporter is None:
        _reporter = Reporter()
    return _reporter


async def shutdown_reporter() -> None:
    """Flush pending events and close the global reporter"""
    global _reporter
    if _reporter:
        await _reporter.close()
        _reporter = None
