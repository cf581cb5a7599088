# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
HTTP Publisher for Error Events

Delivers captured events to the remote collector. Delivery is a single
attempt: a failed POST is logged and dropped.
"""

from typing import Optional

import httpx
import structlog

from ..config import CaptureSettings, get_capture_settings
from ..errors import PublishError
from .models import ErrorEvent

logger = structlog.get_logger(__name__)


class EventPublisher:
    """
    Posts error events as JSON to the collector.

    The underlying ``httpx.AsyncClient`` is created lazily on first publish
    and reused until ``stop()``.
    """

    def __init__(
        self,
        settings: Optional[CaptureSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_capture_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return self._settings.publishing_enabled

    async def start(self) -> None:
        """Create the HTTP client"""
        if self._client is not None:
            return

        if not self.enabled:
            logger.info("error_event_publisher_disabled")
            return

        self._client = httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        )
        logger.info(
            "error_event_publisher_started",
            collector_url=self._settings.collector_url,
        )

    async def stop(self) -> None:
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("error_event_publisher_stopped")

    async def publish(self, event: ErrorEvent) -> bool:
        """
        Publish an event to the collector.

        Returns True when the collector accepted the event. Never raises.
        """
        if not self.enabled:
            logger.debug("error_event_publish_skipped", event_id=event.id)
            return False

        try:
            await self._post(event)
        except PublishError as e:
            logger.warning(
                "error_event_publish_failed",
                event_id=event.id,
                status_code=e.status_code,
                error=e.message,
            )
            return False

        logger.debug("error_event_published", event_id=event.id)
        return True

    async def _post(self, event: ErrorEvent) -> None:
        if self._client is None:
            await self.start()

        try:
            response = await self._client.post(
                self._settings.collector_url,
                json=event.to_payload(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishError(
                f"Collector rejected event: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise PublishError(f"Collector request failed: {e}") from e
