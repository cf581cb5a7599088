# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from stoa_capture.capture import Reporter
from stoa_capture.config import CaptureSettings, clear_settings_cache
from stoa_capture.context import reset_context


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def fresh_context():
    """Detach any request context left by a previous test."""
    reset_context()
    yield
    reset_context()


@pytest.fixture
def settings() -> CaptureSettings:
    """Settings with synchronous sends and no collector."""
    return CaptureSettings(collector_url="", async_send=False, server_name="test-host")


@pytest.fixture
def reporter() -> MagicMock:
    """Reporter double recording both capture paths."""
    reporter = MagicMock(spec=Reporter)
    reporter.capture_exception = AsyncMock(return_value=MagicMock(id="evt-generic"))
    reporter.capture_request_exception = MagicMock(return_value=MagicMock(id="evt-framework"))
    reporter.send = AsyncMock(return_value=True)
    return reporter
