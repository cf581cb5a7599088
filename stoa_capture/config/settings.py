# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Error capture settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CaptureSettings(BaseSettings):
    """Configuration for the error capture middleware.

    All settings can be overridden via ERROR_CAPTURE_* environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="ERROR_CAPTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Feature flags
    enabled: bool = True

    # Collector
    collector_url: str = ""  # Empty = publishing disabled
    timeout_seconds: float = 5.0
    async_send: bool = True  # Send events in a background task

    # Event metadata
    environment: str = "production"
    server_name: str = ""  # Empty = socket.gethostname()

    # Reserved scope slots for errors the app handled without raising
    exception_key: str = "rack.exception"
    framework_error_key: str = "fastapi.error"

    # PII masking
    mask_headers: bool = True
    sensitive_headers: list[str] = [
        "authorization",
        "proxy-authorization",
        "x-api-key",
        "cookie",
        "set-cookie",
        "x-auth-token",
        "x-access-token",
    ]
    sensitive_query_params: list[str] = [
        "token",
        "access_token",
        "api_key",
        "apikey",
        "password",
        "secret",
    ]

    # Paths to exclude from capture
    exclude_paths: list[str] = [
        "/health",
        "/health/live",
        "/health/ready",
        "/metrics",
    ]

    # Observability
    metrics_prefix: str = "stoa_error_capture"
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("collector_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def publishing_enabled(self) -> bool:
        """Whether events are delivered to a collector."""
        return bool(self.collector_url)


@lru_cache
def get_capture_settings() -> CaptureSettings:
    """Get cached capture settings instance."""
    return CaptureSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_capture_settings.cache_clear()
