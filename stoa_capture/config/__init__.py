"""Configuration module."""

from .settings import CaptureSettings, clear_settings_cache, get_capture_settings

__all__ = ["CaptureSettings", "get_capture_settings", "clear_settings_cache"]
