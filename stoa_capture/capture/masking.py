# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
PII Masking for Error Events

Masks credentials in request headers, query strings and exception messages
before an event leaves the process.
"""

import re
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode

from ..config import get_capture_settings

REDACTED = "[REDACTED]"

_BEARER_PATTERN = re.compile(r"\b(Bearer|Basic)\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_API_KEY_PATTERN = re.compile(r"\b(stoa_sk_|sk-|api_|key_)[A-Za-z0-9_-]{10,}\b")
_JWT_PATTERN = re.compile(r"\beyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b")


def mask_string(value: str) -> str:
    """Mask credentials embedded in free text"""
    if not value:
        return value

    value = _BEARER_PATTERN.sub(lambda m: f"{m.group(1)} {REDACTED}", value)
    value = _JWT_PATTERN.sub("eyJ...[JWT_REDACTED]", value)
    value = _API_KEY_PATTERN.sub(lambda m: f"{m.group()[:8]}...{REDACTED}", value)

    return value


def mask_headers(
    headers: dict[str, str],
    sensitive_headers: Optional[Iterable[str]] = None,
) -> tuple[dict[str, str], list[str]]:
    """
    Mask sensitive headers.

    Args:
        headers: Header mapping to mask
        sensitive_headers: Header names to redact (defaults to the cached settings)

    Returns:
        Tuple of (masked_headers, list_of_masked_keys)
    """
    if sensitive_headers is None:
        sensitive_headers = get_capture_settings().sensitive_headers
    sensitive_lower = {h.lower() for h in sensitive_headers}

    masked = {}
    masked_keys = []
    for key, value in headers.items():
        if key.lower() in sensitive_lower:
            masked[key] = REDACTED
            masked_keys.append(key)
        else:
            masked[key] = value

    return masked, masked_keys


def mask_query_string(
    query_string: str,
    sensitive_params: Optional[Iterable[str]] = None,
) -> tuple[str, list[str]]:
    """Mask values of sensitive query parameters, keeping parameter order."""
    if not query_string:
        return query_string, []

    if sensitive_params is None:
        sensitive_params = get_capture_settings().sensitive_query_params
    sensitive_lower = {p.lower() for p in sensitive_params}

    pairs = []
    masked_keys = []
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        if key.lower() in sensitive_lower:
            pairs.append((key, REDACTED))
            masked_keys.append(key)
        else:
            pairs.append((key, value))

    if not masked_keys:
        return query_string, []
    return urlencode(pairs, safe="[]"), masked_keys
