# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
Error Event Models

Pydantic schemas for errors captured during request handling.
"""

import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventSource(str, Enum):
    """Channel through which the error reached the middleware"""
    RAISED = "raised"
    SCOPE = "scope"
    FRAMEWORK = "framework"


class EventLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class StackFrame(BaseModel):
    """One frame of the exception traceback"""
    filename: str
    lineno: Optional[int] = None
    function: str
    context_line: Optional[str] = None


class ExceptionInfo(BaseModel):
    """The captured exception"""
    type: str = Field(..., description="Exception class name")
    value: str = Field("", description="Exception message (masked)")
    module: Optional[str] = Field(None, description="Module defining the exception class")
    stacktrace: list[StackFrame] = Field(default_factory=list)

    @classmethod
    def from_exception(cls, error: BaseException, max_frames: int = 50) -> "ExceptionInfo":
        frames = [
            StackFrame(
                filename=frame.filename,
                lineno=frame.lineno,
                function=frame.name,
                context_line=frame.line or None,
            )
            for frame in traceback.extract_tb(error.__traceback__)
        ]
        return cls(
            type=type(error).__name__,
            value=str(error),
            module=type(error).__module__,
            stacktrace=frames[-max_frames:],
        )


class RequestInfo(BaseModel):
    """HTTP request data taken from the ASGI scope"""
    method: Optional[str] = None
    url: str = ""
    query_string: str = ""
    headers: dict[str, str] = Field(default_factory=dict, description="Masked headers")
    client_ip: Optional[str] = None
    scheme: Optional[str] = None


class ErrorEvent(BaseModel):
    """
    Error captured by the middleware, ready to be sent to the collector.

    Tags, user and extra are copied from the request context at capture
    time, before the middleware clears it.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: EventLevel = EventLevel.ERROR
    message: str = ""
    source: EventSource = EventSource.RAISED

    exception: ExceptionInfo
    request: Optional[RequestInfo] = None

    tags: dict[str, Any] = Field(default_factory=dict)
    user: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    environment: str = "production"
    server_name: Optional[str] = None
    platform: str = "python"

    # PII tracking
    masked_fields: list[str] = Field(default_factory=list)

    @property
    def culprit(self) -> Optional[str]:
        """Innermost frame as ``filename:function``, when there is a traceback."""
        if not self.exception.stacktrace:
            return None
        frame = self.exception.stacktrace[-1]
        return f"{frame.filename}:{frame.function}"

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the collector"""
        payload = self.model_dump(mode="json")
        payload["culprit"] = self.culprit
        return payload
