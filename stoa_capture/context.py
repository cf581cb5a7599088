# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Request-scoped capture context.

Holds the tags, user and extra data that application code attaches to the
request being handled. Each execution unit (thread or asyncio task) sees its
own context through ``RequestContext.current()``; nothing is passed around
explicitly.

Outside a request the context is created lazily on first access. The error
capture middleware binds a fresh one per request with ``request_scope()`` and
empties it once the request is done, whatever the outcome. A pooled thread or
reused task therefore never carries tags from one request into the next.

Usage:
    RequestContext.current().tags["environment"] = "staging"
    tags_context(tenant_id="acme")
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

_CURRENT_CONTEXT: ContextVar[Optional["RequestContext"]] = ContextVar(
    "stoa_capture_request_context", default=None
)


@dataclass
class RequestContext:
    """Mutable diagnostic state for the in-flight request."""

    tags: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "RequestContext":
        """Return the context of the active execution unit, creating it if absent."""
        context = _CURRENT_CONTEXT.get()
        if context is None:
            context = cls()
            _CURRENT_CONTEXT.set(context)
        return context

    def clear(self) -> None:
        """Empty the context in place. The object stays current."""
        self.tags.clear()
        self.user.clear()
        self.extra.clear()

    def is_empty(self) -> bool:
        """True when no tags, user or extra data are set."""
        return not (self.tags or self.user or self.extra)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Copy of the current state, safe to hand to an event builder."""
        return {
            "tags": dict(self.tags),
            "user": dict(self.user),
            "extra": dict(self.extra),
        }


def tags_context(**tags: Any) -> dict[str, Any]:
    """Merge tags into the current context and return the resulting tags."""
    context = RequestContext.current()
    context.tags.update(tags)
    return context.tags


def user_context(**user: Any) -> dict[str, Any]:
    """Merge user attributes (id, email, tenant...) into the current context."""
    context = RequestContext.current()
    context.user.update(user)
    return context.user


def extra_context(**extra: Any) -> dict[str, Any]:
    """Merge arbitrary extra data into the current context."""
    context = RequestContext.current()
    context.extra.update(extra)
    return context.extra


def reset_context() -> None:
    """Detach the context from the active execution unit.

    The next ``RequestContext.current()`` call creates a fresh one.
    """
    _CURRENT_CONTEXT.set(None)


@contextmanager
def request_scope() -> Iterator[RequestContext]:
    """Bind a fresh context for the duration of one request.

    The new context starts with a copy of whatever the caller had set, and
    child tasks or worker threads spawned while handling the request inherit
    it. On exit the request context is cleared, the caller's context is
    restored, and the caller's context is cleared as well.
    """
    outer = _CURRENT_CONTEXT.get()
    context = RequestContext()
    if outer is not None:
        context.tags.update(outer.tags)
        context.user.update(outer.user)
        context.extra.update(outer.extra)

    token = _CURRENT_CONTEXT.set(context)
    try:
        yield context
    finally:
        context.clear()
        _CURRENT_CONTEXT.reset(token)
        if outer is not None:
            outer.clear()
