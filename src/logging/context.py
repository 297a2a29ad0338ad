# src/logging/context.py — v2
"""Request-scoped logging context: request id, pair and cache mode.

Each request runs in its own task; contextvars keep concurrent requests apart.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_pair: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "pair", default=None
)
_cache_mode: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_mode", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    request_id: str | None = None
    pair: str | None = None
    cache_mode: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        pair=_pair.get(),
        cache_mode=_cache_mode.get(),
    )


def set_request_context(request_id: str) -> None:
    """Set request-level context (called once per incoming request)."""
    _request_id.set(request_id)


def set_route_context(pair: str, cache_mode: str | None = None) -> None:
    """Set the pair being routed and its resolved cache mode."""
    _pair.set(pair)
    _cache_mode.set(cache_mode)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _pair.set(None)
    _cache_mode.set(None)
