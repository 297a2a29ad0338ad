# src/cache/retry.py — v1
"""Fail-fast timeout and retry policy for backend calls.

A slow cache is worse than no cache: every attempt is bounded by a short
timeout and the retry budget is small.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from routecache.cache.base_route_store import RouteStoreError

logger = logging.getLogger(__name__)


class BackendTimeout(RouteStoreError):
    """A single backend attempt exceeded its timeout."""


class RetryExhausted(RouteStoreError):
    """All attempts for a backend operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Backend operation '{operation}' failed after {attempts} attempts: {last_error}"
        )


@dataclass(frozen=True)
class FailFastPolicy:
    """Per-attempt timeout plus a small retry budget."""

    timeout_s: float = 0.1
    max_retries: int = 1
    base_delay_s: float = 0.02
    jitter: bool = True

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


def _compute_delay(policy: FailFastPolicy, attempt: int) -> float:
    """Linear backoff from ``base_delay_s`` (0-based attempt)."""
    delay = policy.base_delay_s * (attempt + 1)
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_fail_fast(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    policy: FailFastPolicy | None = None,
    **kwargs: Any,
) -> Any:
    """Run an async backend call under ``policy``.

    Cancellation of the surrounding task propagates immediately.

    Raises:
        RetryExhausted: If every attempt failed or timed out.
    """
    policy = policy or FailFastPolicy()
    attempts = 0

    while True:
        try:
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=policy.timeout_s)
        except asyncio.TimeoutError as e:
            error: Exception = BackendTimeout(
                f"'{operation}' timed out after {policy.timeout_s * 1000:.0f}ms"
            )
            error.__cause__ = e
        except Exception as e:
            error = e

        attempts += 1
        if attempts >= policy.max_attempts:
            raise RetryExhausted(operation, attempts, error) from error

        delay = _compute_delay(policy, attempts - 1)
        logger.warning(
            "Backend '%s' failed (attempt %d/%d): %s, retrying in %.0fms",
            operation, attempts, policy.max_attempts, error, delay * 1000,
        )
        await asyncio.sleep(delay)
