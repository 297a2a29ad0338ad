# src/cache/coordinator.py — v2
"""Cache-mode handling for a single route request.

LIVE            read first; a hit is served without computing, a miss is
                computed and written through.
DARK            always compute and serve; the result is still written to warm
                the cache, reads are never consulted.
SHADOW_COMPARE  always compute and serve; the cache is read only to compare
                against the fresh route and emit drift telemetry.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from routecache.cache.models import (
    CachedRoutes,
    CacheMode,
    CurrencyAmount,
    Protocol,
    Token,
    TradeType,
)
from routecache.cache.route_cache import RouteCache
from routecache.cache.strategy import pair_label
from routecache.logging.context import set_request_context, set_route_context
from routecache.tracking.metrics import MetricsRecorder

logger = logging.getLogger(__name__)

RouteComputer = Callable[
    [CurrencyAmount, Token, TradeType, list[Protocol]],
    Awaitable[CachedRoutes | None],
]


@dataclass(frozen=True)
class RouteServeResult:
    """What was served for a request and how the cache took part."""

    cache_mode: CacheMode
    cached_routes: CachedRoutes | None
    served_from_cache: bool = False
    stored: bool = False
    shadow_match: bool | None = None
    request_id: str | None = None


class RouteCacheCoordinator:
    """Drives an external route computer through the route cache."""

    def __init__(
        self,
        route_cache: RouteCache,
        route_computer: RouteComputer,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self._cache = route_cache
        self._compute = route_computer
        self._metrics = metrics or MetricsRecorder()

    async def get_route(
        self,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
        protocols: Iterable[Protocol],
        current_block_number: int | None = None,
        request_id: str | None = None,
    ) -> RouteServeResult:
        """Serve one route request according to its bucket's cache mode.

        ``request_id`` is bound to the logging context for the rest of the
        request; a random one is generated when the caller has none.
        """
        request_id = request_id or uuid.uuid4().hex
        set_request_context(request_id)
        protocols = list(protocols)
        cache_mode = self._cache.resolve_cache_mode(
            chain_id, amount, quote_token, trade_type, protocols
        )
        set_route_context(pair_label(amount, quote_token, trade_type), cache_mode.value)

        if cache_mode == CacheMode.LIVE:
            cached_routes = await self._read(
                cache_mode, chain_id, amount, quote_token, trade_type, protocols,
                current_block_number,
            )
            if cached_routes is not None:
                return RouteServeResult(
                    cache_mode=cache_mode,
                    cached_routes=cached_routes,
                    served_from_cache=True,
                    request_id=request_id,
                )

        fresh = await self._compute(amount, quote_token, trade_type, protocols)

        shadow_match: bool | None = None
        if cache_mode == CacheMode.SHADOW_COMPARE:
            cached_routes = await self._read(
                cache_mode, chain_id, amount, quote_token, trade_type, protocols,
                current_block_number,
            )
            shadow_match = self._compare(cached_routes, fresh)

        stored = False
        if fresh is not None:
            stored = await self._cache.try_put_cached_route(fresh, amount)
            self._emit(f"CachedRouteWrite_{'stored' if stored else 'rejected'}", 1)

        return RouteServeResult(
            cache_mode=cache_mode,
            cached_routes=fresh,
            stored=stored,
            shadow_match=shadow_match,
            request_id=request_id,
        )

    async def _read(
        self,
        cache_mode: CacheMode,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
        protocols: list[Protocol],
        current_block_number: int | None,
    ) -> CachedRoutes | None:
        started = time.perf_counter()
        cached_routes = await self._cache.get_cached_route(
            chain_id, amount, quote_token, trade_type, protocols,
            current_block_number=current_block_number, optimistic=True,
        )
        self._emit("GetCachedRoute_latency", (time.perf_counter() - started) * 1000, "Milliseconds")
        outcome = "hit" if cached_routes is not None else "miss"
        self._emit(f"GetCachedRoute_{outcome}_{cache_mode.value}", 1)
        return cached_routes

    def _compare(
        self, cached_routes: CachedRoutes | None, fresh: CachedRoutes | None
    ) -> bool | None:
        """Route-key set equality of cached vs fresh; None if either is missing."""
        if cached_routes is None or fresh is None:
            return None
        match = set(cached_routes.route_keys()) == set(fresh.route_keys())
        self._emit(f"ShadowCompareCachedRoute_{'match' if match else 'mismatch'}", 1)
        if not match:
            logger.info(
                "Shadow compare mismatch",
                extra={
                    "data": {
                        "cached_block_number": cached_routes.block_number,
                        "fresh_block_number": fresh.block_number,
                        "cached_routes": cached_routes.route_keys(),
                        "fresh_routes": fresh.route_keys(),
                    }
                },
            )
        return match

    def _emit(self, name: str, value: float, unit: str = "Count") -> None:
        try:
            self._metrics.put_metric(name, value, unit)  # type: ignore[arg-type]
        except Exception as e:
            logger.warning("Failed to emit metric %s: %s", name, e)
