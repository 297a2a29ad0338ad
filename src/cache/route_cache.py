# src/cache/route_cache.py — v1
"""Route cache: bucketed get/put of computed routes over a key-value backend.

Reads resolve the pair's strategy and bucket, range-query the newest
``with_last_n_cached_routes`` snapshots of that bucket and merge them into a
single ``CachedRoutes``. Writes re-resolve the bucket from the entry itself,
apply split-count admission control and upsert with an absolute expiry.

The cache is an optimization only: backend and decode failures are logged
and surface as a miss (reads) or ``False`` (writes), never as exceptions.
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable

from routecache.cache.base_route_store import BaseRouteStore
from routecache.cache.keys import PairTradeTypeChainId, ProtocolsBucketBlockNumber
from routecache.cache.marshalling import CachedRoutesMarshaller, RouteCodecError
from routecache.cache.models import (
    CachedRoute,
    CachedRoutes,
    CacheMode,
    CurrencyAmount,
    Protocol,
    RouteRecord,
    Token,
    TradeType,
)
from routecache.cache.retry import FailFastPolicy, with_fail_fast
from routecache.cache.strategy import (
    BucketResolution,
    StrategyTable,
    pair_label,
    resolve_bucket_for_cached_routes,
    resolve_bucket_for_request,
)
from routecache.config.settings import Settings

logger = logging.getLogger(__name__)


def merge_cached_routes(snapshots: list[CachedRoutes]) -> CachedRoutes:
    """Merge snapshots ordered most recent first into one entry.

    Sub-routes are deduplicated by route key, first seen wins, so the newest
    version of a recurring path survives. ``block_number`` is the highest
    among snapshots; identity fields come from the first snapshot.
    """
    if not snapshots:
        raise ValueError("Cannot merge an empty list of cached routes")

    routes_by_key: dict[str, CachedRoute] = {}
    block_number = 0
    provenance: list[str] = []

    for snapshot in snapshots:
        for cached_route in snapshot.routes:
            routes_by_key.setdefault(cached_route.route_key, cached_route)
        block_number = max(block_number, snapshot.block_number)
        provenance.append(
            f"{snapshot.original_amount} | {len(routes_by_key)} | {snapshot.block_number}"
        )

    first = snapshots[0]
    return first.model_copy(
        update={
            "routes": list(routes_by_key.values()),
            "block_number": block_number,
            "original_amount": ", ".join(provenance),
        }
    )


class RouteCache:
    """Read/write access to cached routes for the request handler."""

    def __init__(
        self,
        store: BaseRouteStore,
        strategies: StrategyTable | None = None,
        ttl_minutes: int = 2,
        policy: FailFastPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if strategies is None:
            from routecache.config.cached_routes import CACHED_ROUTES_CONFIGURATION
            strategies = CACHED_ROUTES_CONFIGURATION
        self._store = store
        self._strategies = strategies
        self._ttl_minutes = ttl_minutes
        self._policy = policy or FailFastPolicy()
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        strategies: StrategyTable | None = None,
    ) -> RouteCache:
        """Build the backend from settings and wrap it with the fail-fast policy."""
        from routecache.cache.store_factory import create_route_store

        settings = settings or Settings()
        return cls(
            store=create_route_store(settings),
            strategies=strategies,
            ttl_minutes=settings.cache_ttl_minutes,
            policy=FailFastPolicy(
                timeout_s=settings.cache_timeout_ms / 1000,
                max_retries=settings.cache_max_retries,
                base_delay_s=settings.cache_retry_base_delay_ms / 1000,
            ),
        )

    @property
    def strategies(self) -> StrategyTable:
        return self._strategies

    @property
    def store(self) -> BaseRouteStore:
        return self._store

    def resolve_bucket(
        self,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
    ) -> BucketResolution | None:
        return resolve_bucket_for_request(
            self._strategies, chain_id, amount, quote_token, trade_type
        )

    def resolve_cache_mode(
        self,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
        protocols: Iterable[Protocol] = (),
    ) -> CacheMode:
        """Cache mode of the matching bucket; DARK when nothing matches."""
        resolution = self.resolve_bucket(chain_id, amount, quote_token, trade_type)
        context = {
            "pair": None if resolution is None else resolution.strategy.pair,
            "token_in_out": pair_label(amount, quote_token, trade_type),
            "chain_id": chain_id,
            "trade_type": trade_type.name,
            "amount": str(amount.to_exact()),
        }
        if resolution is None:
            logger.info(
                "No caching parameters for %s, defaulting to %s",
                context["token_in_out"], CacheMode.DARK.value,
                extra={"data": context},
            )
            return CacheMode.DARK

        logger.info(
            "Caching parameters for %s: bucket %s, %s",
            context["token_in_out"],
            resolution.bucket.bucket,
            resolution.bucket.cache_mode.value,
            extra={"data": context},
        )
        return resolution.bucket.cache_mode

    async def try_get_cached_route(
        self,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
        protocols: Iterable[Protocol],
    ) -> CachedRoutes | None:
        """Newest cached snapshots for the request's bucket, merged; None on miss."""
        resolution = self.resolve_bucket(chain_id, amount, quote_token, trade_type)
        if resolution is None:
            return None

        partition_key = str(resolution.pair)
        sort_key_prefix = ProtocolsBucketBlockNumber(
            protocols, resolution.bucket.bucket
        ).protocols_bucket_partial_key()
        limit = max(resolution.bucket.with_last_n_cached_routes, 1)
        query_context = {
            "partition_key": partition_key,
            "sort_key_prefix": sort_key_prefix,
            "limit": limit,
            "pair": resolution.strategy.pair,
        }

        logger.info("Attempting to get route from cache", extra={"data": query_context})
        try:
            records = await with_fail_fast(
                self._store.query,
                partition_key,
                sort_key_prefix,
                limit,
                operation="query",
                policy=self._policy,
            )
        except Exception as e:
            logger.error(
                "Error while fetching route from cache: %s", e,
                extra={"data": query_context},
            )
            return None

        if not records:
            logger.info("Cache miss: no items found", extra={"data": query_context})
            return None

        snapshots = self._decode_records(records, query_context)
        if not snapshots:
            logger.info(
                "Cache miss: no decodable items among %d", len(records),
                extra={"data": query_context},
            )
            return None

        cached_routes = merge_cached_routes(snapshots)
        logger.info(
            "Cache hit: merged %d snapshots into %d routes at block %d",
            len(snapshots), cached_routes.split_count, cached_routes.block_number,
            extra={"data": query_context},
        )
        return cached_routes

    async def get_cached_route(
        self,
        chain_id: int,
        amount: CurrencyAmount,
        quote_token: Token,
        trade_type: TradeType,
        protocols: Iterable[Protocol],
        current_block_number: int | None = None,
        optimistic: bool = False,
    ) -> CachedRoutes | None:
        """``try_get_cached_route`` plus block-based staleness filtering."""
        cached_routes = await self.try_get_cached_route(
            chain_id, amount, quote_token, trade_type, protocols
        )
        if cached_routes is None or current_block_number is None:
            return cached_routes
        if cached_routes.not_expired(current_block_number, optimistic):
            return cached_routes
        logger.info(
            "Cached route at block %d is stale at block %d",
            cached_routes.block_number, current_block_number,
        )
        return None

    async def try_put_cached_route(
        self,
        cached_routes: CachedRoutes,
        amount: CurrencyAmount | Decimal | None = None,
    ) -> bool:
        """Store ``cached_routes`` if a bucket admits it. Never raises.

        The bucket is resolved from the entry's own pair and, unless given,
        from its ``original_amount``, so retried writes land on the same key.
        """
        if not cached_routes.routes:
            return False

        try:
            resolution = resolve_bucket_for_cached_routes(
                self._strategies, cached_routes, amount
            )
        except InvalidOperation:
            logger.error(
                "Cannot resolve bucket from amount %r", cached_routes.original_amount
            )
            return False

        if resolution is None:
            return False

        bucket = resolution.bucket
        if not bucket.allows(cached_routes):
            logger.info(
                "Route not admitted: %d splits over limit %d",
                cached_routes.split_count, bucket.max_splits,
                extra={"data": {"pair": resolution.strategy.pair, "bucket": str(bucket.bucket)}},
            )
            return False

        to_store = cached_routes.model_copy(update={"blocks_to_live": bucket.blocks_to_live})
        partition_key = str(PairTradeTypeChainId.from_cached_routes(to_store))
        sort_key = ProtocolsBucketBlockNumber(
            to_store.protocols_covered, bucket.bucket, to_store.block_number
        ).full_key()
        record = RouteRecord(
            partition_key=partition_key,
            sort_key=sort_key,
            item=CachedRoutesMarshaller.marshal(to_store),
            ttl=int(self._clock()) + 60 * self._ttl_minutes,
        )
        put_context = {
            "partition_key": partition_key,
            "sort_key": sort_key,
            "ttl": record.ttl,
            "pair": resolution.strategy.pair,
        }

        logger.info("Attempting to insert route to cache", extra={"data": put_context})
        try:
            await with_fail_fast(
                self._store.put, record, operation="put", policy=self._policy
            )
        except Exception as e:
            logger.error(
                "Cached route failed to insert: %s", e, extra={"data": put_context}
            )
            return False

        logger.info("Cached route inserted to cache", extra={"data": put_context})
        return True

    def _decode_records(
        self, records: list[RouteRecord], query_context: dict[str, object]
    ) -> list[CachedRoutes]:
        snapshots: list[CachedRoutes] = []
        for record in records:
            try:
                snapshots.append(CachedRoutesMarshaller.unmarshal(record.item))
            except RouteCodecError as e:
                logger.error(
                    "Skipping undecodable cached route %s: %s", record.sort_key, e,
                    extra={"data": query_context},
                )
        return snapshots

