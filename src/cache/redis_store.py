# src/cache/redis_store.py — v3
"""Redis-based cached-routes backend (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments.

Layout per partition key:
  - ``<ns>:idx:<pk>``: sorted set of sort keys, all score 0, queried by lex range
  - ``<ns>:item:<pk>|<sk>``: payload hash (item, ttl) with native expiry
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from routecache.cache.base_route_store import BaseRouteStore, RouteStoreError
from routecache.cache.models import RouteRecord

logger = logging.getLogger(__name__)

# Sort keys are ASCII; any byte above 0x7f closes a prefix range.
_PREFIX_END = "\xff"

# Extra index members read past the limit; payloads that expired since the
# index was written are skipped without shrinking the result.
_EXPIRY_SLACK = 5


class RedisRouteStore(BaseRouteStore):
    """Redis-backed store for shared caches across instances."""

    def __init__(
        self,
        redis_url: str,
        namespace: str = "CachedRoutes",
        socket_timeout_s: float = 0.1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client: Any = aioredis.Redis.from_url(
            redis_url,
            socket_timeout=socket_timeout_s,
            socket_connect_timeout=socket_timeout_s,
        )
        self._namespace = namespace
        self._clock = clock

    def _index_key(self, partition_key: str) -> str:
        return f"{self._namespace}:idx:{partition_key}"

    def _item_key(self, partition_key: str, sort_key: str) -> str:
        return f"{self._namespace}:item:{partition_key}|{sort_key}"

    async def query(
        self, partition_key: str, sort_key_prefix: str, limit: int
    ) -> list[RouteRecord]:
        index_key = self._index_key(partition_key)
        try:
            members = await self._client.zrevrangebylex(
                index_key,
                f"[{sort_key_prefix}{_PREFIX_END}",
                f"[{sort_key_prefix}",
                start=0,
                num=limit + _EXPIRY_SLACK,
            )
            sort_keys = [
                m.decode("utf-8") if isinstance(m, bytes) else m for m in members
            ]
            if not sort_keys:
                return []

            async with self._client.pipeline(transaction=False) as pipe:
                for sort_key in sort_keys:
                    pipe.hgetall(self._item_key(partition_key, sort_key))
                payloads = await pipe.execute()

            records: list[RouteRecord] = []
            stale: list[str] = []
            now = int(self._clock())
            for sort_key, data in zip(sort_keys, payloads):
                if not data:
                    stale.append(sort_key)
                    continue
                ttl = int(data[b"ttl"])
                if ttl < now or len(records) >= limit:
                    continue
                records.append(
                    RouteRecord(
                        partition_key=partition_key,
                        sort_key=sort_key,
                        item=data[b"item"],
                        ttl=ttl,
                    )
                )
            if stale:
                await self._client.zrem(index_key, *stale)
        except Exception as e:
            raise RouteStoreError(f"Redis query failed: {e}") from e
        return records

    async def put(self, record: RouteRecord) -> None:
        index_key = self._index_key(record.partition_key)
        item_key = self._item_key(record.partition_key, record.sort_key)
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.hset(item_key, mapping={"item": record.item, "ttl": record.ttl})
                pipe.expireat(item_key, record.ttl)
                pipe.zadd(index_key, {record.sort_key: 0})
                pipe.expireat(index_key, record.ttl)
                await pipe.execute()
        except Exception as e:
            raise RouteStoreError(f"Redis put failed: {e}") from e

    async def aclose(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()
