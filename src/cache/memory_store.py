# src/cache/memory_store.py — v2
"""In-process cached-routes backend (CACHE_BACKEND=memory).

Records live for the process lifetime; expired rows are ignored on read
and dropped from a partition whenever it is read or written.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from routecache.cache.base_route_store import BaseRouteStore
from routecache.cache.models import RouteRecord

logger = logging.getLogger(__name__)


class MemoryRouteStore(BaseRouteStore):
    """Dictionary-backed store, suitable for a single process and for tests."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._partitions: dict[str, dict[str, RouteRecord]] = {}
        self._clock = clock

    def _drop_expired(self, partition: dict[str, RouteRecord], now: int) -> int:
        expired = [sk for sk, record in partition.items() if record.ttl < now]
        for sort_key in expired:
            del partition[sort_key]
        return len(expired)

    async def query(
        self, partition_key: str, sort_key_prefix: str, limit: int
    ) -> list[RouteRecord]:
        partition = self._partitions.get(partition_key, {})
        self._drop_expired(partition, int(self._clock()))

        matching = sorted(
            (sk for sk in partition if sk.startswith(sort_key_prefix)), reverse=True
        )
        return [partition[sk] for sk in matching[:limit]]

    async def put(self, record: RouteRecord) -> None:
        partition = self._partitions.setdefault(record.partition_key, {})
        self._drop_expired(partition, int(self._clock()))
        partition[record.sort_key] = record

    def purge_expired(self) -> int:
        """Delete expired rows in every partition; returns the number removed."""
        now = int(self._clock())
        removed = 0
        for partition_key in list(self._partitions):
            partition = self._partitions[partition_key]
            removed += self._drop_expired(partition, now)
            if not partition:
                del self._partitions[partition_key]
        if removed:
            logger.info("Purged %d expired cached routes", removed)
        return removed

    def __len__(self) -> int:
        return sum(len(p) for p in self._partitions.values())
