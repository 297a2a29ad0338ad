# src/cache/base_route_store.py — v1
"""Abstract key-value backend for cached routes.

One logical table: partition key = pair identity string, sort key =
protocols/bucket/block number, a binary ``item`` and an absolute ``ttl``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from routecache.cache.models import RouteRecord


class RouteStoreError(Exception):
    """Backend I/O failure (connection, throttling, timeout)."""


class BaseRouteStore(ABC):
    """Unified interface for cached-routes storage backends."""

    @abstractmethod
    async def query(
        self, partition_key: str, sort_key_prefix: str, limit: int
    ) -> list[RouteRecord]:
        """Records of ``partition_key`` whose sort key begins with the prefix.

        Ordered by sort key descending (most recent block first), at most
        ``limit`` records, expired records excluded.
        """

    @abstractmethod
    async def put(self, record: RouteRecord) -> None:
        """Upsert a record by (partition_key, sort_key)."""

    def close(self) -> None:
        """Release backend resources."""
