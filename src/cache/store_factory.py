# src/cache/store_factory.py — v1
"""Factory for cached-routes backend instantiation."""

from __future__ import annotations

from routecache.cache.base_route_store import BaseRouteStore
from routecache.config.settings import Settings


def create_route_store(settings: Settings | None = None) -> BaseRouteStore:
    """Instantiate the configured backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseRouteStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from routecache.cache.memory_store import MemoryRouteStore
        return MemoryRouteStore()

    if backend == "sqlite":
        from routecache.cache.sqlite_store import SqliteRouteStore
        return SqliteRouteStore(
            db_path=settings.cache_sqlite_path,
            table_name=settings.cached_routes_table_name,
        )

    if backend == "redis":
        from routecache.cache.redis_store import RedisRouteStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisRouteStore(
            redis_url=settings.cache_redis_url,
            namespace=settings.cached_routes_table_name,
            socket_timeout_s=settings.cache_timeout_ms / 1000,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
