# tests/unit/cache/test_redis_store.py — v3
"""Tests for cache/redis_store.py — mocked Redis client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from routecache.cache.base_route_store import RouteStoreError
from routecache.cache.models import RouteRecord

NOW = 1_700_000_000
PK = "0xin/0xout/0/1"


class _FakeAsyncRedis:
    """Just enough of redis.asyncio.Redis for the store: hashes, lex zsets, pipelines."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[bytes, bytes]] = {}
        self.zsets: dict[str, set[str]] = {}
        self.expiries: dict[str, int] = {}
        self.executes = 0
        self.direct_hgetall = 0

    async def zrevrangebylex(self, name, max, min, start=None, num=None):
        prefix = min[1:]
        members = sorted(
            (m for m in self.zsets.get(name, set()) if m.startswith(prefix)), reverse=True
        )
        return [m.encode() for m in members[start:start + num]]

    async def hgetall(self, name):
        self.direct_hgetall += 1
        return dict(self.hashes.get(name, {}))

    async def zrem(self, name, *members):
        for member in members:
            self.zsets.get(name, set()).discard(member)

    def pipeline(self, transaction=True):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, client: _FakeAsyncRedis) -> None:
        self._client = client
        self._ops: list = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def hset(self, name, mapping):
        encoded = {
            k.encode(): v if isinstance(v, bytes) else str(v).encode()
            for k, v in mapping.items()
        }
        self._ops.append(lambda: self._client.hashes.setdefault(name, {}).update(encoded))

    def expireat(self, name, when):
        self._ops.append(lambda: self._client.expiries.__setitem__(name, when))

    def zadd(self, name, mapping):
        self._ops.append(lambda: self._client.zsets.setdefault(name, set()).update(mapping))

    def hgetall(self, name):
        self._ops.append(lambda: dict(self._client.hashes.get(name, {})))

    async def execute(self):
        self._client.executes += 1
        results = [op() for op in self._ops]
        self._ops.clear()
        return results


def _make_store(client):
    with patch("routecache.cache.redis_store.RedisRouteStore.__init__", return_value=None):
        from routecache.cache.redis_store import RedisRouteStore
        store = RedisRouteStore.__new__(RedisRouteStore)
        store._client = client
        store._namespace = "CachedRoutes"
        store._clock = lambda: NOW
    return store


def _record(sort_key: str, ttl: int = NOW + 60, item: bytes = b"payload") -> RouteRecord:
    return RouteRecord(partition_key=PK, sort_key=sort_key, item=item, ttl=ttl)


class TestRedisRouteStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        import sys
        saved = {name: sys.modules.get(name) for name in ("redis", "redis.asyncio")}
        sys.modules["redis"] = None  # type: ignore[assignment]
        sys.modules["redis.asyncio"] = None  # type: ignore[assignment]
        try:
            from routecache.cache.redis_store import RedisRouteStore
            with pytest.raises(ImportError, match="redis"):
                RedisRouteStore(redis_url="redis://localhost")
        finally:
            for name, module in saved.items():
                if module is not None:
                    sys.modules[name] = module
                else:
                    sys.modules.pop(name, None)

    @pytest.mark.asyncio
    async def test_put_and_query(self):
        client = _FakeAsyncRedis()
        store = _make_store(client)

        await store.put(_record("V3/1/00000000000000000001"))
        records = await store.query(PK, "V3/1/", 5)

        assert len(records) == 1
        assert records[0].item == b"payload"
        assert records[0].ttl == NOW + 60
        assert client.expiries[f"CachedRoutes:item:{PK}|V3/1/00000000000000000001"] == NOW + 60

    @pytest.mark.asyncio
    async def test_newest_first_with_limit(self):
        store = _make_store(_FakeAsyncRedis())
        for block in (1, 3, 2):
            await store.put(_record(f"V3/1/{block:020d}"))
        await store.put(_record("V3/15/00000000000000000009"))

        records = await store.query(PK, "V3/1/", 2)
        assert [int(r.sort_key.rsplit("/", 1)[1]) for r in records] == [3, 2]

    @pytest.mark.asyncio
    async def test_expired_item_skipped(self):
        store = _make_store(_FakeAsyncRedis())
        await store.put(_record("V3/1/00000000000000000001", ttl=NOW - 1))
        assert await store.query(PK, "V3/1/", 5) == []

    @pytest.mark.asyncio
    async def test_evicted_item_removed_from_index(self):
        client = _FakeAsyncRedis()
        store = _make_store(client)
        await store.put(_record("V3/1/00000000000000000001"))
        client.hashes.clear()

        assert await store.query(PK, "V3/1/", 5) == []
        assert client.zsets[f"CachedRoutes:idx:{PK}"] == set()

    @pytest.mark.asyncio
    async def test_query_error_wrapped(self):
        client = MagicMock()
        client.zrevrangebylex = AsyncMock(side_effect=ConnectionError("refused"))
        store = _make_store(client)
        with pytest.raises(RouteStoreError, match="refused"):
            await store.query(PK, "V3/1/", 5)

    @pytest.mark.asyncio
    async def test_aclose(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        store = _make_store(client)
        await store.aclose()
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hash_reads_share_one_pipeline(self):
        client = _FakeAsyncRedis()
        store = _make_store(client)
        for block in range(1, 21):
            await store.put(_record(f"V3/1/{block:020d}"))
        client.executes = 0

        records = await store.query(PK, "V3/1/", 20)

        assert len(records) == 20
        assert client.executes == 1
        assert client.direct_hgetall == 0

    @pytest.mark.asyncio
    async def test_expired_members_do_not_shrink_window(self):
        store = _make_store(_FakeAsyncRedis())
        for block in (1, 2):
            await store.put(_record(f"V3/1/{block:020d}"))
        for block in (3, 4):
            await store.put(_record(f"V3/1/{block:020d}", ttl=NOW - 1))

        records = await store.query(PK, "V3/1/", 2)
        assert [int(r.sort_key.rsplit("/", 1)[1]) for r in records] == [2, 1]

    @pytest.mark.asyncio
    async def test_empty_index_skips_pipeline(self):
        client = _FakeAsyncRedis()
        store = _make_store(client)
        assert await store.query(PK, "V3/1/", 5) == []
        assert client.executes == 0
