# src/cache/sqlite_store.py — v3
"""SQLite-based cached-routes backend (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. The composite primary key
mirrors the partition/sort key layout; expired rows are filtered on read
and removed by ``purge_expired``. Statements run in a worker thread so the
caller's timeout can cancel the wait.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
import threading
import time
from pathlib import Path
from typing import Callable

from routecache.cache.base_route_store import BaseRouteStore, RouteStoreError
from routecache.cache.models import RouteRecord

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    pair_trade_type_chain_id TEXT NOT NULL,
    protocols_bucket_block_number TEXT NOT NULL,
    item BLOB NOT NULL,
    ttl INTEGER NOT NULL,
    PRIMARY KEY (pair_trade_type_chain_id, protocols_bucket_block_number)
);
CREATE INDEX IF NOT EXISTS idx_{table}_ttl ON {table}(ttl);
"""


class SqliteRouteStore(BaseRouteStore):
    """SQLite-backed store; one shared connection guarded by a lock."""

    def __init__(
        self,
        db_path: Path | str,
        table_name: str = "CachedRoutes",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not _TABLE_NAME_RE.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self._table = table_name
        self._clock = clock
        self._lock = threading.Lock()
        if str(db_path) == ":memory:":
            target = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        self._conn = sqlite3.connect(target, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA.format(table=self._table))

    async def query(
        self, partition_key: str, sort_key_prefix: str, limit: int
    ) -> list[RouteRecord]:
        return await asyncio.to_thread(
            self._query_sync, partition_key, sort_key_prefix, limit
        )

    async def put(self, record: RouteRecord) -> None:
        await asyncio.to_thread(self._put_sync, record)

    def _query_sync(
        self, partition_key: str, sort_key_prefix: str, limit: int
    ) -> list[RouteRecord]:
        sql = (
            f"SELECT protocols_bucket_block_number, item, ttl FROM {self._table} "
            "WHERE pair_trade_type_chain_id = ? "
            "AND substr(protocols_bucket_block_number, 1, ?) = ? "
            "AND ttl >= ? "
            "ORDER BY protocols_bucket_block_number DESC LIMIT ?"
        )
        params = (
            partition_key,
            len(sort_key_prefix),
            sort_key_prefix,
            int(self._clock()),
            limit,
        )
        try:
            with self._lock:
                rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise RouteStoreError(f"SQLite query failed: {e}") from e

        return [
            RouteRecord(
                partition_key=partition_key,
                sort_key=row[0],
                item=bytes(row[1]),
                ttl=row[2],
            )
            for row in rows
        ]

    def _put_sync(self, record: RouteRecord) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    f"""INSERT OR REPLACE INTO {self._table}
                        (pair_trade_type_chain_id, protocols_bucket_block_number, item, ttl)
                        VALUES (?, ?, ?, ?)""",
                    (record.partition_key, record.sort_key, record.item, record.ttl),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise RouteStoreError(f"SQLite put failed: {e}") from e

    def purge_expired(self) -> int:
        """Delete expired rows; returns the number removed."""
        with self._lock:
            cursor = self._conn.execute(
                f"DELETE FROM {self._table} WHERE ttl < ?", (int(self._clock()),)
            )
            self._conn.commit()
        if cursor.rowcount:
            logger.info("Purged %d expired cached routes", cursor.rowcount)
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
