# src/cache/keys.py — v1
"""Composite key model of the cached-routes table.

Partition key: ``PairTradeTypeChainId`` (``<tokenIn>/<tokenOut>/<tradeType>/<chainId>``).
Sort key: ``ProtocolsBucketBlockNumber`` (``<protocols>/<bucket>/<blockNumber>``).
The sort key prefix without block number supports begins-with range queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from routecache.cache.models import CachedRoutes, Protocol, TradeType

WILDCARD = "*"

# Wide enough for any uint64 block number.
_BLOCK_NUMBER_WIDTH = 20


@dataclass(frozen=True)
class PairTradeTypeChainId:
    """Identity of a cacheable trade shape. Addresses keep role order."""

    token_in: str
    token_out: str
    trade_type: TradeType
    chain_id: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "token_in", self.token_in.lower())
        object.__setattr__(self, "token_out", self.token_out.lower())
        object.__setattr__(self, "trade_type", TradeType(self.trade_type))

    def __str__(self) -> str:
        return f"{self.token_in}/{self.token_out}/{int(self.trade_type)}/{self.chain_id}"

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in (self.token_in, self.token_out)

    def with_wildcard(self) -> PairTradeTypeChainId:
        """Fallback identity: the quote side is replaced by ``*``.

        EXACT_INPUT keeps tokenIn and wildcards tokenOut; EXACT_OUTPUT the reverse.
        """
        if self.trade_type == TradeType.EXACT_INPUT:
            return PairTradeTypeChainId(self.token_in, WILDCARD, self.trade_type, self.chain_id)
        return PairTradeTypeChainId(WILDCARD, self.token_out, self.trade_type, self.chain_id)

    def wildcard_key(self) -> str:
        return str(self.with_wildcard())

    @classmethod
    def from_cached_routes(cls, cached_routes: CachedRoutes) -> PairTradeTypeChainId:
        return cls(
            token_in=cached_routes.token_in.address,
            token_out=cached_routes.token_out.address,
            trade_type=cached_routes.trade_type,
            chain_id=cached_routes.chain_id,
        )


def format_bucket(bucket: Decimal | int | str) -> str:
    """Plain decimal rendering: ``0.2``, ``1``, ``13000`` (never exponent form)."""
    normalized = Decimal(bucket).normalize()
    return format(normalized, "f")


@dataclass(frozen=True)
class ProtocolsBucketBlockNumber:
    """Sort key: protocol set + bucket + optional block number."""

    protocols: tuple[Protocol, ...]
    bucket: Decimal
    block_number: int | None = None

    def __init__(
        self,
        protocols: Iterable[Protocol | str],
        bucket: Decimal | int | str,
        block_number: int | None = None,
    ) -> None:
        canonical = tuple(sorted({Protocol(p) for p in protocols}, key=lambda p: p.value))
        object.__setattr__(self, "protocols", canonical)
        object.__setattr__(self, "bucket", Decimal(bucket))
        object.__setattr__(self, "block_number", block_number)

    def protocols_bucket_partial_key(self) -> str:
        """Prefix used for begins-with queries; trailing ``/`` keeps bucket 5 apart from 55."""
        protocols_part = ",".join(p.value for p in self.protocols)
        return f"{protocols_part}/{format_bucket(self.bucket)}/"

    def full_key(self) -> str:
        if self.block_number is None:
            raise ValueError("Block number is necessary to create a full key")
        return (
            f"{self.protocols_bucket_partial_key()}"
            f"{self.block_number:0{_BLOCK_NUMBER_WIDTH}d}"
        )
