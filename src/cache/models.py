# src/cache/models.py — v2
"""Cached-routes domain models.

Token and amount primitives, the weighted sub-routes a route is split into,
the ``CachedRoutes`` entry that is stored and merged, the bucket/strategy
configuration types and the raw ``RouteRecord`` row handled by backends.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TradeType(IntEnum):
    """Trade direction. Integer values are part of the persisted key format."""

    EXACT_INPUT = 0
    EXACT_OUTPUT = 1


class CacheMode(str, Enum):
    """How a cache hit for a bucket is used."""

    LIVE = "livemode"
    DARK = "darkmode"
    SHADOW_COMPARE = "tapcompare"


class Protocol(str, Enum):
    """Liquidity protocols a route may traverse."""

    V2 = "V2"
    V3 = "V3"
    V4 = "V4"
    MIXED = "MIXED"


class Token(BaseModel):
    """ERC-20 style token on a given chain."""

    model_config = ConfigDict(frozen=True)

    chain_id: int
    address: str
    decimals: int = 18
    symbol: str | None = None

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        return v.lower()

    @property
    def label(self) -> str:
        """Symbol if known, otherwise the address."""
        return self.symbol or self.address


class CurrencyAmount(BaseModel):
    """Raw integer amount of a token, convertible to human-readable units."""

    model_config = ConfigDict(frozen=True)

    currency: Token
    raw_amount: int

    @classmethod
    def from_exact(cls, currency: Token, value: Decimal | str | int) -> CurrencyAmount:
        """Build from a human-readable amount (``"1.5"`` WETH, etc.)."""
        raw = Decimal(value).scaleb(currency.decimals)
        return cls(currency=currency, raw_amount=int(raw))

    def to_exact(self) -> Decimal:
        """Amount in human-readable units of ``currency``."""
        return Decimal(self.raw_amount).scaleb(-self.currency.decimals)


class Pool(BaseModel):
    """One liquidity pool hop."""

    model_config = ConfigDict(frozen=True)

    address: str
    fee: int | None = None

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        return v.lower()


class SubRoute(BaseModel):
    """A pool path from tokenIn to tokenOut."""

    model_config = ConfigDict(frozen=True)

    protocol: Protocol
    token_path: list[str]
    pools: list[Pool]

    @field_validator("token_path")
    @classmethod
    def normalize_token_path(cls, v: list[str]) -> list[str]:
        return [address.lower() for address in v]

    @model_validator(mode="after")
    def validate_path_shape(self) -> SubRoute:
        if len(self.token_path) != len(self.pools) + 1:
            raise ValueError("token_path must contain exactly one more token than pools")
        return self

    def route_key(self) -> str:
        """Canonical string identifying the pool path.

        e.g. ``[V3] 0xc02a -- 0x88e6/500 --> 0xa0b8``
        """
        parts = [f"[{self.protocol.value}] {self.token_path[0]}"]
        for pool, token in zip(self.pools, self.token_path[1:]):
            fee = f"/{pool.fee}" if pool.fee is not None else ""
            parts.append(f"-- {pool.address}{fee} --> {token}")
        return " ".join(parts)


class CachedRoute(BaseModel):
    """A sub-route together with its share of the trade."""

    model_config = ConfigDict(frozen=True)

    route: SubRoute
    percent: int = Field(ge=0, le=100)

    @property
    def route_key(self) -> str:
        return self.route.route_key()


class CachedRoutes(BaseModel):
    """Cacheable result of a route computation.

    Never mutated after construction; merging and TTL resolution build copies.
    """

    model_config = ConfigDict(frozen=True)

    routes: list[CachedRoute]
    chain_id: int
    token_in: Token
    token_out: Token
    protocols_covered: list[Protocol]
    block_number: int = Field(ge=0)
    trade_type: TradeType
    original_amount: str
    blocks_to_live: int = 0

    @property
    def split_count(self) -> int:
        """Number of weighted sub-routes, used for admission control."""
        return len(self.routes)

    def route_keys(self) -> list[str]:
        return [cached_route.route_key for cached_route in self.routes]

    def not_expired(self, current_block_number: int, optimistic: bool = False) -> bool:
        """Whether the entry may still be served at ``current_block_number``.

        Non-optimistic reads only accept entries computed at the current block.
        """
        blocks_to_live = self.blocks_to_live if optimistic else 0
        return current_block_number - self.block_number <= blocks_to_live


class CachedRoutesBucket(BaseModel):
    """Caching policy for trades up to ``bucket`` (inclusive)."""

    model_config = ConfigDict(frozen=True)

    bucket: Decimal = Field(gt=0)
    cache_mode: CacheMode
    blocks_to_live: int = Field(default=0, ge=0)
    with_last_n_cached_routes: int = Field(default=1, ge=1)
    max_splits: int = 0

    def allows(self, cached_routes: CachedRoutes) -> bool:
        """Admission control on split count; ``max_splits <= 0`` means unlimited."""
        return self.max_splits <= 0 or cached_routes.split_count <= self.max_splits


class CachedRoutesStrategy(BaseModel):
    """Ordered bucket list for one pair/trade type/chain."""

    model_config = ConfigDict(frozen=True)

    pair: str
    trade_type: TradeType
    chain_id: int
    buckets: list[CachedRoutesBucket]

    @model_validator(mode="after")
    def validate_ascending_buckets(self) -> CachedRoutesStrategy:
        """Bucket thresholds must be declared strictly ascending."""
        if not self.buckets:
            raise ValueError(f"Strategy {self.pair} has no buckets")
        thresholds = [b.bucket for b in self.buckets]
        for lower, upper in zip(thresholds, thresholds[1:]):
            if upper <= lower:
                raise ValueError(
                    f"Strategy {self.pair} buckets must be strictly ascending: "
                    f"{lower} is followed by {upper}"
                )
        return self

    @property
    def readable_name(self) -> str:
        return f"{self.pair}/{self.trade_type.name}/{self.chain_id}"


class RouteRecord(BaseModel):
    """Raw row as persisted by a backend."""

    partition_key: str
    sort_key: str
    item: bytes
    ttl: int  # absolute expiry, epoch seconds
