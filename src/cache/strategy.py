# src/cache/strategy.py — v1
"""Bucket resolution shared by every route cache backend.

Pure functions over a read-only ``StrategyTable``: no I/O, no logging side
effects beyond debug traces, safe to share across concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping

from routecache.cache.keys import PairTradeTypeChainId
from routecache.cache.models import (
    CachedRoutes,
    CachedRoutesBucket,
    CachedRoutesStrategy,
    CurrencyAmount,
    Token,
    TradeType,
)

logger = logging.getLogger(__name__)


class StrategyConfigurationError(Exception):
    """Raised when the cached-routes configuration table is inconsistent."""


class StrategyTable:
    """Immutable mapping of pair identity to caching strategy."""

    def __init__(
        self, entries: Iterable[tuple[PairTradeTypeChainId, CachedRoutesStrategy]]
    ) -> None:
        table: dict[PairTradeTypeChainId, CachedRoutesStrategy] = {}
        for pair, strategy in entries:
            if pair in table:
                raise StrategyConfigurationError(
                    f"Duplicate cached routes strategy for {pair}"
                )
            if pair.trade_type != strategy.trade_type or pair.chain_id != strategy.chain_id:
                raise StrategyConfigurationError(
                    f"Strategy {strategy.readable_name} registered under mismatching key {pair}"
                )
            table[pair] = strategy
        self._table: Mapping[PairTradeTypeChainId, CachedRoutesStrategy] = MappingProxyType(table)

    def get(self, pair: PairTradeTypeChainId) -> CachedRoutesStrategy | None:
        return self._table.get(pair)

    def items(self):
        return self._table.items()

    def __contains__(self, pair: object) -> bool:
        return pair in self._table

    def __len__(self) -> int:
        return len(self._table)


@dataclass(frozen=True)
class BucketResolution:
    """Outcome of resolving a pair and amount against the configuration."""

    pair: PairTradeTypeChainId
    strategy: CachedRoutesStrategy
    bucket: CachedRoutesBucket


def select_bucket(
    strategy: CachedRoutesStrategy, amount: Decimal | CurrencyAmount
) -> CachedRoutesBucket | None:
    """Return the first bucket whose threshold is >= ``amount``.

    Buckets are scanned in declared order (validated ascending when the
    strategy is built). An amount above every threshold is uncacheable.

    e.g. buckets [10, 50, 100]: 0.1 -> 10, 50 -> 50, 51 -> 100, 101 -> None
    """
    value = amount.to_exact() if isinstance(amount, CurrencyAmount) else Decimal(amount)
    for bucket in strategy.buckets:
        if value <= bucket.bucket:
            return bucket
    return None


def resolve_strategy(
    table: StrategyTable, pair: PairTradeTypeChainId
) -> CachedRoutesStrategy | None:
    """Exact pair first, then its wildcard variant."""
    strategy = table.get(pair)
    if strategy is not None:
        return strategy
    return table.get(pair.with_wildcard())


def determine_token_in_out(
    amount: CurrencyAmount, quote_token: Token, trade_type: TradeType
) -> tuple[Token, Token]:
    """Role order of the request tokens.

    EXACT_INPUT: the amount is tokenIn. EXACT_OUTPUT: the amount is tokenOut.
    """
    if trade_type == TradeType.EXACT_INPUT:
        return amount.currency, quote_token
    return quote_token, amount.currency


def resolve_bucket(
    table: StrategyTable,
    pair: PairTradeTypeChainId,
    amount: Decimal | CurrencyAmount,
) -> BucketResolution | None:
    """Strategy lookup followed by bucket selection; None when uncacheable."""
    strategy = resolve_strategy(table, pair)
    if strategy is None:
        logger.debug(
            "No cached routes strategy",
            extra={"data": {"pair": str(pair), "wildcard": pair.wildcard_key()}},
        )
        return None
    bucket = select_bucket(strategy, amount)
    if bucket is None:
        return None
    return BucketResolution(pair=pair, strategy=strategy, bucket=bucket)


def resolve_bucket_for_request(
    table: StrategyTable,
    chain_id: int,
    amount: CurrencyAmount,
    quote_token: Token,
    trade_type: TradeType,
) -> BucketResolution | None:
    token_in, token_out = determine_token_in_out(amount, quote_token, trade_type)
    pair = PairTradeTypeChainId(token_in.address, token_out.address, trade_type, chain_id)
    return resolve_bucket(table, pair, amount)


def resolve_bucket_for_cached_routes(
    table: StrategyTable,
    cached_routes: CachedRoutes,
    amount: Decimal | CurrencyAmount | None = None,
) -> BucketResolution | None:
    """Resolve from the entry's own identity; amount defaults to its provenance."""
    if amount is None:
        amount = Decimal(cached_routes.original_amount)
    pair = PairTradeTypeChainId.from_cached_routes(cached_routes)
    return resolve_bucket(table, pair, amount)


def pair_label(amount: CurrencyAmount, quote_token: Token, trade_type: TradeType) -> str:
    """Human-readable ``IN/OUT`` label of a request, symbols when known."""
    token_in, token_out = determine_token_in_out(amount, quote_token, trade_type)
    return f"{token_in.label}/{token_out.label}"
