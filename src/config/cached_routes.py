# src/config/cached_routes.py — v1
"""Cached routes configuration: pair/trade type/chain -> ordered buckets.

Thresholds are in human-readable units of the amount's token (tokenIn for
EXACT_INPUT, tokenOut for EXACT_OUTPUT) and must be declared ascending.
A wildcard row (``*`` on the quote side) applies when no exact row exists.
"""

from __future__ import annotations

from routecache.cache.keys import WILDCARD, PairTradeTypeChainId
from routecache.cache.models import (
    CachedRoutesBucket,
    CachedRoutesStrategy,
    CacheMode,
    TradeType,
)
from routecache.cache.strategy import StrategyTable

MAINNET = 1

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
USDT = "0xdac17f958d2ee523a2206206994597c13d831ec7"

LIVE = CacheMode.LIVE
DARK = CacheMode.DARK
SHADOW = CacheMode.SHADOW_COMPARE


def _strategy(
    pair: str,
    token_in: str,
    token_out: str,
    trade_type: TradeType,
    chain_id: int,
    buckets: list[CachedRoutesBucket],
) -> tuple[PairTradeTypeChainId, CachedRoutesStrategy]:
    return (
        PairTradeTypeChainId(token_in, token_out, trade_type, chain_id),
        CachedRoutesStrategy(
            pair=pair, trade_type=trade_type, chain_id=chain_id, buckets=buckets
        ),
    )


def _bucket(bucket: str, cache_mode: CacheMode, **kwargs: int) -> CachedRoutesBucket:
    return CachedRoutesBucket(bucket=bucket, cache_mode=cache_mode, **kwargs)


_WETH_SIZES = ["0.2", "1", "3", "5", "8", "13", "21", "34", "55"]
_STABLE_SIZES = ["500", "1000", "3000", "8000", "13000", "21000", "34000", "55000", "89000"]


CACHED_ROUTES_CONFIGURATION = StrategyTable(
    [
        _strategy(
            "WETH/USDC", WETH, USDC, TradeType.EXACT_INPUT, MAINNET,
            [_bucket(size, LIVE) for size in _WETH_SIZES],
        ),
        _strategy(
            "USDC/WETH", USDC, WETH, TradeType.EXACT_INPUT, MAINNET,
            [_bucket(size, LIVE) for size in _STABLE_SIZES],
        ),
        _strategy(
            "WETH/USDT", WETH, USDT, TradeType.EXACT_INPUT, MAINNET,
            [_bucket(size, LIVE) for size in _WETH_SIZES],
        ),
        _strategy(
            "USDT/WETH", USDT, WETH, TradeType.EXACT_INPUT, MAINNET,
            [_bucket(size, LIVE) for size in _STABLE_SIZES],
        ),
        _strategy(
            "WETH/*", WETH, WILDCARD, TradeType.EXACT_INPUT, MAINNET,
            [
                # Below 0.015 WETH the best route is dominated by gas price.
                _bucket("0.015", DARK),
                _bucket("0.05", LIVE, with_last_n_cached_routes=20),
                _bucket("0.1", LIVE, with_last_n_cached_routes=20),
                _bucket("0.5", LIVE, with_last_n_cached_routes=20),
                _bucket("1", LIVE, with_last_n_cached_routes=20),
                _bucket("2", LIVE, with_last_n_cached_routes=15),
                _bucket("3", LIVE, with_last_n_cached_routes=15),
                _bucket("4", LIVE, with_last_n_cached_routes=15),
                _bucket("5", LIVE, with_last_n_cached_routes=15),
            ],
        ),
        _strategy(
            "USDC/*", USDC, WILDCARD, TradeType.EXACT_INPUT, MAINNET,
            [
                _bucket("100", DARK, with_last_n_cached_routes=10),
                _bucket("300", LIVE, with_last_n_cached_routes=10),
                _bucket("500", LIVE, with_last_n_cached_routes=10),
                _bucket("750", LIVE, with_last_n_cached_routes=10),
                _bucket("1000", LIVE, with_last_n_cached_routes=10),
                _bucket("3000", LIVE, with_last_n_cached_routes=10),
                _bucket("8000", LIVE, with_last_n_cached_routes=10),
                _bucket("13000", LIVE, with_last_n_cached_routes=10),
            ],
        ),
        # Pricing requests: quote the USD value of a fixed WETH output.
        _strategy(
            "*/WETH", WILDCARD, WETH, TradeType.EXACT_OUTPUT, MAINNET,
            [
                _bucket("0.015", DARK),
                _bucket("0.05", DARK),
                _bucket("0.1", SHADOW, with_last_n_cached_routes=10),
                _bucket("0.5", SHADOW, with_last_n_cached_routes=10),
                _bucket("1", SHADOW, with_last_n_cached_routes=10),
                _bucket("2", SHADOW, with_last_n_cached_routes=10),
                _bucket("4", SHADOW, with_last_n_cached_routes=10),
                _bucket("6", SHADOW, with_last_n_cached_routes=10),
                _bucket("10", SHADOW, with_last_n_cached_routes=10),
                _bucket("16", SHADOW, with_last_n_cached_routes=10),
                _bucket("30", SHADOW, with_last_n_cached_routes=10),
                _bucket("45", SHADOW, with_last_n_cached_routes=10),
                _bucket("55", LIVE, with_last_n_cached_routes=10),
                _bucket("80", SHADOW, with_last_n_cached_routes=10),
                _bucket("95", SHADOW, with_last_n_cached_routes=10),
                _bucket("110", SHADOW, with_last_n_cached_routes=10),
            ],
        ),
    ]
)
