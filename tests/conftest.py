# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides mainnet tokens, sample sub-routes and cached routes, a small
strategy table and an in-memory store driven by a controllable clock.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from routecache.cache.keys import WILDCARD, PairTradeTypeChainId
from routecache.cache.memory_store import MemoryRouteStore
from routecache.cache.models import (
    CachedRoute,
    CachedRoutes,
    CachedRoutesBucket,
    CachedRoutesStrategy,
    CacheMode,
    Pool,
    Protocol,
    SubRoute,
    Token,
    TradeType,
)
from routecache.cache.retry import FailFastPolicy
from routecache.cache.route_cache import RouteCache
from routecache.cache.strategy import StrategyTable

WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI_ADDRESS = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# === FIXTURES: Tokens ===


@pytest.fixture
def weth() -> Token:
    return Token(chain_id=1, address=WETH_ADDRESS, decimals=18, symbol="WETH")


@pytest.fixture
def usdc() -> Token:
    return Token(chain_id=1, address=USDC_ADDRESS, decimals=6, symbol="USDC")


@pytest.fixture
def dai() -> Token:
    return Token(chain_id=1, address=DAI_ADDRESS, decimals=18, symbol="DAI")


# === FIXTURES: Routes ===


def make_sub_route(
    token_in: str = WETH_ADDRESS,
    token_out: str = USDC_ADDRESS,
    pool: str = "0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640",
    fee: int | None = 500,
    protocol: Protocol = Protocol.V3,
) -> SubRoute:
    return SubRoute(
        protocol=protocol,
        token_path=[token_in, token_out],
        pools=[Pool(address=pool, fee=fee)],
    )


def make_cached_routes(
    token_in: Token,
    token_out: Token,
    pools: list[str] | None = None,
    block_number: int = 100,
    original_amount: str = "1",
    trade_type: TradeType = TradeType.EXACT_INPUT,
    protocols: list[Protocol] | None = None,
) -> CachedRoutes:
    """One sub-route per pool address, percentages split evenly."""
    pools = pools if pools is not None else ["0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640"]
    share = 100 // len(pools) if pools else 0
    return CachedRoutes(
        routes=[
            CachedRoute(
                route=make_sub_route(token_in.address, token_out.address, pool=pool),
                percent=share,
            )
            for pool in pools
        ],
        chain_id=token_in.chain_id,
        token_in=token_in,
        token_out=token_out,
        protocols_covered=protocols or [Protocol.V3, Protocol.V2],
        block_number=block_number,
        trade_type=trade_type,
        original_amount=original_amount,
    )


@pytest.fixture
def sample_cached_routes(weth: Token, usdc: Token) -> CachedRoutes:
    return make_cached_routes(weth, usdc)


# === FIXTURES: Strategies and cache ===


def make_bucket(bucket: str, cache_mode: CacheMode = CacheMode.LIVE, **kwargs) -> CachedRoutesBucket:
    return CachedRoutesBucket(bucket=Decimal(bucket), cache_mode=cache_mode, **kwargs)


@pytest.fixture
def strategy_table() -> StrategyTable:
    """WETH/USDC exact strategy, WETH/* wildcard and USDC/* EXACT_OUTPUT wildcard."""
    return StrategyTable(
        [
            (
                PairTradeTypeChainId(WETH_ADDRESS, USDC_ADDRESS, TradeType.EXACT_INPUT, 1),
                CachedRoutesStrategy(
                    pair="WETH/USDC",
                    trade_type=TradeType.EXACT_INPUT,
                    chain_id=1,
                    buckets=[
                        make_bucket("1", blocks_to_live=2),
                        make_bucket("3", with_last_n_cached_routes=3, max_splits=3),
                        make_bucket("5", CacheMode.SHADOW_COMPARE),
                    ],
                ),
            ),
            (
                PairTradeTypeChainId(WETH_ADDRESS, WILDCARD, TradeType.EXACT_INPUT, 1),
                CachedRoutesStrategy(
                    pair="WETH/*",
                    trade_type=TradeType.EXACT_INPUT,
                    chain_id=1,
                    buckets=[
                        make_bucket("0.5", CacheMode.DARK),
                        make_bucket("10", with_last_n_cached_routes=2),
                    ],
                ),
            ),
            (
                PairTradeTypeChainId(WILDCARD, USDC_ADDRESS, TradeType.EXACT_OUTPUT, 1),
                CachedRoutesStrategy(
                    pair="*/USDC",
                    trade_type=TradeType.EXACT_OUTPUT,
                    chain_id=1,
                    buckets=[make_bucket("1000")],
                ),
            ),
        ]
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryRouteStore:
    return MemoryRouteStore(clock=clock)


@pytest.fixture
def route_cache(memory_store, strategy_table, clock) -> RouteCache:
    return RouteCache(
        memory_store,
        strategies=strategy_table,
        policy=FailFastPolicy(timeout_s=0.5, max_retries=1, base_delay_s=0.001),
        clock=clock,
    )


@pytest.fixture
def cached_routes_factory():
    return make_cached_routes


@pytest.fixture
def bucket_factory():
    return make_bucket
