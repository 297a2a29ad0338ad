# src/main.py — v3
"""CLI entry point: strategies, resolve commands.

Usage:
    routecache strategies [--chain-id N]
    routecache resolve <token_in> <token_out> <amount> [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation

from routecache.config.settings import ConfigurationError, load_settings
from routecache.version import __version__

logger = logging.getLogger(__name__)

_TRADE_TYPES = {"exact_input": 0, "exact_output": 1}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _setup_logging(args.verbose)
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="routecache",
        description=f"routecache v{__version__} - Cached swap routes inspector",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- strategies ---
    p_strategies = subparsers.add_parser(
        "strategies", help="List configured caching strategies",
    )
    p_strategies.add_argument(
        "--chain-id", type=int, default=None,
        help="Only show strategies for this chain",
    )
    p_strategies.set_defaults(func=_cmd_strategies)

    # --- resolve ---
    p_resolve = subparsers.add_parser(
        "resolve", help="Resolve strategy, bucket and cache mode for a trade",
    )
    p_resolve.add_argument("token_in", help="tokenIn address")
    p_resolve.add_argument("token_out", help="tokenOut address")
    p_resolve.add_argument(
        "amount",
        help="Human-readable amount (of tokenIn for exact_input, tokenOut for exact_output)",
    )
    p_resolve.add_argument(
        "--trade-type", choices=sorted(_TRADE_TYPES), default="exact_input",
        help="Trade type (default: exact_input)",
    )
    p_resolve.add_argument(
        "--chain-id", type=int, default=1,
        help="Chain id (default: 1)",
    )
    p_resolve.set_defaults(func=_cmd_resolve)

    return parser


async def _cmd_strategies(args: argparse.Namespace) -> int:
    """Print every configured strategy with its buckets."""
    from routecache.config.cached_routes import CACHED_ROUTES_CONFIGURATION

    shown = 0
    for pair, strategy in CACHED_ROUTES_CONFIGURATION.items():
        if args.chain_id is not None and strategy.chain_id != args.chain_id:
            continue
        shown += 1
        print(f"\n{strategy.readable_name}  [{pair}]")
        for bucket in strategy.buckets:
            print(
                f"  <= {bucket.bucket:<10} {bucket.cache_mode.value:<11}"
                f" last_n={bucket.with_last_n_cached_routes}"
                f" blocks_to_live={bucket.blocks_to_live}"
                f" max_splits={bucket.max_splits}"
            )

    if shown == 0:
        print("No strategies configured")
    return 0


async def _cmd_resolve(args: argparse.Namespace) -> int:
    """Print the strategy, bucket and cache mode a trade resolves to."""
    from routecache.cache.memory_store import MemoryRouteStore
    from routecache.cache.models import CacheMode, CurrencyAmount, Token, TradeType
    from routecache.cache.route_cache import RouteCache

    try:
        value = Decimal(args.amount)
    except InvalidOperation:
        logger.error("Invalid amount: %s", args.amount)
        return 1

    trade_type = TradeType(_TRADE_TYPES[args.trade_type])
    token_in = Token(chain_id=args.chain_id, address=args.token_in)
    token_out = Token(chain_id=args.chain_id, address=args.token_out)
    if trade_type == TradeType.EXACT_INPUT:
        amount, quote_token = CurrencyAmount.from_exact(token_in, value), token_out
    else:
        amount, quote_token = CurrencyAmount.from_exact(token_out, value), token_in

    route_cache = RouteCache(MemoryRouteStore())
    resolution = route_cache.resolve_bucket(args.chain_id, amount, quote_token, trade_type)

    print(f"\nResolution for {value} ({trade_type.name}, chain {args.chain_id}):")
    if resolution is None:
        print("  Strategy:   none")
        print(f"  Cache mode: {CacheMode.DARK.value}")
        return 0

    bucket = resolution.bucket
    print(f"  Strategy:   {resolution.strategy.readable_name}")
    print(f"  Key:        {resolution.pair}")
    print(f"  Bucket:     <= {bucket.bucket}")
    print(f"  Cache mode: {bucket.cache_mode.value}")
    print(f"  Last N:     {bucket.with_last_n_cached_routes}")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging from settings; --verbose forces DEBUG."""
    from routecache.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
