#!/usr/bin/env python3
"""DRManager Oracle.

Aggregates asset prices from several public price APIs, scores content
authenticity and publishes market statistics for the DRManager licensing
platform.

Configure with CLI arguments or environment variables. The oracle wallet key
is read from PRIVATE_KEY only.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from .src.DRManagerOracle import (
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_SOURCES,
    DEFAULT_STATS_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
    DRManagerOracle,
)
from .src.fetchers import get_available_fetchers
from .src.IpfsGateway import DEFAULT_GATEWAY_URL

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_api_keys(api_key_str: str | None) -> dict[str, str]:
    """Parse comma-separated API key string into a dictionary.

    Format: source1=key1,source2=key2
    Example: coingecko=demo:abc123,coinmarketcap=xyz789

    :param api_key_str: Comma-separated API key string.
    :returns: Dict mapping source names to API keys.
    """
    if not api_key_str:
        return {}

    api_keys = {}
    for item in api_key_str.split(","):
        item = item.strip()
        if "=" in item:
            source, key = item.split("=", 1)
            api_keys[source.strip().lower()] = key.strip()
    return api_keys


def parse_env_api_keys(environ: dict[str, str] | None = None) -> dict[str, str]:
    """Collect API keys from API_KEY_<SOURCE> environment variables.

    :param environ: Mapping to read (default: os.environ).
    :returns: Dict mapping source names to API keys.
    """
    environ = os.environ if environ is None else environ
    prefix = "API_KEY_"
    return {
        key[len(prefix):].lower(): value
        for key, value in environ.items()
        if key.startswith(prefix) and value
    }


def build_parser(available_sources: list[str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DRManager Oracle: price feeds, content verification and market stats",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available price sources:
  {', '.join(available_sources)}

Examples:
  # ETH/USD from the default sources, refreshed every 30 seconds
  python -m drm_oracle.main

  # Single snapshot printed as JSON
  python -m drm_oracle.main --once --sources coingecko,binance

Environment variables (CLI args take precedence):
  SYMBOLS, SOURCES, UPDATE_INTERVAL, STATS_INTERVAL, CLEANUP_INTERVAL,
  RETENTION_DAYS, FETCH_TIMEOUT, PROBE_TIMEOUT, IPFS_GATEWAY, API_KEYS,
  API_KEY_COINGECKO, API_KEY_COINMARKETCAP, PRIVATE_KEY
""",
    )

    parser.add_argument(
        "--symbols",
        type=str,
        help="Comma-separated pairs to track (e.g., ETH_USD,BTC_USD)",
        default=os.environ.get("SYMBOLS") or "ETH_USD",
    )
    parser.add_argument(
        "--sources",
        type=str,
        help=f"Comma-separated price sources. Available: {', '.join(available_sources)}",
        default=os.environ.get("SOURCES") or ",".join(DEFAULT_SOURCES),
    )
    parser.add_argument(
        "--update-interval",
        dest="update_interval",
        type=float,
        help=f"Seconds between price refreshes (default: {DEFAULT_UPDATE_INTERVAL})",
        default=float(os.environ.get("UPDATE_INTERVAL") or DEFAULT_UPDATE_INTERVAL),
    )
    parser.add_argument(
        "--stats-interval",
        dest="stats_interval",
        type=float,
        help=f"Seconds between market stats refreshes (default: {DEFAULT_STATS_INTERVAL})",
        default=float(os.environ.get("STATS_INTERVAL") or DEFAULT_STATS_INTERVAL),
    )
    parser.add_argument(
        "--cleanup-interval",
        dest="cleanup_interval",
        type=float,
        help=f"Seconds between cache sweeps (default: {DEFAULT_CLEANUP_INTERVAL})",
        default=float(os.environ.get("CLEANUP_INTERVAL") or DEFAULT_CLEANUP_INTERVAL),
    )
    parser.add_argument(
        "--retention-days",
        dest="retention_days",
        type=float,
        help="Days to keep cached results (default: 7)",
        default=float(os.environ.get("RETENTION_DAYS") or "7"),
    )
    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for each price source request in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )
    parser.add_argument(
        "--probe-timeout",
        dest="probe_timeout",
        type=float,
        help="Timeout for content gateway probes in seconds (default: 5.0)",
        default=float(os.environ.get("PROBE_TIMEOUT") or "5.0"),
    )
    parser.add_argument(
        "--gateway",
        type=str,
        help=f"Content gateway URL prefix (default: {DEFAULT_GATEWAY_URL})",
        default=os.environ.get("IPFS_GATEWAY") or DEFAULT_GATEWAY_URL,
    )
    parser.add_argument(
        "--api-keys",
        dest="api_keys",
        type=str,
        help="Comma-separated API keys (e.g., coinmarketcap=xyz)",
        default=os.environ.get("API_KEYS"),
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh once, print status, prices and market stats as JSON, and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser


async def run_once(oracle: DRManagerOracle) -> dict:
    """Single refresh cycle used by --once."""
    try:
        await oracle.refresh_prices()
        oracle.get_market_stats()
        return {
            "status": oracle.get_status(),
            "prices": {
                p.symbol: oracle.get_price_data(p.symbol) for p in oracle.symbols
            },
            "market_stats": oracle.get_market_data(),
        }
    finally:
        await oracle.close()


def main() -> None:
    """Main entry point for the DRManager Oracle CLI."""
    available_sources = get_available_fetchers()
    parser = build_parser(available_sources)
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    for name in ("update_interval", "stats_interval", "cleanup_interval",
                 "retention_days", "fetch_timeout", "probe_timeout"):
        if getattr(args, name) <= 0:
            parser.error(f"--{name.replace('_', '-')} must be positive")

    symbols = [s.strip() for s in args.symbols.split(",") if s.strip()]
    sources = [s.strip().lower() for s in args.sources.split(",") if s.strip()]

    if not symbols:
        parser.error("At least one symbol must be specified")
    if not sources:
        parser.error("At least one source must be specified")

    invalid_sources = [s for s in sources if s not in available_sources]
    if invalid_sources:
        parser.error(
            f"Unknown sources: {invalid_sources}. "
            f"Available: {', '.join(available_sources)}"
        )

    api_keys = parse_env_api_keys()
    api_keys.update(parse_api_keys(args.api_keys))

    logger.info("=" * 60)
    logger.info("DRManager Oracle")
    logger.info("=" * 60)
    logger.info(f"Symbols:           {', '.join(symbols)}")
    logger.info(f"Sources:           {', '.join(sources)}")
    logger.info(f"Update Interval:   {args.update_interval}s")
    logger.info(f"Stats Interval:    {args.stats_interval}s")
    logger.info(f"Cleanup Interval:  {args.cleanup_interval}s")
    logger.info(f"Retention:         {args.retention_days} days")
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    logger.info(f"Gateway:           {args.gateway}")
    if api_keys:
        logger.info(f"API Keys:          {', '.join(api_keys.keys())}")
    logger.info("=" * 60)

    try:
        oracle = DRManagerOracle(
            symbols=symbols,
            sources=sources,
            api_keys=api_keys,
            private_key=os.environ.get("PRIVATE_KEY") or None,
            update_interval=args.update_interval,
            stats_interval=args.stats_interval,
            cleanup_interval=args.cleanup_interval,
            retention_seconds=args.retention_days * 24 * 60 * 60,
            fetch_timeout=args.fetch_timeout,
            probe_timeout=args.probe_timeout,
            gateway_url=args.gateway,
        )
        if args.once:
            snapshot = asyncio.run(run_once(oracle))
            print(json.dumps(snapshot, indent=2))
        else:
            asyncio.run(oracle.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
