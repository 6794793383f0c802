"""DRManagerOracle: Oracle service for the DRManager licensing platform.

Wires the price feed, content verifier, market statistics estimator and
signer together, each over its own cache, and keeps them fresh.

Architecture:
    - One event loop; request handlers and refresh loops share it
    - Price refresh every update_interval (default 30s)
    - Market stats refresh every stats_interval (default 5 min)
    - Cache sweep every cleanup_interval (default 1h) against the
      retention period (default 7 days)
    - A failed refresh iteration is logged and the loop carries on
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Awaitable, Callable

from .AssetPair import AssetPair
from .ContentVerifier import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    AggregateVerification,
    ContentRecord,
    ContentVerifier,
)
from .fetchers import BaseFetcher, get_available_fetchers, get_fetcher
from .IpfsGateway import DEFAULT_GATEWAY_URL, DEFAULT_PROBE_TIMEOUT, IpfsGateway
from .MarketStats import MARKET_STATS_KEY, REFERENCE_SYMBOL, MarketStatsEstimator
from .OracleSigner import OracleSigner, SignedPayload
from .PriceFeed import DEFAULT_FETCH_TIMEOUT, PriceFeed, PriceUnavailableError
from .TimestampedCache import DEFAULT_RETENTION_SECONDS, TimestampedCache

logger = logging.getLogger(__name__)

ORACLE_NAME = "DRManager Oracle"
ORACLE_VERSION = "1.0.0"

DEFAULT_SOURCES = ["coingecko", "coinmarketcap", "binance"]
DEFAULT_UPDATE_INTERVAL = 30
DEFAULT_STATS_INTERVAL = 5 * 60
DEFAULT_CLEANUP_INTERVAL = 60 * 60


class DRManagerOracle:
    """Oracle service facade.

    :ivar symbols: Pairs refreshed by the price loop.
    :ivar price_cache: Latest PriceQuote per symbol.
    :ivar verification_cache: AggregateVerification per content id.
    :ivar data_cache: Derived reports (market stats).
    :ivar price_feed: Multi-source price feed.
    :ivar verifier: Content authenticity verifier.
    :ivar market_stats: Market statistics estimator.
    :ivar signer: Oracle wallet signer.
    """

    def __init__(
        self,
        symbols: list[str] | None = None,
        sources: list[str] | None = None,
        api_keys: dict[str, str] | None = None,
        private_key: str | None = None,
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
        stats_interval: float = DEFAULT_STATS_INTERVAL,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        fetchers: dict[str, BaseFetcher] | None = None,
        gateway: IpfsGateway | None = None,
    ) -> None:
        """Initialize the oracle.

        :param symbols: Pairs to keep refreshed (default: ["ETH_USD"]).
        :param sources: Price source names (default: coingecko, coinmarketcap, binance).
        :param api_keys: Dict mapping source names to API keys.
        :param private_key: Oracle wallet key; signing is disabled without it.
        :param update_interval: Seconds between price refreshes (default: 30).
        :param stats_interval: Seconds between market stats refreshes (default: 300).
        :param cleanup_interval: Seconds between cache sweeps (default: 3600).
        :param retention_seconds: Cache retention period (default: 7 days).
        :param fetch_timeout: Per-source price fetch timeout (default: 10.0).
        :param probe_timeout: Gateway probe timeout (default: 5.0).
        :param gateway_url: Content gateway used for reachability probes.
        :param confidence_threshold: Verification pass mark (default: 0.8).
        :param fetchers: Pre-built fetchers, replacing ``sources``.
        :param gateway: Pre-built gateway probe, replacing ``gateway_url``.
        :raises ValueError: If sources, symbols or intervals are invalid.
        """
        if symbols is None:
            symbols = [REFERENCE_SYMBOL]
        self.symbols = [AssetPair.from_string(s) for s in symbols]
        if not self.symbols:
            raise ValueError("At least one symbol must be specified")

        for name, value in (
            ("update_interval", update_interval),
            ("stats_interval", stats_interval),
            ("cleanup_interval", cleanup_interval),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be positive")

        self.update_interval = update_interval
        self.stats_interval = stats_interval
        self.cleanup_interval = cleanup_interval
        self.retention_seconds = retention_seconds
        self.confidence_threshold = confidence_threshold

        if fetchers is None:
            sources = sources or list(DEFAULT_SOURCES)
            available = get_available_fetchers()
            invalid = [s for s in sources if s not in available]
            if invalid:
                raise ValueError(f"Unknown sources: {invalid}. Available: {available}")
            api_keys = api_keys or {}
            fetchers = {
                s: get_fetcher(s, api_key=api_keys.get(s), timeout=fetch_timeout)
                for s in sources
            }
        self.sources = list(fetchers)

        self.signer = OracleSigner(private_key=private_key)

        self.price_cache = TimestampedCache(retention_seconds)
        self.verification_cache = TimestampedCache(retention_seconds)
        self.data_cache = TimestampedCache(retention_seconds)

        self.price_feed = PriceFeed(
            fetchers=fetchers,
            cache=self.price_cache,
            fetch_timeout=fetch_timeout,
        )
        self.verifier = ContentVerifier(
            cache=self.verification_cache,
            gateway=gateway or IpfsGateway(gateway_url, timeout=probe_timeout),
            confidence_threshold=confidence_threshold,
            oracle_address=self.signer.address,
        )
        self.market_stats = MarketStatsEstimator(
            price_cache=self.price_cache,
            cache=self.data_cache,
        )

        self._started = time.monotonic()

        logger.info(
            f"{ORACLE_NAME} initialized: symbols={[str(p) for p in self.symbols]}, "
            f"sources={self.sources}, address={self.address}"
        )
        if not self.signer.can_sign:
            logger.warning("No PRIVATE_KEY configured; signing is disabled")

    @property
    def address(self) -> str | None:
        return self.signer.address

    # Data collection

    async def get_price(self, symbol: str = REFERENCE_SYMBOL) -> float:
        """Fetch and cache a fresh aggregated price.

        :raises PriceUnavailableError: If every source failed.
        """
        return await self.price_feed.get_price(symbol)

    async def refresh_prices(self) -> dict[str, float | None]:
        """Refresh every configured symbol.

        :returns: Dict mapping symbol to new price, or None where unavailable.
        """
        prices: dict[str, float | None] = {}
        for pair in self.symbols:
            try:
                prices[pair.symbol] = await self.price_feed.get_price(pair)
            except PriceUnavailableError as e:
                logger.warning(f"Price update failed: {e}")
                prices[pair.symbol] = None
        return prices

    async def verify_content(
        self, record: ContentRecord | dict[str, Any]
    ) -> AggregateVerification:
        if isinstance(record, dict):
            record = ContentRecord.from_dict(record)
        return await self.verifier.verify(record)

    def get_market_stats(self) -> dict[str, Any]:
        return self.market_stats.generate()

    def clean_cache(self, now: float | None = None) -> int:
        """Sweep all caches.

        :returns: Total number of evicted entries.
        """
        evicted = sum(
            cache.sweep(now)
            for cache in (self.price_cache, self.verification_cache, self.data_cache)
        )
        logger.debug(f"Cache sweep evicted {evicted} entries")
        return evicted

    # Signing

    def sign_data(self, data: Any) -> SignedPayload:
        """Sign a payload with the oracle wallet.

        :raises SignerConfigError: If no private key is configured.
        """
        return self.signer.sign_data(data)

    def verify_signature(self, payload: SignedPayload | dict[str, Any]) -> bool:
        return self.signer.verify_signature(payload)

    # Read accessors

    def get_status(self) -> dict[str, Any]:
        price_entry = self.price_cache.get(REFERENCE_SYMBOL)
        stats_entry = self.data_cache.get(MARKET_STATS_KEY)
        return {
            "name": ORACLE_NAME,
            "version": ORACLE_VERSION,
            "address": self.address,
            "status": "active",
            "uptime": time.monotonic() - self._started,
            "cache_size": {
                "data": len(self.data_cache),
                "price": len(self.price_cache),
                "verification": len(self.verification_cache),
            },
            "last_updates": {
                "eth_price": price_entry.timestamp if price_entry else None,
                "market_stats": stats_entry.timestamp if stats_entry else None,
            },
            "config": {
                "update_interval": self.update_interval,
                "stats_interval": self.stats_interval,
                "cleanup_interval": self.cleanup_interval,
                "data_retention_period": self.retention_seconds,
                "confidence_threshold": self.confidence_threshold,
                "symbols": [p.symbol for p in self.symbols],
                "sources": self.sources,
            },
        }

    def get_price_data(self, symbol: str = REFERENCE_SYMBOL) -> dict[str, Any] | None:
        """Return the cached price for a symbol.

        :returns: Dict with symbol, price, timestamp, age (seconds) and oracle,
            or None if nothing is cached.
        """
        entry = self.price_feed.get_cached(symbol)
        if entry is None:
            return None
        quote = entry.value
        return {
            "symbol": quote.symbol,
            "price": quote.price,
            "timestamp": entry.timestamp,
            "age": entry.age(),
            "sources": list(quote.sources),
            "oracle": self.address,
        }

    def get_verification_result(self, content_id: str) -> dict[str, Any] | None:
        entry = self.verifier.get_cached(content_id)
        return entry.value.to_dict() if entry else None

    def get_market_data(self) -> dict[str, Any] | None:
        entry = self.data_cache.get(MARKET_STATS_KEY)
        return copy.deepcopy(entry.value) if entry else None

    # Periodic updates

    async def _periodic(
        self,
        name: str,
        interval: float,
        task: Callable[[], Awaitable[Any] | Any],
    ) -> None:
        """Run ``task`` now and then every ``interval`` seconds, forever."""
        while True:
            try:
                result = task()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"{name} update failed: {e}")
            await asyncio.sleep(interval)

    async def run(self) -> None:
        """Run the refresh loops until cancelled."""
        logger.info("Oracle data updates started")
        try:
            await asyncio.gather(
                self._periodic("Price", self.update_interval, self.refresh_prices),
                self._periodic("Market stats", self.stats_interval, self.get_market_stats),
                self._periodic("Cache cleanup", self.cleanup_interval, self.clean_cache),
            )
        finally:
            await self.close()

    async def close(self) -> None:
        await BaseFetcher.close_shared_client()
