"""PriceFeed: Multi-source price lookup with median aggregation.

One call to :meth:`PriceFeed.get_price`:
    - Fetches the pair from every configured source concurrently
    - Bounds each source with its own timeout
    - Treats None, non-positive values, exceptions and timeouts as a
      failed source (logged, never raised)
    - Takes the median of the survivors via PriceAggregator
    - Caches the quote under the pair symbol, or raises
      PriceUnavailableError (without touching the cache) if nothing came back

Sources are tried exactly once per call; there are no retries.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .AssetPair import AssetPair
from .PriceAggregator import PriceAggregator
from .TimestampedCache import CacheEntry, TimestampedCache

if TYPE_CHECKING:
    from .fetchers import BaseFetcher

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0


class PriceUnavailableError(Exception):
    """Raised when no price source returned usable data.

    :ivar symbol: Symbol that could not be priced.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No price data available for {symbol}")


@dataclass(frozen=True)
class PriceObservation:
    """A single successful source reading.

    :ivar source: Source name.
    :ivar price: Reported price.
    :ivar timestamp: Unix time the reading completed.
    """

    source: str
    price: float
    timestamp: float


@dataclass(frozen=True)
class PriceQuote:
    """Aggregated price stored in the cache.

    :ivar symbol: Pair symbol (e.g., ETH_USD).
    :ivar price: Median price.
    :ivar timestamp: Unix time of aggregation.
    :ivar sources: Sources that contributed to the median.
    """

    symbol: str
    price: float
    timestamp: float
    sources: list[str] = field(default_factory=list)


class PriceFeed:
    """Aggregated price feed over a set of fetchers.

    :ivar fetchers: Dict mapping source names to fetcher instances.
    :ivar cache: Cache of PriceQuote values keyed by symbol.
    :ivar fetch_timeout: Per-source timeout in seconds.
    :ivar aggregator: Median aggregator.
    """

    def __init__(
        self,
        fetchers: dict[str, BaseFetcher],
        cache: TimestampedCache,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        aggregator: PriceAggregator | None = None,
    ) -> None:
        """Initialize the feed.

        :param fetchers: Dict mapping source names to fetcher instances.
        :param cache: Cache receiving the latest quote per symbol.
        :param fetch_timeout: Timeout applied to each source fetch (default: 10.0).
        :param aggregator: Aggregator to use; defaults to a plain median.
        :raises ValueError: If no fetchers are given or timeout is not positive.
        """
        if not fetchers:
            raise ValueError("At least one price source must be configured")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self.fetchers = fetchers
        self.cache = cache
        self.fetch_timeout = fetch_timeout
        self.aggregator = aggregator or PriceAggregator()

    async def collect(self, pair: AssetPair) -> list[PriceObservation]:
        """Fetch the pair from all sources and keep the successful readings.

        :param pair: Pair to price.
        :returns: Observations in source configuration order.
        """
        sources = list(self.fetchers)
        prices = await asyncio.gather(
            *(self._fetch_single(source, pair) for source in sources)
        )

        observations: list[PriceObservation] = []
        for source, price in zip(sources, prices, strict=True):
            if price is None:
                continue
            observations.append(
                PriceObservation(source=source, price=price, timestamp=time.time())
            )
        return observations

    async def get_price(self, symbol: str | AssetPair) -> float:
        """Fetch, aggregate and cache the current price.

        :param symbol: Pair symbol (``ETH_USD``) or AssetPair.
        :returns: Median price across successful sources.
        :raises PriceUnavailableError: If every source failed.
        """
        pair = symbol if isinstance(symbol, AssetPair) else AssetPair.from_string(symbol)

        observations = await self.collect(pair)
        result = self.aggregator.aggregate({o.source: o.price for o in observations})

        if not result.success:
            logger.warning(
                f"{pair}: No usable price ({result.error}): {result.metadata}"
            )
            raise PriceUnavailableError(pair.symbol)

        price = result.price
        assert price is not None
        sources = list(result.metadata.get("sources", []))
        quote = PriceQuote(
            symbol=pair.symbol,
            price=price,
            timestamp=time.time(),
            sources=sources,
        )
        self.cache.put(pair.symbol, quote, timestamp=quote.timestamp)

        breakdown = ", ".join(f"{o.source}=${o.price:.2f}" for o in observations)
        logger.info(f"{pair}: ${price:.2f} (median of [{breakdown}])")
        return price

    def get_cached(self, symbol: str) -> CacheEntry | None:
        """Return the cached quote entry for a symbol without fetching.

        :param symbol: Pair symbol (``ETH_USD`` or ``eth/usd``).
        :returns: Cache entry holding a PriceQuote, or None.
        """
        return self.cache.get(AssetPair.from_string(symbol).symbol)

    async def _fetch_single(self, source: str, pair: AssetPair) -> float | None:
        """Fetch one source with timeout, converting any failure to None."""
        fetcher = self.fetchers[source]
        try:
            price = await asyncio.wait_for(
                fetcher.fetch(pair), timeout=self.fetch_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[{source}] Timeout fetching {pair}")
            return None
        except Exception as e:
            logger.warning(f"[{source}] Error fetching {pair}: {e}")
            return None

        if price is None:
            return None
        if (
            isinstance(price, bool)
            or not isinstance(price, (int, float))
            or not math.isfinite(price)
            or price <= 0
        ):
            logger.warning(f"[{source}] Invalid price for {pair}: {price!r}")
            return None
        return float(price)
