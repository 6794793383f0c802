"""MarketStats: License market snapshot for the DRManager marketplace.

The averages, volume and category figures are fixed heuristics until the
marketplace database feeds them. Price recommendations are the only live
part: fixed USD targets converted to ETH at the latest cached ETH_USD price.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any

from .PriceFeed import PriceQuote
from .TimestampedCache import TimestampedCache

logger = logging.getLogger(__name__)

MARKET_STATS_KEY = "market_stats"
REFERENCE_SYMBOL = "ETH_USD"

# Used when no ETH_USD quote has been cached yet.
DEFAULT_ETH_PRICE = 2000.0

# Suggested license prices per category, in USD.
TARGET_PRICES_USD: dict[str, float] = {
    "image": 5.0,
    "document": 10.0,
    "video": 25.0,
    "audio": 15.0,
}

AVERAGE_LICENSE_PRICE_ETH: dict[str, float] = {
    "all_categories": 0.015,
    "image": 0.01,
    "document": 0.02,
    "video": 0.05,
    "audio": 0.03,
}

MARKET_VOLUME: dict[str, float | int] = {
    "total_volume_eth": 1.25,
    "daily_transactions": 15,
    "active_licenses": 8,
}

POPULAR_CATEGORIES: list[dict[str, Any]] = [
    {"category": "image", "count": 45, "percentage": 60},
    {"category": "document", "count": 20, "percentage": 27},
    {"category": "video", "count": 8, "percentage": 10},
    {"category": "audio", "count": 2, "percentage": 3},
]


class MarketStatsEstimator:
    """Builds market reports from static tables and the cached ETH price.

    :ivar price_cache: Cache holding PriceQuote values keyed by symbol.
    :ivar cache: Cache receiving the report under ``market_stats``.
    """

    def __init__(
        self,
        price_cache: TimestampedCache,
        cache: TimestampedCache,
        default_price: float = DEFAULT_ETH_PRICE,
    ) -> None:
        if default_price <= 0:
            raise ValueError("default_price must be positive")
        self.price_cache = price_cache
        self.cache = cache
        self.default_price = default_price

    def reference_price(self) -> float:
        """Latest cached ETH_USD price, or the default when none is cached."""
        entry = self.price_cache.get(REFERENCE_SYMBOL)
        if entry is None:
            return self.default_price
        quote = entry.value
        price = quote.price if isinstance(quote, PriceQuote) else quote
        if not price or price <= 0:
            return self.default_price
        return float(price)

    def price_recommendations(self) -> dict[str, Any]:
        eth_price = self.reference_price()
        return {
            "suggested_prices_eth": {
                category: round(usd / eth_price, 3)
                for category, usd in TARGET_PRICES_USD.items()
            },
            "market_trend": "stable",
            "confidence": 0.75,
        }

    def generate(self) -> dict[str, Any]:
        """Build the report and store it in the cache.

        :returns: Report dict.
        """
        report = {
            "average_license_price": dict(AVERAGE_LICENSE_PRICE_ETH),
            "total_market_volume": dict(MARKET_VOLUME),
            "popular_categories": copy.deepcopy(POPULAR_CATEGORIES),
            "price_recommendations": self.price_recommendations(),
            "timestamp": time.time(),
        }
        self.cache.put(MARKET_STATS_KEY, report, timestamp=report["timestamp"])
        logger.debug(
            f"Market stats refreshed at ETH price ${self.reference_price():.2f}"
        )
        return report
