"""PriceAggregator: Median of the prices reported by independent sources.

Algorithm:
    1. Drop missing and non-positive prices
    2. Fail if fewer than min_sources remain
    3. Take the median (middle value, or mean of the two middle values)
    4. Optionally drop sources deviating > max_deviation_percent from that
       median and take the median of the survivors

.. code-block:: python

    >>> aggregator = PriceAggregator()
    >>> aggregator.aggregate({"coingecko": 100.0, "binance": 200.0, "cmc": 300.0}).price
    200.0
    >>> aggregator.aggregate({"coingecko": 100.0, "binance": 200.0}).price
    150.0
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import median as _median
from typing import TypedDict


class AggregationError(TypedDict, total=False):
    """Error information when aggregation fails.

    :ivar error: Error type identifier.
    :ivar available: Number of valid sources available.
    :ivar dropped: Dict of sources dropped as outliers.
    """

    error: str
    available: int
    dropped: dict[str, float]


class AggregationMetadata(TypedDict, total=False):
    """Metadata about a successful aggregation.

    :ivar sources: Sources used in the final median.
    :ivar dropped: Sources dropped as outliers.
    :ivar count: Number of sources used.
    :ivar initial_median: Median before outlier filtering.
    """

    sources: list[str]
    dropped: dict[str, float]
    count: int
    initial_median: float


@dataclass
class AggregationResult:
    """Result of price aggregation.

    :ivar price: Aggregated price, or None if aggregation failed.
    :ivar metadata: Additional information about the aggregation.
    """

    price: float | None
    metadata: AggregationMetadata | AggregationError

    @property
    def success(self) -> bool:
        return self.price is not None

    @property
    def error(self) -> str | None:
        if self.price is None:
            return self.metadata.get("error")
        return None


class PriceAggregator:
    """Median aggregation with optional outlier exclusion.

    :ivar min_sources: Minimum valid prices required.
    :ivar max_deviation_percent: Outlier cutoff, or None to keep every source.
    """

    def __init__(
        self,
        min_sources: int = 1,
        max_deviation_percent: float | None = None,
    ) -> None:
        """Initialize the aggregator.

        :param min_sources: Minimum number of valid prices (default 1).
        :param max_deviation_percent: Maximum deviation from the median before a
            source is dropped as an outlier. None disables the filter.
        :raises ValueError: If parameters are invalid.
        """
        if min_sources < 1:
            raise ValueError("min_sources must be at least 1")
        if max_deviation_percent is not None and max_deviation_percent <= 0:
            raise ValueError("max_deviation_percent must be positive if specified")

        self.min_sources = min_sources
        self.max_deviation_percent = max_deviation_percent

    def aggregate(self, prices: dict[str, float | None]) -> AggregationResult:
        """Aggregate per-source prices into a single median price.

        :param prices: Dict mapping source name to price (None if the fetch failed).
        :returns: AggregationResult with the median, or None price with error info.
        """
        valid: dict[str, float] = {
            k: v for k, v in prices.items() if v is not None and v > 0
        }

        if len(valid) < self.min_sources:
            return AggregationResult(
                price=None,
                metadata={
                    "error": "insufficient_sources",
                    "available": len(valid),
                },
            )

        initial_median = _median(valid.values())

        if self.max_deviation_percent is None:
            return AggregationResult(
                price=initial_median,
                metadata={
                    "sources": list(valid.keys()),
                    "dropped": {},
                    "count": len(valid),
                    "initial_median": initial_median,
                },
            )

        filtered: dict[str, float] = {}
        dropped: dict[str, float] = {}
        for source, price in valid.items():
            deviation = abs(price - initial_median) / initial_median * 100
            if deviation <= self.max_deviation_percent:
                filtered[source] = price
            else:
                dropped[source] = price

        if len(filtered) < self.min_sources:
            return AggregationResult(
                price=None,
                metadata={
                    "error": "too_many_outliers",
                    "dropped": dropped,
                },
            )

        return AggregationResult(
            price=_median(filtered.values()),
            metadata={
                "sources": list(filtered.keys()),
                "dropped": dropped,
                "count": len(filtered),
                "initial_median": initial_median,
            },
        )
