"""Unit tests for MarketStatsEstimator."""

import pytest

from drm_oracle.src.MarketStats import MARKET_STATS_KEY, MarketStatsEstimator
from drm_oracle.src.PriceFeed import PriceQuote
from drm_oracle.src.TimestampedCache import TimestampedCache


def cache_price(cache: TimestampedCache, price: float) -> None:
    cache.put("ETH_USD", PriceQuote(symbol="ETH_USD", price=price, timestamp=0.0))


@pytest.fixture
def price_cache() -> TimestampedCache:
    return TimestampedCache()


@pytest.fixture
def estimator(price_cache) -> MarketStatsEstimator:
    return MarketStatsEstimator(price_cache=price_cache, cache=TimestampedCache())


class TestMarketStatsReport:
    def test_report_shape(self, estimator) -> None:
        report = estimator.generate()

        assert set(report) == {
            "average_license_price",
            "total_market_volume",
            "popular_categories",
            "price_recommendations",
            "timestamp",
        }
        assert report["average_license_price"]["video"] == 0.05
        assert report["total_market_volume"]["daily_transactions"] == 15
        assert [c["category"] for c in report["popular_categories"]] == [
            "image",
            "document",
            "video",
            "audio",
        ]

    def test_report_cached(self, estimator) -> None:
        report = estimator.generate()

        entry = estimator.cache.get(MARKET_STATS_KEY)
        assert entry.value is report
        assert entry.timestamp == report["timestamp"]

    def test_reports_do_not_share_tables(self, estimator) -> None:
        first = estimator.generate()
        first["popular_categories"][0]["count"] = 0

        assert estimator.generate()["popular_categories"][0]["count"] == 45


class TestPriceRecommendations:
    def test_default_price_without_cache(self, estimator) -> None:
        recs = estimator.generate()["price_recommendations"]

        assert estimator.reference_price() == 2000.0
        assert recs["suggested_prices_eth"]["document"] == 0.005
        assert set(recs["suggested_prices_eth"]) == {"image", "document", "video", "audio"}
        assert recs["market_trend"] == "stable"
        assert recs["confidence"] == 0.75

    def test_uses_cached_price(self, estimator, price_cache) -> None:
        cache_price(price_cache, 1000.0)

        prices = estimator.generate()["price_recommendations"]["suggested_prices_eth"]
        assert prices == {
            "image": 0.005,
            "document": 0.01,
            "video": 0.025,
            "audio": 0.015,
        }

    def test_scales_inversely_with_price(self, estimator, price_cache) -> None:
        """Doubling the ETH price halves every recommendation."""
        cache_price(price_cache, 500.0)
        low = estimator.generate()["price_recommendations"]["suggested_prices_eth"]

        cache_price(price_cache, 1000.0)
        high = estimator.generate()["price_recommendations"]["suggested_prices_eth"]

        for category in low:
            assert high[category] == pytest.approx(low[category] / 2, abs=0.001)

    def test_non_positive_cached_price_falls_back(self, estimator, price_cache) -> None:
        cache_price(price_cache, 0.0)
        assert estimator.reference_price() == 2000.0

    def test_invalid_default_price(self, price_cache) -> None:
        with pytest.raises(ValueError, match="default_price must be positive"):
            MarketStatsEstimator(price_cache, TimestampedCache(), default_price=0)
