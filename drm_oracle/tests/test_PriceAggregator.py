"""Unit tests for PriceAggregator."""

import pytest

from drm_oracle.src.PriceAggregator import AggregationResult, PriceAggregator


class TestPriceAggregatorInit:
    """Test PriceAggregator initialization."""

    def test_default_values(self) -> None:
        """A single source is enough and outlier filtering is off by default."""
        agg = PriceAggregator()
        assert agg.min_sources == 1
        assert agg.max_deviation_percent is None

    def test_invalid_min_sources(self) -> None:
        with pytest.raises(ValueError, match="min_sources must be at least 1"):
            PriceAggregator(min_sources=0)

    def test_invalid_max_deviation(self) -> None:
        with pytest.raises(ValueError, match="max_deviation_percent must be positive"):
            PriceAggregator(max_deviation_percent=0)

        with pytest.raises(ValueError, match="max_deviation_percent must be positive"):
            PriceAggregator(max_deviation_percent=-1)


class TestPriceAggregatorMedian:
    """Test median calculation."""

    def test_median_odd(self) -> None:
        """Odd count takes the middle element."""
        result = PriceAggregator().aggregate({"a": 100.0, "b": 200.0, "c": 300.0})

        assert result.success
        assert result.price == 200.0
        assert result.metadata["count"] == 3

    def test_median_even(self) -> None:
        """Even count takes the mean of the two middle elements."""
        result = PriceAggregator().aggregate({"a": 100.0, "b": 200.0})

        assert result.success
        assert result.price == 150.0

    def test_median_unsorted_input(self) -> None:
        """Input order should not matter."""
        result = PriceAggregator().aggregate(
            {"a": 400.0, "b": 100.0, "c": 300.0, "d": 200.0}
        )
        assert result.price == 250.0

    def test_single_source(self) -> None:
        result = PriceAggregator().aggregate({"a": 1999.5})
        assert result.price == 1999.5

    def test_wide_spread_kept_without_filter(self) -> None:
        """Without a deviation limit every valid source counts."""
        result = PriceAggregator().aggregate({"a": 100.0, "b": 101.0, "rogue": 500.0})

        assert result.price == 101.0
        assert result.metadata["dropped"] == {}
        assert set(result.metadata["sources"]) == {"a", "b", "rogue"}


class TestPriceAggregatorInvalidPrices:
    """Test handling of missing and non-positive prices."""

    def test_empty_prices(self) -> None:
        result = PriceAggregator().aggregate({})

        assert not result.success
        assert result.error == "insufficient_sources"
        assert result.metadata["available"] == 0

    def test_all_none_prices(self) -> None:
        result = PriceAggregator().aggregate({"a": None, "b": None})

        assert not result.success
        assert result.error == "insufficient_sources"

    def test_invalid_prices_filtered(self) -> None:
        """None, zero and negative prices should be dropped before the median."""
        result = PriceAggregator().aggregate({
            "valid1": 100.0,
            "valid2": 101.0,
            "none": None,
            "zero": 0.0,
            "negative": -50.0,
        })

        assert result.success
        assert result.price == 100.5
        assert result.metadata["count"] == 2

    def test_min_sources_enforced(self) -> None:
        result = PriceAggregator(min_sources=2).aggregate({"a": 100.0, "b": None})

        assert not result.success
        assert result.metadata["available"] == 1


class TestPriceAggregatorOutlierDetection:
    """Test optional outlier exclusion."""

    def test_outlier_excluded(self) -> None:
        agg = PriceAggregator(max_deviation_percent=5.0)
        result = agg.aggregate({"a": 100.0, "b": 101.0, "rogue": 200.0})

        assert result.success
        assert result.price == 100.5
        assert result.metadata["dropped"] == {"rogue": 200.0}
        assert result.metadata["initial_median"] == 101.0

    def test_borderline_deviation_included(self) -> None:
        """Price exactly at the deviation threshold should be kept."""
        agg = PriceAggregator(max_deviation_percent=5.0)
        result = agg.aggregate({"a": 100.0, "b": 105.0, "c": 95.0})

        assert result.metadata["count"] == 3

    def test_too_many_outliers_fails(self) -> None:
        agg = PriceAggregator(min_sources=2, max_deviation_percent=1.0)
        result = agg.aggregate({"a": 100.0, "b": 150.0})

        assert not result.success
        assert result.error == "too_many_outliers"


class TestAggregationResult:
    """Test AggregationResult properties."""

    def test_success_property(self) -> None:
        assert AggregationResult(price=100.0, metadata={"sources": ["a"]}).success
        assert not AggregationResult(price=None, metadata={"error": "x"}).success

    def test_error_property(self) -> None:
        assert AggregationResult(price=100.0, metadata={}).error is None
        error_result = AggregationResult(
            price=None, metadata={"error": "insufficient_sources"}
        )
        assert error_result.error == "insufficient_sources"
