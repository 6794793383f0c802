"""Unit tests for DRManagerOracle."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from drm_oracle.src.DRManagerOracle import DRManagerOracle
from drm_oracle.src.fetchers import CoinGeckoFetcher
from drm_oracle.src.OracleSigner import SignerConfigError

PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


@pytest.fixture
def fetchers(make_fetcher):
    return {"a": make_fetcher(1900.0), "b": make_fetcher(2100.0), "c": make_fetcher(2000.0)}


@pytest.fixture
def oracle(fetchers, make_gateway) -> DRManagerOracle:
    return DRManagerOracle(
        fetchers=fetchers,
        gateway=make_gateway(True),
        private_key=PRIVATE_KEY,
    )


def content(**overrides) -> dict:
    data = {
        "id": 1,
        "hash": "0xcontent",
        "ipfsHash": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
        "fileHash": "0x" + "12" * 32,
        "title": "Song",
        "userAddress": ADDRESS,
        "timestamp": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat(),
    }
    data.update(overrides)
    return data


class TestOracleInit:
    def test_defaults(self) -> None:
        oracle = DRManagerOracle()

        assert [p.symbol for p in oracle.symbols] == ["ETH_USD"]
        assert oracle.sources == ["coingecko", "coinmarketcap", "binance"]
        assert oracle.address is None
        assert oracle.price_feed.fetch_timeout == 10.0

    def test_api_keys_and_timeout_forwarded(self) -> None:
        oracle = DRManagerOracle(
            sources=["coingecko"], api_keys={"coingecko": "demo:k"}, fetch_timeout=4.0
        )
        fetcher = oracle.price_feed.fetchers["coingecko"]

        assert isinstance(fetcher, CoinGeckoFetcher)
        assert fetcher.api_key == "k"
        assert fetcher.timeout == 4.0

    def test_unknown_source(self) -> None:
        with pytest.raises(ValueError, match="Unknown sources"):
            DRManagerOracle(sources=["coingecko", "nope"])

    def test_no_symbols(self, fetchers) -> None:
        with pytest.raises(ValueError, match="At least one symbol"):
            DRManagerOracle(symbols=[], fetchers=fetchers)

    def test_invalid_interval(self, fetchers) -> None:
        with pytest.raises(ValueError, match="update_interval must be positive"):
            DRManagerOracle(fetchers=fetchers, update_interval=0)

    def test_caches_are_separate(self, oracle) -> None:
        caches = {id(oracle.price_cache), id(oracle.verification_cache), id(oracle.data_cache)}
        assert len(caches) == 3


class TestOraclePrices:
    def test_no_price_before_refresh(self, oracle) -> None:
        assert oracle.get_price_data() is None

    @pytest.mark.asyncio
    async def test_refresh_and_read(self, oracle) -> None:
        assert await oracle.refresh_prices() == {"ETH_USD": 2000.0}

        data = oracle.get_price_data("ETH_USD")
        assert data["symbol"] == "ETH_USD"
        assert data["price"] == 2000.0
        assert data["oracle"] == ADDRESS
        assert data["age"] >= 0
        assert data["sources"] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_reads_between_refreshes_identical(self, oracle, fetchers) -> None:
        await oracle.refresh_prices()
        fetchers["c"].price = 5000.0

        first = oracle.get_price_data()
        second = oracle.get_price_data()
        assert first["price"] == second["price"] == 2000.0
        assert first["timestamp"] == second["timestamp"]

    @pytest.mark.asyncio
    async def test_refresh_survives_total_failure(self, make_fetcher, make_gateway) -> None:
        oracle = DRManagerOracle(
            fetchers={"down": make_fetcher(None)}, gateway=make_gateway(True)
        )

        assert await oracle.refresh_prices() == {"ETH_USD": None}
        assert oracle.get_price_data() is None


class TestOracleVerification:
    @pytest.mark.asyncio
    async def test_verify_dict_payload(self, oracle) -> None:
        result = await oracle.verify_content(content())

        assert result.verified is True
        assert result.oracle == ADDRESS

        cached = oracle.get_verification_result("0xcontent")
        assert cached["verified"] is True
        assert cached["confidence"] == pytest.approx(0.825)
        assert len(cached["methods"]) == 4

    def test_unknown_verification(self, oracle) -> None:
        assert oracle.get_verification_result("missing") is None


class TestOracleMarketStats:
    @pytest.mark.asyncio
    async def test_stats_follow_cached_price(self, make_fetcher, make_gateway) -> None:
        oracle = DRManagerOracle(
            fetchers={"a": make_fetcher(1000.0)}, gateway=make_gateway(True)
        )
        assert oracle.get_market_data() is None

        await oracle.refresh_prices()
        oracle.get_market_stats()

        prices = oracle.get_market_data()["price_recommendations"]["suggested_prices_eth"]
        assert prices["image"] == 0.005
        assert prices["video"] == 0.025

    def test_market_data_is_a_copy(self, oracle) -> None:
        oracle.get_market_stats()

        report = oracle.get_market_data()
        report["popular_categories"].clear()
        report["price_recommendations"]["suggested_prices_eth"]["image"] = 99.0

        fresh = oracle.get_market_data()
        assert len(fresh["popular_categories"]) == 4
        assert fresh["price_recommendations"]["suggested_prices_eth"]["image"] != 99.0


class TestOracleSigning:
    def test_sign_and_verify(self, oracle) -> None:
        payload = oracle.sign_data({"symbol": "ETH_USD", "price": 2000.0})

        assert payload.oracle == ADDRESS
        assert oracle.verify_signature(payload)
        assert oracle.verify_signature(payload.to_dict())

    def test_sign_without_key(self, fetchers, make_gateway) -> None:
        oracle = DRManagerOracle(fetchers=fetchers, gateway=make_gateway(True))
        with pytest.raises(SignerConfigError):
            oracle.sign_data("x")


class TestOracleStatusAndCleanup:
    @pytest.mark.asyncio
    async def test_status(self, oracle) -> None:
        status = oracle.get_status()
        assert status["name"] == "DRManager Oracle"
        assert status["status"] == "active"
        assert status["cache_size"] == {"data": 0, "price": 0, "verification": 0}
        assert status["last_updates"] == {"eth_price": None, "market_stats": None}
        assert status["config"]["confidence_threshold"] == 0.8
        assert status["config"]["data_retention_period"] == 7 * 24 * 60 * 60

        await oracle.refresh_prices()
        oracle.get_market_stats()
        status = oracle.get_status()
        assert status["cache_size"]["price"] == 1
        assert status["cache_size"]["data"] == 1
        assert status["last_updates"]["eth_price"] is not None

    @pytest.mark.asyncio
    async def test_clean_cache(self, oracle) -> None:
        await oracle.refresh_prices()
        await oracle.verify_content(content())
        oracle.get_market_stats()

        assert oracle.clean_cache() == 0

        future = oracle.price_cache.get("ETH_USD").timestamp + oracle.retention_seconds + 1
        assert oracle.clean_cache(now=future) == 3
        assert oracle.get_price_data() is None
        assert oracle.get_verification_result("0xcontent") is None
        assert oracle.get_market_data() is None


class TestOracleRun:
    @pytest.mark.asyncio
    async def test_loops_refresh_until_cancelled(self, make_fetcher, make_gateway) -> None:
        fetcher = make_fetcher(1500.0)
        oracle = DRManagerOracle(
            fetchers={"a": fetcher},
            gateway=make_gateway(True),
            update_interval=0.01,
            stats_interval=0.01,
            cleanup_interval=0.01,
        )

        task = asyncio.create_task(oracle.run())
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(fetcher.calls) >= 2
        assert oracle.get_price_data()["price"] == 1500.0
        assert oracle.get_market_data() is not None

    @pytest.mark.asyncio
    async def test_failing_iteration_does_not_stop_loop(self, oracle) -> None:
        calls = []

        def flaky() -> None:
            calls.append(1)
            raise RuntimeError("transient")

        task = asyncio.create_task(oracle._periodic("Flaky", 0.01, flaky))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(calls) >= 2
