"""
Price fetchers for the aggregated price feed.

Usage:
    from drm_oracle.src.fetchers import get_fetcher, get_available_fetchers

    available = get_available_fetchers()
    # ['binance', 'coingecko', 'coinmarketcap']

    fetcher = get_fetcher("coingecko")
    price = await fetcher.fetch(AssetPair("eth", "usd"))

    fetcher = get_fetcher("coinmarketcap", api_key="your-api-key")
"""

from .base import (
    FETCHER_REGISTRY,
    BaseFetcher,
    FetcherConfigError,
    FetcherError,
    FetcherHTTPError,
    get_available_fetchers,
    get_fetcher,
    register_fetcher,
)

# Import all fetcher implementations to trigger registration
from .binance import BinanceFetcher
from .coingecko import CoinGeckoFetcher
from .coinmarketcap import CoinMarketCapFetcher

__all__ = [
    "BaseFetcher",
    "FetcherError",
    "FetcherConfigError",
    "FetcherHTTPError",
    "register_fetcher",
    "get_fetcher",
    "get_available_fetchers",
    "FETCHER_REGISTRY",
    "BinanceFetcher",
    "CoinGeckoFetcher",
    "CoinMarketCapFetcher",
]
