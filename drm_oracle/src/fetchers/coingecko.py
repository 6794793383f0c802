"""CoinGecko fetcher.

Endpoint: https://api.coingecko.com/api/v3/simple/price?ids={id}&vs_currencies={quote}
Rate Limit: 30 calls/min (free), higher with API key
"""

import logging

from ..AssetPair import AssetPair
from .base import BaseFetcher, FetcherError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class CoinGeckoFetcher(BaseFetcher):
    """Fetcher for the CoinGecko simple price API.

    Works without a key. A key prefixed with "demo:" is sent as a demo key
    against the free host; any other key targets the pro host.
    """

    name = "coingecko"
    BASE_URL_FREE = "https://api.coingecko.com/api/v3"
    BASE_URL_PRO = "https://pro-api.coingecko.com/api/v3"

    COIN_IDS = {
        "btc": "bitcoin",
        "eth": "ethereum",
        "usdt": "tether",
        "usdc": "usd-coin",
        "sol": "solana",
        "matic": "matic-network",
    }

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self._is_demo = False
        if api_key and api_key.lower().startswith("demo:"):
            self._is_demo = True
            api_key = api_key[5:]
        super().__init__(api_key=api_key, timeout=timeout)

    @property
    def base_url(self) -> str:
        if not self.has_api_key or self._is_demo:
            return self.BASE_URL_FREE
        return self.BASE_URL_PRO

    def _headers(self) -> dict[str, str] | None:
        if not self.has_api_key:
            return None
        header = "x-cg-demo-api-key" if self._is_demo else "x-cg-pro-api-key"
        return {header: self.api_key}

    async def fetch(self, pair: AssetPair) -> float | None:
        """Fetch price from CoinGecko.

        :param pair: Pair to price.
        :returns: Current price or None on failure.
        """
        coin_id = self.COIN_IDS.get(pair.base)
        if not coin_id:
            logger.warning(f"[coingecko] Unknown coin: {pair.base}")
            return None

        try:
            response = await self._get(
                f"{self.base_url}/simple/price",
                params={"ids": coin_id, "vs_currencies": pair.quote},
                headers=self._headers(),
            )
            data = response.json()
            return float(data[coin_id][pair.quote])
        except FetcherError as e:
            logger.warning(f"[coingecko] Failed to fetch {pair}: {e}")
            return None
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"[coingecko] Failed to parse response for {pair}: {e}")
            return None
