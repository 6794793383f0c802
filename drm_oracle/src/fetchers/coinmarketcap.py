"""CoinMarketCap fetcher.

Endpoint: https://pro-api.coinmarketcap.com/v2/cryptocurrency/quotes/latest
Rate Limit: 333 calls/day (free tier)
API Key: Required
"""

import logging

from ..AssetPair import AssetPair
from .base import BaseFetcher, FetcherError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class CoinMarketCapFetcher(BaseFetcher):
    """Fetcher for the CoinMarketCap quotes API.

    Without an API key every fetch fails (returns None) so the source simply
    drops out of the median.
    """

    name = "coinmarketcap"
    BASE_URL = "https://pro-api.coinmarketcap.com"

    async def fetch(self, pair: AssetPair) -> float | None:
        """Fetch price from CoinMarketCap.

        :param pair: Pair to price.
        :returns: Current price or None on failure.
        """
        if not self.has_api_key:
            logger.debug("[coinmarketcap] API key required but not provided")
            return None

        base, quote = pair.base.upper(), pair.quote.upper()
        try:
            response = await self._get(
                f"{self.BASE_URL}/v2/cryptocurrency/quotes/latest",
                params={"symbol": base, "convert": quote},
                headers={"X-CMC_PRO_API_KEY": self.api_key},
            )
            symbol_data = response.json()["data"][base]
            # CMC returns a list of matches, take the first one
            if isinstance(symbol_data, list):
                symbol_data = symbol_data[0]
            return float(symbol_data["quote"][quote]["price"])
        except FetcherError as e:
            logger.warning(f"[coinmarketcap] Failed to fetch {pair}: {e}")
            return None
        except (KeyError, ValueError, TypeError, IndexError) as e:
            logger.warning(f"[coinmarketcap] Failed to parse response for {pair}: {e}")
            return None
