"""Binance fetcher.

Endpoint: https://api.binance.com/api/v3/ticker/price?symbol={BASE}{QUOTE}
Rate Limit: High (no key required)

Binance lists most assets against USDT rather than USD, so a ``usd`` quote
is read from the ``{BASE}USDT`` ticker.
"""

import logging

from ..AssetPair import AssetPair
from .base import BaseFetcher, FetcherError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class BinanceFetcher(BaseFetcher):
    """Fetcher for the Binance public ticker endpoint."""

    name = "binance"
    BASE_URL = "https://api.binance.com/api/v3"

    # Quotes served through a stablecoin ticker
    QUOTE_ALIASES = {"usd": "USDT"}

    def ticker_symbol(self, pair: AssetPair) -> str:
        quote = self.QUOTE_ALIASES.get(pair.quote, pair.quote.upper())
        return f"{pair.base.upper()}{quote}"

    async def fetch(self, pair: AssetPair) -> float | None:
        """Fetch the last traded price from Binance.

        :param pair: Pair to price.
        :returns: Current price or None on failure.
        """
        symbol = self.ticker_symbol(pair)
        try:
            response = await self._get(
                f"{self.BASE_URL}/ticker/price", params={"symbol": symbol}
            )
            data = response.json()
            if "price" not in data:
                logger.warning(f"[binance] No price for {symbol}: {data}")
                return None
            return float(data["price"])
        except FetcherError as e:
            logger.warning(f"[binance] Failed to fetch {symbol}: {e}")
            return None
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"[binance] Failed to parse response for {symbol}: {e}")
            return None
