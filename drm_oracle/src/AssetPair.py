"""AssetPair: Asset/quote pair identifying a price feed.

Prices are cached under the pair's symbol, e.g. ``ETH_USD``. Fetchers work
with the lowercase ``base``/``quote`` parts.

.. code-block:: python

    >>> pair = AssetPair.from_string("eth/usd")
    >>> pair.symbol
    'ETH_USD'
    >>> AssetPair.from_string("ETH_USD").base
    'eth'
"""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[/_\-]")


class AssetPair:
    """A base/quote asset pair.

    :ivar base: Base asset symbol (lowercase).
    :ivar quote: Quote asset symbol (lowercase).
    """

    def __init__(self, base: str, quote: str) -> None:
        """Initialize a pair.

        :param base: Base asset symbol (e.g., "eth").
        :param quote: Quote asset symbol (e.g., "usd").
        :raises ValueError: If either part is empty.
        """
        if not base or not quote:
            raise ValueError("Both base and quote symbols are required")
        self.base = base.strip().lower()
        self.quote = quote.strip().lower()

    @property
    def symbol(self) -> str:
        """Cache key for this pair (e.g., ``ETH_USD``)."""
        return f"{self.base.upper()}_{self.quote.upper()}"

    def __str__(self) -> str:
        return self.symbol

    def __repr__(self) -> str:
        return f"AssetPair({self.base!r}, {self.quote!r})"

    def __hash__(self) -> int:
        return hash(self.symbol)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetPair):
            return NotImplemented
        return self.symbol == other.symbol

    @classmethod
    def from_string(cls, value: str) -> AssetPair:
        """Parse ``ETH_USD``, ``eth/usd`` or ``eth-usd``.

        :param value: Pair string.
        :returns: New AssetPair instance.
        :raises ValueError: If the string does not hold exactly two parts.
        """
        parts = _SEPARATORS.split(value.strip())
        if len(parts) != 2 or not all(parts):
            raise ValueError(
                f"Invalid pair format '{value}'. Expected 'BASE_QUOTE' (e.g., 'ETH_USD')"
            )
        return cls(parts[0], parts[1])
