"""TimestampedCache: Keyed store of values stamped with their write time.

Each component owns its own instance. Reads never evict; stale entries are
dropped only by an explicit :meth:`TimestampedCache.sweep`, so a reader may
see an entry that is about to expire and should use its timestamp to judge
freshness.

.. code-block:: python

    >>> cache = TimestampedCache(retention_seconds=60)
    >>> cache.put("ETH_USD", 2000.0, timestamp=0.0).value
    2000.0
    >>> cache.sweep(now=61.0)
    1
    >>> cache.get("ETH_USD") is None
    True
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Seven days, matching the service's data retention period.
DEFAULT_RETENTION_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the Unix time it was written.

    :ivar value: Cached value.
    :ivar timestamp: Write time in seconds since the epoch.
    """

    value: Any
    timestamp: float

    def age(self, now: float | None = None) -> float:
        """Seconds elapsed since the entry was written."""
        if now is None:
            now = time.time()
        return now - self.timestamp


class TimestampedCache:
    """Last-write-wins cache with retention-based sweeping.

    :ivar retention_seconds: Age beyond which entries become evictable.
    """

    def __init__(self, retention_seconds: float = DEFAULT_RETENTION_SECONDS) -> None:
        """Initialize the cache.

        :param retention_seconds: Retention period in seconds.
        :raises ValueError: If retention is not positive.
        """
        if retention_seconds <= 0:
            raise ValueError("retention_seconds must be positive")
        self.retention_seconds = retention_seconds
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        """Look up an entry.

        :param key: Cache key.
        :returns: The entry, or None if absent.
        """
        return self._entries.get(key)

    def put(self, key: str, value: Any, timestamp: float | None = None) -> CacheEntry:
        """Store a value, replacing any previous entry for the key.

        :param key: Cache key.
        :param value: Value to store.
        :param timestamp: Write time; defaults to now.
        :returns: The stored entry.
        """
        entry = CacheEntry(
            value=value,
            timestamp=time.time() if timestamp is None else timestamp,
        )
        self._entries[key] = entry
        return entry

    def sweep(self, now: float | None = None) -> int:
        """Remove entries older than the retention period.

        :param now: Reference time; defaults to now.
        :returns: Number of evicted entries.
        """
        if now is None:
            now = time.time()
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.age(now) > self.retention_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} cache entries: {expired}")
        return len(expired)

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
