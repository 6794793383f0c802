"""ContentVerifier: Heuristic authenticity score for registered content.

Runs a fixed, ordered set of cheap structural checks against a content
record and averages their confidences:

======================  ==========================================  ==========
Method                  Outcome                                     Confidence
======================  ==========================================  ==========
``ipfs_hash``           malformed / unreachable / reachable         0 / .1 / .9
``file_integrity``      absent / malformed / ``0x`` + 64 hex        0 / .2 / .8
``metadata``            fields missing / complete                   .3 / .7
``timestamp``           future / older than 24h / recent            0 / .5 / .9
======================  ==========================================  ==========

A check that raises contributes ``confidence=0`` with the error attached.
The record is verified when the mean reaches the confidence threshold.
This is a plausibility score, not a cryptographic proof.

.. code-block:: python

    >>> verifier = ContentVerifier(cache=TimestampedCache(), gateway=gateway)
    >>> result = await verifier.verify(record)
    >>> result.verified, round(result.confidence, 3)
    (True, 0.825)
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import httpx

from .IpfsGateway import IpfsGateway
from .TimestampedCache import CacheEntry, TimestampedCache

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.8

CID_PREFIX = "bafy"
FILE_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
REQUIRED_METADATA_FIELDS = ("title", "user_address", "timestamp")
MAX_RECENT_AGE = timedelta(hours=24)

# Millisecond epochs are larger than any plausible second epoch.
_MILLISECOND_EPOCH_THRESHOLD = 1e11


def parse_timestamp(value: Any) -> datetime:
    """Normalize a record timestamp to an aware UTC datetime.

    Accepts a datetime (naive values are taken as UTC), epoch seconds or
    milliseconds, or an ISO-8601 string.

    :param value: Raw timestamp.
    :returns: Timezone-aware datetime.
    :raises ValueError: If the value is missing or cannot be parsed.
    """
    if value is None or value == "":
        raise ValueError("timestamp is missing")
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > _MILLISECOND_EPOCH_THRESHOLD else value
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class ContentRecord:
    """Content registration details supplied by the caller.

    :ivar id: Registration identifier.
    :ivar hash: Content hash used as the cache key when present.
    :ivar ipfs_hash: Content address (CID).
    :ivar file_hash: ``0x``-prefixed SHA-256 of the file.
    :ivar title: Work title.
    :ivar user_address: Author wallet address.
    :ivar description: Free-text description.
    :ivar timestamp: Registration time (datetime, epoch or ISO string).
    """

    id: str | None = None
    hash: str | None = None
    ipfs_hash: str | None = None
    file_hash: str | None = None
    title: str | None = None
    user_address: str | None = None
    description: str | None = None
    timestamp: Any = None

    @property
    def content_id(self) -> str | None:
        return self.hash or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentRecord:
        """Build a record from an API payload (snake_case or camelCase keys)."""

        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        raw_id = pick("id")
        return cls(
            id=None if raw_id is None else str(raw_id),
            hash=pick("hash"),
            ipfs_hash=pick("ipfs_hash", "ipfsHash", "cid"),
            file_hash=pick("file_hash", "fileHash"),
            title=pick("title"),
            user_address=pick("user_address", "userAddress"),
            description=pick("description"),
            timestamp=pick("timestamp"),
        )


@dataclass(frozen=True)
class VerificationMethodResult:
    """Outcome of a single verification method.

    :ivar method: Method name.
    :ivar verified: Whether the method passed.
    :ivar confidence: Confidence in [0, 1].
    :ivar details: Optional diagnostics (accessible, error, missing_fields, reason).
    """

    method: str
    verified: bool
    confidence: float
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "verified": self.verified,
            "confidence": self.confidence,
            **self.details,
        }


@dataclass(frozen=True)
class AggregateVerification:
    """Combined verification decision.

    :ivar verified: True when confidence reached the threshold.
    :ivar confidence: Mean of method confidences.
    :ivar methods: Per-method results in execution order.
    :ivar timestamp: Unix time of verification.
    :ivar oracle: Address of the oracle that produced the result.
    """

    verified: bool
    confidence: float
    methods: tuple[VerificationMethodResult, ...]
    timestamp: float
    oracle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "verified": self.verified,
            "confidence": self.confidence,
            "methods": [m.to_dict() for m in self.methods],
            "timestamp": self.timestamp,
            "oracle": self.oracle,
        }


CheckFn = Callable[[ContentRecord], Awaitable[VerificationMethodResult]]


class ContentVerifier:
    """Scores content records and caches the decisions.

    :ivar cache: Cache of AggregateVerification keyed by content id.
    :ivar gateway: Probe used by the ``ipfs_hash`` method.
    :ivar confidence_threshold: Minimum mean confidence for ``verified``.
    :ivar oracle_address: Identity stamped on results.
    """

    def __init__(
        self,
        cache: TimestampedCache,
        gateway: IpfsGateway | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        oracle_address: str | None = None,
    ) -> None:
        """Initialize the verifier.

        :param cache: Cache receiving verification results.
        :param gateway: Gateway probe (default: public ipfs.io gateway).
        :param confidence_threshold: Pass mark for the mean confidence (default 0.8).
        :param oracle_address: Signer identity reported in results.
        :raises ValueError: If the threshold is outside [0, 1].
        """
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")

        self.cache = cache
        self.gateway = gateway or IpfsGateway()
        self.confidence_threshold = confidence_threshold
        self.oracle_address = oracle_address

        self.methods: list[tuple[str, CheckFn]] = [
            ("ipfs_hash", self.check_ipfs_hash),
            ("file_integrity", self.check_file_integrity),
            ("metadata", self.check_metadata),
            ("timestamp", self.check_timestamp),
        ]

    async def verify(self, record: ContentRecord) -> AggregateVerification:
        """Run every method, combine the scores and cache the result.

        :param record: Content to verify.
        :returns: Aggregate decision.
        """
        results: list[VerificationMethodResult] = []
        for name, check in self.methods:
            try:
                results.append(await check(record))
            except Exception as e:
                logger.warning(f"Verification method {name} failed: {e}")
                results.append(
                    VerificationMethodResult(
                        method=name,
                        verified=False,
                        confidence=0.0,
                        details={"error": str(e)},
                    )
                )

        confidence = (
            sum(r.confidence for r in results) / len(results) if results else 0.0
        )
        verified = bool(results) and confidence >= self.confidence_threshold

        verification = AggregateVerification(
            verified=verified,
            confidence=confidence,
            methods=tuple(results),
            timestamp=time.time(),
            oracle=self.oracle_address,
        )

        content_id = record.content_id
        if content_id:
            self.cache.put(content_id, verification, timestamp=verification.timestamp)
        else:
            logger.debug("Record has neither hash nor id; result not cached")

        logger.info(
            f"Content verification {content_id}: "
            f"{'PASSED' if verified else 'FAILED'} ({confidence * 100:.1f}%)"
        )
        return verification

    def get_cached(self, content_id: str) -> CacheEntry | None:
        return self.cache.get(content_id)

    async def check_ipfs_hash(self, record: ContentRecord) -> VerificationMethodResult:
        """Content address must use the expected scheme and resolve on the gateway."""
        cid = record.ipfs_hash
        if not cid or not cid.startswith(CID_PREFIX):
            return VerificationMethodResult("ipfs_hash", False, 0.0)

        try:
            accessible = await self.gateway.is_reachable(cid)
        except httpx.HTTPError as e:
            return VerificationMethodResult(
                "ipfs_hash", False, 0.1, {"error": str(e) or type(e).__name__}
            )

        return VerificationMethodResult(
            "ipfs_hash",
            accessible,
            0.9 if accessible else 0.1,
            {"accessible": accessible},
        )

    async def check_file_integrity(
        self, record: ContentRecord
    ) -> VerificationMethodResult:
        if not record.file_hash:
            return VerificationMethodResult("file_integrity", False, 0.0)
        if not FILE_HASH_PATTERN.match(record.file_hash):
            return VerificationMethodResult("file_integrity", False, 0.2)
        return VerificationMethodResult("file_integrity", True, 0.8)

    async def check_metadata(self, record: ContentRecord) -> VerificationMethodResult:
        missing = [f for f in REQUIRED_METADATA_FIELDS if not getattr(record, f)]
        if missing:
            return VerificationMethodResult(
                "metadata", False, 0.3, {"missing_fields": missing}
            )
        return VerificationMethodResult("metadata", True, 0.7)

    async def check_timestamp(self, record: ContentRecord) -> VerificationMethodResult:
        """Reject future timestamps; discount ones older than a day."""
        registered = parse_timestamp(record.timestamp)
        now = datetime.now(timezone.utc)

        if registered > now:
            return VerificationMethodResult(
                "timestamp", False, 0.0, {"reason": "future_timestamp"}
            )
        if registered < now - MAX_RECENT_AGE:
            return VerificationMethodResult(
                "timestamp", True, 0.5, {"reason": "old_timestamp"}
            )
        return VerificationMethodResult("timestamp", True, 0.9)
