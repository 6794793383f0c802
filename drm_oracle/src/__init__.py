"""
DRManager Oracle - Price, Authenticity and Market Data Module

This module provides the oracle services behind the DRManager licensing platform:
- AssetPair: Asset/quote pair and its cache symbol
- TimestampedCache: Per-component cache with retention sweeping
- PriceAggregator: Median calculation with optional outlier detection
- PriceFeed: Concurrent multi-source fetch, median and caching
- ContentVerifier: Heuristic content authenticity scoring
- MarketStatsEstimator: License market snapshot and price recommendations
- OracleSigner: EIP-191 signing and verification of oracle payloads
- DRManagerOracle: Service wiring and periodic refresh loops
- fetchers: Modular price fetcher implementations
"""

from .AssetPair import AssetPair
from .ContentVerifier import (
    AggregateVerification,
    ContentRecord,
    ContentVerifier,
    VerificationMethodResult,
)
from .DRManagerOracle import DRManagerOracle
from .IpfsGateway import IpfsGateway
from .MarketStats import MarketStatsEstimator
from .OracleSigner import OracleSigner, SignedPayload, SignerConfigError
from .PriceAggregator import AggregationResult, PriceAggregator
from .PriceFeed import PriceFeed, PriceObservation, PriceQuote, PriceUnavailableError
from .TimestampedCache import CacheEntry, TimestampedCache

__all__ = [
    "AggregateVerification",
    "AggregationResult",
    "AssetPair",
    "CacheEntry",
    "ContentRecord",
    "ContentVerifier",
    "DRManagerOracle",
    "IpfsGateway",
    "MarketStatsEstimator",
    "OracleSigner",
    "PriceAggregator",
    "PriceFeed",
    "PriceObservation",
    "PriceQuote",
    "PriceUnavailableError",
    "SignedPayload",
    "SignerConfigError",
    "TimestampedCache",
    "VerificationMethodResult",
]
