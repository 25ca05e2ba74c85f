"""
Account discovery engines.

Available engines:
- GapLimitDiscovery: BIP44-style gap-limit scan over a BackendConnection
"""

from blockbook.discovery.base import (
    AccountInfo,
    AccountLoadStatus,
    ActivityStream,
    BlockMarker,
    DiscoveryEngine,
    DiscoverySession,
)
from blockbook.discovery.gap_limit import GapLimitDiscovery

__all__ = [
    "AccountInfo",
    "AccountLoadStatus",
    "ActivityStream",
    "BlockMarker",
    "DiscoveryEngine",
    "DiscoverySession",
    "GapLimitDiscovery",
]
