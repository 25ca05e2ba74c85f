"""
Backend connection implementations.

Available backends:
- BlockbookBackend: Blockbook REST API over HTTP(S), first reachable endpoint wins
"""

from blockbook.backends.base import (
    AddressInfo,
    BackendConnection,
    BackendInfo,
    RawTransaction,
    SyncStatus,
)
from blockbook.backends.blockbook_api import BlockbookBackend

__all__ = [
    "AddressInfo",
    "BackendConnection",
    "BackendInfo",
    "BlockbookBackend",
    "RawTransaction",
    "SyncStatus",
]
