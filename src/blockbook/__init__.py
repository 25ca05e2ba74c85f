"""
blockbook - Client-side coordinator for Blockbook indexing backends

Resolves the network a backend serves, discovers accounts from extended
public keys, streams account activity, fetches and broadcasts transactions.
"""

__version__ = "0.1.0"

from blockbook.backends import (
    AddressInfo,
    BackendConnection,
    BackendInfo,
    BlockbookBackend,
    RawTransaction,
    SyncStatus,
)
from blockbook.coins import (
    KNOWN_COINS,
    CoinInfo,
    NetworkParams,
    SegwitMode,
    get_coin_info_by_currency,
    get_coin_info_by_hash,
)
from blockbook.coordinator import BlockBook
from blockbook.discovery import (
    AccountInfo,
    AccountLoadStatus,
    ActivityStream,
    BlockMarker,
    DiscoveryEngine,
    DiscoverySession,
    GapLimitDiscovery,
)
from blockbook.errors import (
    BackendConnectionError,
    BackendNoUrlError,
    BackendRequestError,
    BlockBookError,
    BroadcastRejectedError,
    CoinInfoNotLoadedError,
    DiscoveryCancelledError,
    InterruptedByUserError,
    InvalidXpubError,
    NetworkMismatchError,
    TransactionFetchError,
    TransactionParseError,
    UnknownNetworkError,
)
from blockbook.stream import Stream, Subscription
from blockbook.transaction import Transaction, TxInput, TxOutput

__all__ = [
    "AccountInfo",
    "AccountLoadStatus",
    "ActivityStream",
    "AddressInfo",
    "BackendConnection",
    "BackendConnectionError",
    "BackendInfo",
    "BackendNoUrlError",
    "BackendRequestError",
    "BlockBook",
    "BlockBookError",
    "BlockMarker",
    "BlockbookBackend",
    "BroadcastRejectedError",
    "CoinInfo",
    "CoinInfoNotLoadedError",
    "DiscoveryCancelledError",
    "DiscoveryEngine",
    "DiscoverySession",
    "GapLimitDiscovery",
    "InterruptedByUserError",
    "InvalidXpubError",
    "KNOWN_COINS",
    "NetworkMismatchError",
    "NetworkParams",
    "RawTransaction",
    "SegwitMode",
    "Stream",
    "Subscription",
    "SyncStatus",
    "Transaction",
    "TransactionFetchError",
    "TransactionParseError",
    "TxInput",
    "TxOutput",
    "UnknownNetworkError",
    "get_coin_info_by_currency",
    "get_coin_info_by_hash",
]
