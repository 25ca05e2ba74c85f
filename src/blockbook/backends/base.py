"""
Base backend connection interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from blockbook.stream import Stream


@dataclass
class BackendInfo:
    """Metadata a backend reports about itself and the node behind it"""

    coin: str
    chain: str
    blocks: int
    best_hash: str = ""
    version: str = ""
    subversion: str = ""
    in_sync: bool = True


@dataclass
class SyncStatus:
    height: int
    best_hash: str = ""
    in_sync: bool = True


@dataclass
class RawTransaction:
    txid: str
    hex: str
    # Network flag: serialized in the Zcash transaction format
    zcash: bool = False
    block_height: int | None = None
    confirmations: int = 0


@dataclass
class AddressInfo:
    address: str
    balance: int = 0
    total_received: int = 0
    total_sent: int = 0
    unconfirmed_balance: int = 0
    tx_count: int = 0
    txids: list[str] = field(default_factory=list)

    @property
    def used(self) -> bool:
        return self.tx_count > 0


class BackendConnection(ABC):
    """
    Abstract connection to a blockchain indexing backend.

    Implementations report connection-level failures on `errors` in
    addition to raising them from the call that hit them. Consumers treat
    anything emitted there as fatal for the connection.
    """

    def __init__(self, urls: list[str] | tuple[str, ...]):
        self.urls: tuple[str, ...] = tuple(urls)
        self.errors: Stream[Exception] = Stream()
        # Set from the coin descriptor once the network is known
        self.zcash = False

    def report_error(self, error: Exception) -> None:
        self.errors.emit(error)

    @abstractmethod
    async def get_info(self) -> BackendInfo:
        """Get backend and node metadata"""

    @abstractmethod
    async def lookup_block_hash(self, height: int) -> str:
        """Get block hash at given height"""

    @abstractmethod
    async def lookup_transaction(self, txid: str) -> RawTransaction:
        """Get raw transaction by txid"""

    @abstractmethod
    async def lookup_sync_status(self) -> SyncStatus:
        """Get the backend's current tip"""

    @abstractmethod
    async def lookup_address(self, address: str) -> AddressInfo:
        """Get balance and history of one address"""

    @abstractmethod
    async def send_transaction(self, tx_hex: str) -> str:
        """Broadcast transaction, returns txid"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
