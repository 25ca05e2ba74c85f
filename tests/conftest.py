"""
Pytest configuration and fixtures for coordinator tests.
"""

from __future__ import annotations

import pytest
from coincurve import PrivateKey

from blockbook.backends.base import (
    AddressInfo,
    BackendConnection,
    BackendInfo,
    RawTransaction,
    SyncStatus,
)
from blockbook.coins import BITCOIN_GENESIS, NetworkParams, SegwitMode
from blockbook.coordinator import BlockBook
from blockbook.discovery.base import (
    AccountInfo,
    ActivityStream,
    BlockMarker,
    DiscoveryEngine,
    DiscoverySession,
)
from blockbook.discovery.bip32 import HDPublicKey
from blockbook.errors import BackendRequestError, BroadcastRejectedError
from blockbook.transaction import Transaction, TxInput, TxOutput

# Genesis block coinbase transaction
GENESIS_COINBASE_HEX = (
    "01000000010000000000000000000000000000000000000000000000000000000000000000ffffffff"
    "4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368616e63656c6c6f72"
    "206f6e206272696e6b206f66207365636f6e64206261696c6f757420666f722062616e6b73ffffffff"
    "0100f2052a01000000434104678afdb0fe5548271967f1a67130b7105cd6a828e03909a67962e0ea1f"
    "61deb649f6bc3f4cef38c4f35504e51ec112de5c384df7ba0b8d578a4c702b6bf11d5fac00000000"
)
GENESIS_COINBASE_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


class FakeBackend(BackendConnection):
    """In-memory backend recording every call."""

    def __init__(self, urls: tuple[str, ...] = ("http://blockbook.test",)):
        super().__init__(urls)
        self.genesis = BITCOIN_GENESIS
        self.info = BackendInfo(
            coin="Bitcoin", chain="main", blocks=800000, subversion="/Satoshi:25.0.0/"
        )
        self.height = 800000
        self.best_hash = "ab" * 32
        self.transactions: dict[str, str] = {}
        self.failing_txids: set[str] = set()
        self.addresses: dict[str, AddressInfo] = {}
        self.reject_reason: str | None = None
        self.sent: list[str] = []
        self.calls: list[str] = []
        self.closed = False

    async def get_info(self) -> BackendInfo:
        self.calls.append("get_info")
        return self.info

    async def lookup_block_hash(self, height: int) -> str:
        self.calls.append(f"lookup_block_hash:{height}")
        return self.genesis

    async def lookup_transaction(self, txid: str) -> RawTransaction:
        self.calls.append(f"lookup_transaction:{txid}")
        if txid in self.failing_txids or txid not in self.transactions:
            raise BackendRequestError(f"Transaction {txid} not found", status_code=400)
        return RawTransaction(txid=txid, hex=self.transactions[txid], zcash=self.zcash)

    async def lookup_sync_status(self) -> SyncStatus:
        self.calls.append("lookup_sync_status")
        return SyncStatus(height=self.height, best_hash=self.best_hash)

    async def lookup_address(self, address: str) -> AddressInfo:
        self.calls.append(f"lookup_address:{address}")
        return self.addresses.get(address, AddressInfo(address=address))

    async def send_transaction(self, tx_hex: str) -> str:
        self.calls.append("send_transaction")
        if self.reject_reason is not None:
            raise BroadcastRejectedError(self.reject_reason)
        self.sent.append(tx_hex)
        return Transaction.from_hex(tx_hex).txid

    async def close(self) -> None:
        self.closed = True


class FakeDiscovery(DiscoveryEngine):
    """Hands out sessions and streams for the test to drive by hand."""

    def __init__(self, backend: BackendConnection):
        self.backend = backend
        self.sessions: list[DiscoverySession] = []
        self.streams: list[ActivityStream] = []
        self.discover_calls: list[tuple] = []
        self.monitor_calls: list[tuple] = []
        self.closed = False

    def discover_account(
        self,
        data: AccountInfo | None,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> DiscoverySession:
        self.discover_calls.append((data, xpub, network, segwit, cash_address))
        session = DiscoverySession(xpub)
        self.sessions.append(session)
        return session

    def monitor_account_activity(
        self,
        data: AccountInfo,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> ActivityStream:
        self.monitor_calls.append((data, xpub, network, segwit, cash_address))
        stream = ActivityStream()
        self.streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def discovery(backend: FakeBackend) -> FakeDiscovery:
    return FakeDiscovery(backend)


@pytest.fixture
def blockbook(backend: FakeBackend, discovery: FakeDiscovery) -> BlockBook:
    """Coordinator wired to the fake collaborators, network not loaded yet."""
    return BlockBook(
        list(backend.urls),
        None,
        backend_factory=lambda urls: backend,
        discovery_factory=lambda _backend: discovery,
    )


@pytest.fixture
def account_key() -> HDPublicKey:
    """Account-level extended public key built from a fixed private key."""
    private_key = PrivateKey(bytes.fromhex("11" * 32))
    return HDPublicKey(private_key.public_key, chain_code=bytes.fromhex("22" * 32), depth=3)


@pytest.fixture
def xpub(account_key: HDPublicKey) -> str:
    return account_key.to_xpub()


@pytest.fixture
def account_info(xpub: str) -> AccountInfo:
    return AccountInfo(
        xpub=xpub,
        external=[AddressInfo(address="1Used", balance=5000, tx_count=1, txids=["aa" * 32])],
        balance=5000,
        transactions=["aa" * 32],
        last_block=BlockMarker(height=800000, hash="ab" * 32),
    )


@pytest.fixture
def segwit_tx_hex() -> str:
    """1-in-1-out P2WPKH spend with a two-item witness"""
    tx = Transaction(
        version=2,
        inputs=[
            TxInput(
                txid="11" * 32,
                vout=1,
                script_sig=b"",
                sequence=0xFFFFFFFD,
                witness=[bytes([0x30]) * 71, bytes([0x02]) + bytes([0x33]) * 32],
            )
        ],
        outputs=[TxOutput(value=50_000, script_pubkey=bytes.fromhex("0014" + "22" * 20))],
        locktime=800000,
    )
    return tx.to_hex()
