"""
Blockbook coordinator.

Owns one backend connection and one discovery engine and exposes network
identification, account discovery, account monitoring and chain data
access on top of them.

The first error the connection reports is sticky: from then on every gated
operation fails with it without touching the backend, and every open
discovery session or activity stream is torn down.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable

from loguru import logger

from blockbook.backends.base import BackendConnection
from blockbook.backends.blockbook_api import BlockbookBackend
from blockbook.coins import CoinInfo, get_coin_info_by_hash
from blockbook.constants import DEFAULT_GAP_LIMIT, DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT
from blockbook.discovery.base import (
    AccountInfo,
    AccountLoadStatus,
    ActivityStream,
    DiscoveryEngine,
)
from blockbook.discovery.gap_limit import GapLimitDiscovery
from blockbook.errors import (
    BackendNoUrlError,
    CoinInfoNotLoadedError,
    InterruptedByUserError,
    NetworkMismatchError,
    TransactionFetchError,
    UnknownNetworkError,
)
from blockbook.transaction import Transaction

BackendFactory = Callable[[tuple[str, ...]], BackendConnection]
DiscoveryFactory = Callable[[BackendConnection], DiscoveryEngine]


class BlockBook:
    def __init__(
        self,
        urls: list[str] | tuple[str, ...],
        coin_info: CoinInfo | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        gap_limit: int = DEFAULT_GAP_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        backend_factory: BackendFactory | None = None,
        discovery_factory: DiscoveryFactory | None = None,
    ):
        """
        Args:
            urls: Ordered backend endpoints, must not be empty
            coin_info: Coin this coordinator is expected to serve. `load_coin_info()`
                refuses a backend serving another network. None accepts any known network.
            backend_factory: Builds the connection from the endpoints (Blockbook REST by default)
            discovery_factory: Builds the discovery engine on top of the connection

        Raises:
            BackendNoUrlError: If `urls` is empty or a bare string. Nothing is created
                in that case.
        """
        if isinstance(urls, str):
            raise BackendNoUrlError(f"Expected a list of backend URLs, got a single string: {urls}")
        if len(urls) < 1:
            raise BackendNoUrlError()

        self.urls: tuple[str, ...] = tuple(urls)
        self.expected_coin_info = coin_info

        self._error: Exception | None = None
        self._error_lock = threading.Lock()
        self._coin_info: CoinInfo | None = None

        if backend_factory is not None:
            self.backend = backend_factory(self.urls)
        else:
            self.backend = BlockbookBackend(self.urls, timeout=timeout)

        if discovery_factory is not None:
            self.discovery = discovery_factory(self.backend)
        else:
            self.discovery = GapLimitDiscovery(
                self.backend, gap_limit=gap_limit, poll_interval=poll_interval
            )

        self._error_subscription = self.backend.errors.attach(self._set_error)

    @property
    def error(self) -> Exception | None:
        """The sticky fatal error, if the backend has failed"""
        return self._error

    @property
    def coin_info(self) -> CoinInfo | None:
        return self._coin_info

    def _set_error(self, error: Exception) -> None:
        with self._error_lock:
            if self._error is not None:
                return
            self._error = error
        logger.error(f"Backend failed, coordinator disabled: {error}")

    def _check_error(self) -> None:
        if self._error is not None:
            raise self._error

    def _check_ready(self) -> CoinInfo:
        self._check_error()
        if self._coin_info is None:
            raise CoinInfoNotLoadedError()
        return self._coin_info

    async def load_coin_info(self, coin_info: CoinInfo | None = None) -> CoinInfo:
        """
        Identify the network the backend serves.

        Without `coin_info` the network is resolved from the genesis block hash.
        The result is kept for the coordinator's lifetime; a later call resolving
        to a different network fails instead of switching.

        Raises:
            UnknownNetworkError: Genesis hash matches no known network
            NetworkMismatchError: Backend serves a different network than expected
        """
        network_info = await self.backend.get_info()
        logger.debug(
            f"Backend info: coin={network_info.coin} chain={network_info.chain} "
            f"blocks={network_info.blocks} subversion={network_info.subversion}"
        )

        if coin_info is None:
            block_hash = await self.backend.lookup_block_hash(0)
            coin_info = get_coin_info_by_hash(block_hash, network_info)
            if coin_info is None:
                raise UnknownNetworkError(block_hash)

        expected = self._coin_info or self.expected_coin_info
        if expected is not None and not expected.same_network(coin_info):
            raise NetworkMismatchError(
                f"Backend network {coin_info.shortcut} does not match {expected.shortcut}"
            )

        # The backend may have failed while we were waiting on it
        self._check_error()

        if self._coin_info is None:
            logger.info(f"Backend serves {coin_info.name} ({coin_info.shortcut})")
        self._coin_info = coin_info
        self.backend.zcash = coin_info.zcash
        return coin_info

    async def load_account_info(
        self,
        xpub: str,
        data: AccountInfo | None,
        coin_info: CoinInfo,
        progress: Callable[[AccountLoadStatus], None],
        set_disposer: Callable[[Callable[[], None]], None],
    ) -> AccountInfo:
        """
        Discover the addresses and history of an account.

        Args:
            xpub: Account extended public key
            data: Snapshot of a previous discovery to resume from, or None
            coin_info: Network of the account
            progress: Called with every progress event, in order, until the discovery ends
            set_disposer: Receives a callable that aborts the discovery ("Interrupted by user")

        Raises:
            DiscoveryCancelledError: Aborted through the disposer or by a backend failure
        """
        established = self._check_ready()
        if not established.same_network(coin_info):
            raise NetworkMismatchError(
                f"Account network {coin_info.shortcut} does not match {established.shortcut}"
            )

        session = self.discovery.discover_account(
            data, xpub, coin_info.network, coin_info.segwit_mode, coin_info.uses_cash_address
        )
        set_disposer(lambda: session.cancel(InterruptedByUserError()))

        progress_subscription = session.progress.attach(progress)
        error_subscription = self.backend.errors.attach(session.cancel)
        try:
            return await asyncio.shield(session.ending)
        except asyncio.CancelledError:
            session.cancel(InterruptedByUserError())
            # Nobody awaits the session anymore
            if not session.ending.cancelled():
                session.ending.exception()
            raise
        finally:
            error_subscription.close()
            progress_subscription.close()

    def monitor_account_activity(
        self,
        xpub: str,
        data: AccountInfo,
        coin_info: CoinInfo,
    ) -> ActivityStream:
        """
        Stream updates of an already discovered account.

        The caller owns the returned stream and must dispose it. A backend
        failure disposes it on the caller's behalf.
        """
        established = self._check_ready()
        if not established.same_network(coin_info):
            raise NetworkMismatchError(
                f"Account network {coin_info.shortcut} does not match {established.shortcut}"
            )

        stream = self.discovery.monitor_account_activity(
            data, xpub, coin_info.network, coin_info.segwit_mode, coin_info.uses_cash_address
        )
        error_subscription = self.backend.errors.attach(lambda _error: stream.dispose())
        stream.on_dispose(error_subscription.close)
        return stream

    async def load_transactions(self, txids: list[str]) -> list[Transaction]:
        """
        Load several transactions concurrently.

        Raises:
            TransactionFetchError: If any of them fails; no partial result is returned
        """
        self._check_ready()

        async def fetch(txid: str) -> Transaction:
            try:
                return await self.load_transaction(txid)
            except Exception as e:
                raise TransactionFetchError(txid, e) from e

        tasks = [asyncio.create_task(fetch(txid)) for txid in txids]
        try:
            return list(await asyncio.gather(*tasks))
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Retrieve every outcome so later failures are not reported as unhandled
            await asyncio.gather(*tasks, return_exceptions=True)

    async def load_transaction(self, txid: str) -> Transaction:
        self._check_ready()
        raw = await self.backend.lookup_transaction(txid)
        return Transaction.from_hex(raw.hex, zcash=raw.zcash)

    async def load_current_height(self) -> int:
        self._check_ready()
        status = await self.backend.lookup_sync_status()
        return status.height

    async def send_transaction(self, tx_bytes: bytes) -> str:
        self._check_ready()
        return await self.backend.send_transaction(tx_bytes.hex())

    async def send_transaction_hex(self, tx_hex: str) -> str:
        self._check_ready()
        return await self.backend.send_transaction(tx_hex)

    async def dispose(self) -> None:
        """
        Release the backend connection and discovery engine.

        Open discovery sessions and activity streams belong to their callers
        and are not cancelled here.
        """
        await self.discovery.close()
        await self.backend.close()
