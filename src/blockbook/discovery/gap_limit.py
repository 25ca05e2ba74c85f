"""
Gap-limit account discovery against a backend connection.

Derivation path below the account xpub: {chain}/{index}
- chain: 0 (external/receive), 1 (internal/change)
- index: address index, scanned until `gap_limit` consecutive unused addresses
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from blockbook.backends.base import AddressInfo, BackendConnection
from blockbook.coins import NetworkParams, SegwitMode
from blockbook.constants import (
    CHANGE_CHAIN,
    DEFAULT_GAP_LIMIT,
    DEFAULT_POLL_INTERVAL,
    EXTERNAL_CHAIN,
)
from blockbook.discovery.address import pubkey_to_address
from blockbook.discovery.base import (
    AccountInfo,
    AccountLoadStatus,
    ActivityStream,
    BlockMarker,
    DiscoveryEngine,
    DiscoverySession,
)
from blockbook.discovery.bip32 import HDPublicKey


class GapLimitDiscovery(DiscoveryEngine):
    def __init__(
        self,
        backend: BackendConnection,
        gap_limit: int = DEFAULT_GAP_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if gap_limit < 1:
            raise ValueError(f"gap_limit must be at least 1, got {gap_limit}")
        self.backend = backend
        self.gap_limit = gap_limit
        self.poll_interval = poll_interval

    def discover_account(
        self,
        data: AccountInfo | None,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> DiscoverySession:
        session = DiscoverySession(xpub)
        session.start(self._discover(session.report, data, xpub, network, segwit, cash_address))
        logger.info(f"Started discovery of {xpub[:12]}... (segwit={segwit.value})")
        return session

    def monitor_account_activity(
        self,
        data: AccountInfo,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> ActivityStream:
        stream = ActivityStream()
        stream.start(self._monitor(stream, data, xpub, network, segwit, cash_address))
        logger.info(f"Monitoring activity of {xpub[:12]}...")
        return stream

    async def _discover(
        self,
        report: Callable[[AccountLoadStatus], None],
        data: AccountInfo | None,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> AccountInfo:
        account_key = HDPublicKey.from_xpub(xpub, network.bip32_public)
        # Tip first: anything confirmed after this is picked up by the next scan
        status = await self.backend.lookup_sync_status()

        # Prior snapshots only spare us the derivation; every address is queried again
        prior = data if data is not None and data.xpub == xpub else None
        seen_txids: set[str] = set()
        chains: dict[int, list[AddressInfo]] = {}

        for chain in (EXTERNAL_CHAIN, CHANGE_CHAIN):
            known = []
            if prior is not None:
                previous = prior.external if chain == EXTERNAL_CHAIN else prior.change
                known = [a.address for a in previous]
            chains[chain] = await self._scan_chain(
                account_key, chain, known, network, segwit, cash_address, seen_txids, report
            )

        external = chains[EXTERNAL_CHAIN]
        change = chains[CHANGE_CHAIN]
        info = AccountInfo(
            xpub=xpub,
            external=external,
            change=change,
            balance=sum(a.balance for a in external + change),
            unconfirmed_balance=sum(a.unconfirmed_balance for a in external + change),
            transactions=sorted(seen_txids),
            last_block=BlockMarker(height=status.height, hash=status.best_hash),
        )
        logger.info(
            f"Discovery of {xpub[:12]}... complete: {info.used_external} receive / "
            f"{info.used_change} change addresses used, {len(info.transactions)} transactions"
        )
        return info

    async def _scan_chain(
        self,
        account_key: HDPublicKey,
        chain: int,
        known: list[str],
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
        seen_txids: set[str],
        report: Callable[[AccountLoadStatus], None],
    ) -> list[AddressInfo]:
        chain_key = account_key.derive_child(chain)
        scanned: list[AddressInfo] = []
        consecutive_empty = 0
        index = 0
        used = 0

        while consecutive_empty < self.gap_limit:
            # Scan in batches of gap_limit size
            addresses = []
            for i in range(index, index + self.gap_limit):
                if i < len(known):
                    addresses.append(known[i])
                else:
                    pubkey = chain_key.derive_child(i).get_public_key_bytes()
                    addresses.append(pubkey_to_address(pubkey, network, segwit, cash_address))

            infos = await asyncio.gather(*(self.backend.lookup_address(a) for a in addresses))

            # Process batch results in order
            for info in infos:
                scanned.append(info)
                if info.used:
                    consecutive_empty = 0
                    used = len(scanned)
                    seen_txids.update(info.txids)
                else:
                    consecutive_empty += 1

                if consecutive_empty >= self.gap_limit:
                    break

            index += self.gap_limit
            report(
                AccountLoadStatus(
                    chain=chain, scanned=len(scanned), used=used, transactions=len(seen_txids)
                )
            )

        logger.debug(f"Scanned chain {chain}: {len(scanned)} addresses, {used} used")
        return scanned

    async def _monitor(
        self,
        stream: ActivityStream,
        data: AccountInfo,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> None:
        current = data

        while not stream.disposed:
            await asyncio.sleep(self.poll_interval)

            # Rescan on every poll: mempool payments arrive without moving the tip
            try:
                updated = await self._discover(
                    lambda _status: None, current, xpub, network, segwit, cash_address
                )
            except Exception as e:
                logger.warning(f"Activity update for {xpub[:12]}... failed: {e}")
                stream.emit(e)
                continue

            changed = not updated.same_state(current)
            current = updated
            if changed:
                logger.info(
                    f"Account {xpub[:12]}... changed at height {updated.last_block.height}"
                )
                stream.emit(updated)
