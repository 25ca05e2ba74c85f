"""
Discovery engine interface, sessions and account snapshots.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from blockbook.backends.base import AddressInfo
from blockbook.coins import NetworkParams, SegwitMode
from blockbook.errors import DiscoveryCancelledError
from blockbook.stream import Stream


@dataclass
class BlockMarker:
    height: int
    hash: str = ""


@dataclass
class AccountInfo:
    """
    Result of an account discovery.

    `external` and `change` hold every scanned address in derivation order,
    including the trailing gap of unused ones, so a later discovery can
    resume without deriving them again.
    """

    xpub: str
    external: list[AddressInfo] = field(default_factory=list)
    change: list[AddressInfo] = field(default_factory=list)
    balance: int = 0
    unconfirmed_balance: int = 0
    transactions: list[str] = field(default_factory=list)
    last_block: BlockMarker = field(default_factory=lambda: BlockMarker(height=0))

    @property
    def used_external(self) -> int:
        return _used_count(self.external)

    @property
    def used_change(self) -> int:
        return _used_count(self.change)

    @property
    def next_receive_index(self) -> int:
        return self.used_external

    @property
    def next_change_index(self) -> int:
        return self.used_change

    @property
    def next_receive_address(self) -> str | None:
        index = self.next_receive_index
        return self.external[index].address if index < len(self.external) else None

    def same_state(self, other: AccountInfo) -> bool:
        """True if balances and history match, mempool included (ignoring the tip marker)"""
        return (
            self.balance == other.balance
            and self.unconfirmed_balance == other.unconfirmed_balance
            and self.transactions == other.transactions
            and _address_states(self.external) == _address_states(other.external)
            and _address_states(self.change) == _address_states(other.change)
        )


def _address_states(addresses: list[AddressInfo]) -> list[tuple[int, int, int]]:
    return [(a.balance, a.unconfirmed_balance, a.tx_count) for a in addresses]


def _used_count(addresses: list[AddressInfo]) -> int:
    for index in range(len(addresses) - 1, -1, -1):
        if addresses[index].used:
            return index + 1
    return 0


@dataclass
class AccountLoadStatus:
    """Progress of a running discovery"""

    chain: int
    scanned: int
    used: int
    transactions: int


class DiscoverySession:
    """
    One in-flight account discovery.

    `ending` resolves with the AccountInfo, or fails with the engine's error
    or with DiscoveryCancelledError once `cancel()` is called. Progress is
    only delivered while `ending` is unresolved.
    """

    def __init__(self, xpub: str) -> None:
        self.xpub = xpub
        self.progress: Stream[AccountLoadStatus] = Stream()
        self.ending: asyncio.Future[AccountInfo] = asyncio.get_running_loop().create_future()
        self._task: asyncio.Task | None = None

    @property
    def done(self) -> bool:
        return self.ending.done()

    def start(self, coro: Coroutine[Any, Any, AccountInfo]) -> None:
        self._task = asyncio.create_task(self._run(coro))

    async def _run(self, coro: Coroutine[Any, Any, AccountInfo]) -> None:
        try:
            result = await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self.ending.done():
                self.ending.set_exception(e)
        else:
            if not self.ending.done():
                self.ending.set_result(result)
        finally:
            self.progress.dispose()

    def report(self, status: AccountLoadStatus) -> None:
        if self.ending.done():
            return
        self.progress.emit(status)

    def cancel(self, reason: BaseException) -> None:
        """Cancel with `reason`. No-op once the session has ended."""
        if self.ending.done():
            return
        logger.warning(f"Discovery of {self.xpub[:12]}... cancelled: {reason}")
        self.ending.set_exception(DiscoveryCancelledError(reason))
        self.progress.dispose()
        if self._task is not None:
            self._task.cancel()


class ActivityStream(Stream["AccountInfo | Exception"]):
    """
    Live account updates. Carries new snapshots and errors; disposing it
    stops the engine's polling task. Safe to dispose more than once.
    """

    def __init__(self) -> None:
        super().__init__()
        self._task: asyncio.Task | None = None

    def start(self, coro: Coroutine[Any, Any, None]) -> None:
        self._task = asyncio.create_task(coro)

    def dispose(self) -> None:
        if self.disposed:
            return
        super().dispose()
        if self._task is not None:
            self._task.cancel()


class DiscoveryEngine(ABC):
    @abstractmethod
    def discover_account(
        self,
        data: AccountInfo | None,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> DiscoverySession:
        """Start discovering an account, resuming from `data` if given"""

    @abstractmethod
    def monitor_account_activity(
        self,
        data: AccountInfo,
        xpub: str,
        network: NetworkParams,
        segwit: SegwitMode,
        cash_address: bool,
    ) -> ActivityStream:
        """Start streaming updates for an already discovered account"""

    async def close(self) -> None:
        pass
