"""
Error taxonomy for the Blockbook coordinator.

Backend failures reported on the connection's error stream become the
coordinator's sticky fatal error; everything else is raised directly from
the operation that hit it.
"""

from __future__ import annotations

from blockbook.constants import INTERRUPTED_BY_USER


class BlockBookError(Exception):
    """Base class for all coordinator errors"""

    pass


class BackendNoUrlError(BlockBookError):
    """Raised at construction when no backend URL is configured"""

    def __init__(self, message: str = "No backend URL configured") -> None:
        super().__init__(message)


class BackendConnectionError(BlockBookError):
    """Transport-level failure talking to the backend. Fatal for a coordinator."""

    pass


class UnknownNetworkError(BlockBookError):
    """Genesis block hash did not match any known network"""

    def __init__(self, block_hash: str) -> None:
        self.block_hash = block_hash
        super().__init__(f"Failed to load coin info {block_hash}")


class NetworkMismatchError(BlockBookError):
    """Raised when asked to switch to a different network mid-lifetime"""

    pass


class CoinInfoNotLoadedError(BlockBookError):
    """Raised by operations that need the network descriptor before it is loaded"""

    def __init__(self, message: str = "Coin info not loaded, call load_coin_info() first") -> None:
        super().__init__(message)


class InterruptedByUserError(BlockBookError):
    """Cancellation reason used when the caller disposes a discovery"""

    def __init__(self, message: str = INTERRUPTED_BY_USER) -> None:
        super().__init__(message)


class DiscoveryCancelledError(BlockBookError):
    """A discovery session ended before completing. `reason` is what cancelled it."""

    def __init__(self, reason: BaseException) -> None:
        self.reason = reason
        super().__init__(str(reason))
        self.__cause__ = reason


class TransactionFetchError(BlockBookError):
    """A member of a batch transaction fetch failed; the whole batch fails."""

    def __init__(self, txid: str, cause: BaseException) -> None:
        self.txid = txid
        self.cause = cause
        super().__init__(f"Failed to load transaction {txid}: {cause}")


class BackendRequestError(BlockBookError):
    """The backend answered a request with an error payload. Not fatal."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BroadcastRejectedError(BlockBookError):
    """The backend refused a transaction broadcast"""

    pass


class TransactionParseError(BlockBookError):
    """Raised when a raw transaction cannot be deserialized"""

    pass


class InvalidXpubError(BlockBookError):
    """Raised when an extended public key cannot be decoded for the network"""

    pass
