"""
Blockbook REST API backend.

Talks to the first reachable endpoint of an ordered endpoint list. Losing
that endpoint (or finding none reachable) is reported on `errors` and is
fatal for the coordinator using this connection; error payloads returned
by a healthy backend are not.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from blockbook.backends.base import (
    AddressInfo,
    BackendConnection,
    BackendInfo,
    RawTransaction,
    SyncStatus,
)
from blockbook.constants import DEFAULT_TIMEOUT
from blockbook.errors import (
    BackendConnectionError,
    BackendNoUrlError,
    BackendRequestError,
    BroadcastRejectedError,
)


class BlockbookBackend(BackendConnection):
    def __init__(
        self,
        urls: list[str] | tuple[str, ...],
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if isinstance(urls, str):
            raise BackendNoUrlError(f"Expected a list of backend URLs, got a single string: {urls}")
        if len(urls) < 1:
            raise BackendNoUrlError()
        super().__init__([url.rstrip("/") for url in urls])
        self.timeout = timeout
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._url: str | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def connected_url(self) -> str | None:
        return self._url

    async def connect(self) -> str:
        """
        Select the first endpoint whose status call succeeds.

        Returns:
            Base URL of the selected endpoint

        Raises:
            BackendConnectionError: If no endpoint is reachable (also emitted on `errors`)
        """
        if self._url is not None:
            return self._url

        async with self._connect_lock:
            if self._url is not None:
                return self._url

            failures = []
            for url in self.urls:
                try:
                    response = await self.client.get(f"{url}/api/")
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.warning(f"Backend {url} unavailable: {e}")
                    failures.append(f"{url}: {e}")
                    continue

                self._url = url
                logger.info(f"Connected to backend {url}")
                return url

            error = BackendConnectionError(f"All backends down: {'; '.join(failures)}")
            self.report_error(error)
            raise error

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> Any:
        """
        Make a request against the connected endpoint.

        Raises:
            BackendConnectionError: On transport failure (also emitted on `errors`)
            BackendRequestError: When the backend answers with an error
        """
        base = await self.connect()
        url = f"{base}{path}"

        try:
            response = await self.client.request(method, url, params=params, content=content)
        except httpx.TransportError as e:
            logger.error(f"Backend request failed: {method} {path} - {e}")
            self._url = None
            error = BackendConnectionError(f"Connection to {base} lost: {e}")
            self.report_error(error)
            raise error from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = _error_message(data) or f"HTTP {response.status_code}"
            logger.debug(f"Backend returned error for {method} {path}: {message}")
            raise BackendRequestError(message, status_code=response.status_code)

        if data is None:
            raise BackendRequestError(f"Invalid JSON response for {path}", response.status_code)

        return data

    async def get_info(self) -> BackendInfo:
        data = await self._request("GET", "/api/")
        blockbook = data.get("blockbook", {})
        backend = data.get("backend", {})
        return BackendInfo(
            coin=blockbook.get("coin", ""),
            chain=backend.get("chain", ""),
            blocks=int(backend.get("blocks", blockbook.get("bestHeight", 0))),
            best_hash=backend.get("bestBlockHash", ""),
            version=str(backend.get("version", "")),
            subversion=backend.get("subversion", ""),
            in_sync=bool(blockbook.get("inSync", True)),
        )

    async def lookup_sync_status(self) -> SyncStatus:
        data = await self._request("GET", "/api/")
        blockbook = data.get("blockbook", {})
        backend = data.get("backend", {})
        height = int(blockbook.get("bestHeight", backend.get("blocks", 0)))
        logger.debug(f"Current block height: {height}")
        return SyncStatus(
            height=height,
            best_hash=backend.get("bestBlockHash", ""),
            in_sync=bool(blockbook.get("inSync", True)),
        )

    async def lookup_block_hash(self, height: int) -> str:
        data = await self._request("GET", f"/api/v2/block-index/{height}")
        block_hash = data["blockHash"]
        logger.debug(f"Block hash for height {height}: {block_hash}")
        return block_hash

    async def lookup_transaction(self, txid: str) -> RawTransaction:
        data = await self._request("GET", f"/api/v2/tx/{txid}")
        # Blockbook reports mempool transactions with blockHeight -1
        block_height = data.get("blockHeight")
        if block_height is not None and block_height < 0:
            block_height = None
        return RawTransaction(
            txid=data.get("txid", txid),
            hex=data["hex"],
            zcash=self.zcash,
            block_height=block_height,
            confirmations=data.get("confirmations", 0),
        )

    async def lookup_address(self, address: str) -> AddressInfo:
        page = 1
        txids: list[str] = []

        while True:
            data = await self._request(
                "GET", f"/api/v2/address/{address}", params={"details": "txids", "page": page}
            )
            txids.extend(data.get("txids", []))
            if page >= int(data.get("totalPages", 1)):
                break
            page += 1

        return AddressInfo(
            address=address,
            balance=int(data.get("balance", 0)),
            total_received=int(data.get("totalReceived", 0)),
            total_sent=int(data.get("totalSent", 0)),
            unconfirmed_balance=int(data.get("unconfirmedBalance", 0)),
            tx_count=int(data.get("txs", 0)) + int(data.get("unconfirmedTxs", 0)),
            txids=txids,
        )

    async def send_transaction(self, tx_hex: str) -> str:
        try:
            data = await self._request("POST", "/api/v2/sendtx/", content=tx_hex)
        except BackendRequestError as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            raise BroadcastRejectedError(str(e)) from e

        txid = data["result"]
        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def close(self) -> None:
        await self.client.aclose()


def _error_message(data: Any) -> str | None:
    if not isinstance(data, dict) or "error" not in data:
        return None
    error = data["error"]
    if isinstance(error, dict):
        return error.get("message", str(error))
    return str(error)
