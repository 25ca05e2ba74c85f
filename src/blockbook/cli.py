"""
Blockbook CLI - Query a backend, discover accounts and broadcast transactions.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import typer
from loguru import logger

from blockbook.coins import CoinInfo, get_coin_info_by_currency
from blockbook.config import get_settings
from blockbook.coordinator import BlockBook
from blockbook.discovery.base import AccountInfo, AccountLoadStatus
from blockbook.errors import BlockBookError

app = typer.Typer(
    name="blockbook-cli",
    help="Blockbook backend coordinator",
    add_completion=False,
)


def setup_logging(level: str | None = None) -> None:
    """Configure loguru logging. Falls back to BLOCKBOOK_LOG_LEVEL."""
    level = level or get_settings().log_level
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def create_blockbook(urls: list[str] | None, coin: str | None) -> BlockBook:
    """Build a coordinator from CLI options, falling back to settings."""
    settings = get_settings()
    urls = urls or settings.urls
    coin = coin or settings.coin

    if not urls:
        logger.error("Backend URL required. Use --url or BLOCKBOOK_URLS")
        raise typer.Exit(1)

    coin_info: CoinInfo | None = None
    if coin:
        coin_info = get_coin_info_by_currency(coin)
        if coin_info is None:
            logger.error(f"Unknown coin: {coin}")
            raise typer.Exit(1)

    return BlockBook(
        urls,
        coin_info,
        timeout=settings.timeout,
        gap_limit=settings.gap_limit,
        poll_interval=settings.poll_interval,
    )


def account_to_dict(info: AccountInfo) -> dict[str, Any]:
    return {
        "xpub": info.xpub,
        "balance": info.balance,
        "unconfirmed_balance": info.unconfirmed_balance,
        "transactions": len(info.transactions),
        "used_receive_addresses": info.used_external,
        "used_change_addresses": info.used_change,
        "next_receive_address": info.next_receive_address,
        "last_block": {"height": info.last_block.height, "hash": info.last_block.hash},
    }


async def _run(blockbook: BlockBook, operation: str, *args: Any) -> Any:
    try:
        coin_info = await blockbook.load_coin_info()

        if operation == "coin_info":
            return {
                "name": coin_info.name,
                "shortcut": coin_info.shortcut,
                "segwit": coin_info.segwit,
                "cash_address": coin_info.uses_cash_address,
            }

        if operation == "height":
            return {"height": await blockbook.load_current_height()}

        if operation == "tx":
            transactions = await blockbook.load_transactions(list(args[0]))
            return [
                {
                    "txid": tx.txid,
                    "version": tx.version,
                    "inputs": len(tx.inputs),
                    "outputs": [
                        {"value": out.value, "script_pubkey": out.script_pubkey.hex()}
                        for out in tx.outputs
                    ],
                    "locktime": tx.locktime,
                }
                for tx in transactions
            ]

        if operation == "broadcast":
            return {"txid": await blockbook.send_transaction_hex(args[0])}

        if operation == "discover":

            def progress(status: AccountLoadStatus) -> None:
                logger.info(
                    f"Chain {status.chain}: scanned {status.scanned}, used {status.used}, "
                    f"{status.transactions} transactions"
                )

            info = await blockbook.load_account_info(
                args[0], None, coin_info, progress, lambda _dispose: None
            )
            return account_to_dict(info)

        raise ValueError(f"Unknown operation: {operation}")
    finally:
        await blockbook.dispose()


def _execute(blockbook: BlockBook, operation: str, *args: Any) -> None:
    try:
        result = asyncio.run(_run(blockbook, operation, *args))
    except BlockBookError as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1) from e

    typer.echo(json.dumps(result, indent=2))


@app.command()
def coin_info(
    url: list[str] = typer.Option(None, "--url", "-u", help="Backend URL (repeatable)"),
    coin: str | None = typer.Option(None, "--coin", "-c", help="Expected coin shortcut"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Identify the network the backend serves."""
    setup_logging(log_level)
    _execute(create_blockbook(url, coin), "coin_info")


@app.command()
def height(
    url: list[str] = typer.Option(None, "--url", "-u", help="Backend URL (repeatable)"),
    coin: str | None = typer.Option(None, "--coin", "-c", help="Expected coin shortcut"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Show the backend's current block height."""
    setup_logging(log_level)
    _execute(create_blockbook(url, coin), "height")


@app.command()
def tx(
    txids: list[str] = typer.Argument(..., help="Transaction ids"),
    url: list[str] = typer.Option(None, "--url", "-u", help="Backend URL (repeatable)"),
    coin: str | None = typer.Option(None, "--coin", "-c", help="Expected coin shortcut"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Fetch and decode transactions."""
    setup_logging(log_level)
    _execute(create_blockbook(url, coin), "tx", txids)


@app.command()
def broadcast(
    tx_hex: str = typer.Argument(..., help="Signed transaction hex"),
    url: list[str] = typer.Option(None, "--url", "-u", help="Backend URL (repeatable)"),
    coin: str | None = typer.Option(None, "--coin", "-c", help="Expected coin shortcut"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Broadcast a signed transaction."""
    setup_logging(log_level)
    _execute(create_blockbook(url, coin), "broadcast", tx_hex)


@app.command()
def discover(
    xpub: str = typer.Argument(..., help="Account extended public key"),
    url: list[str] = typer.Option(None, "--url", "-u", help="Backend URL (repeatable)"),
    coin: str | None = typer.Option(None, "--coin", "-c", help="Expected coin shortcut"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level"),
) -> None:
    """Discover addresses, balance and history of an account."""
    setup_logging(log_level)
    _execute(create_blockbook(url, coin), "discover", xpub)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
