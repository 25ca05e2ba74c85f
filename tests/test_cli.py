"""
Tests for the blockbook-cli commands.
"""

from __future__ import annotations

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from loguru import logger
from typer.testing import CliRunner

from blockbook.cli import app
from blockbook.coins import BITCOIN, LITECOIN
from blockbook.discovery.base import AccountInfo, BlockMarker
from blockbook.errors import BroadcastRejectedError
from blockbook.transaction import Transaction
from tests.conftest import GENESIS_COINBASE_HEX, GENESIS_COINBASE_TXID

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BLOCKBOOK_URLS", raising=False)
    monkeypatch.delenv("BLOCKBOOK_COIN", raising=False)
    yield
    # setup_logging points loguru at the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def coordinator():
    """Patched BlockBook class; the instance is what the commands talk to."""
    instance = MagicMock()
    instance.load_coin_info = AsyncMock(return_value=BITCOIN)
    instance.dispose = AsyncMock()
    with patch("blockbook.cli.BlockBook", return_value=instance) as cls:
        instance.cls = cls
        yield instance


def test_coin_info(coordinator) -> None:
    result = runner.invoke(app, ["coin-info", "--url", "http://a", "--url", "http://b"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {
        "name": "Bitcoin",
        "shortcut": "BTC",
        "segwit": True,
        "cash_address": False,
    }
    args, kwargs = coordinator.cls.call_args
    assert args == (["http://a", "http://b"], None)
    assert kwargs["gap_limit"] == 20
    coordinator.dispose.assert_awaited_once()


def test_expected_coin_passed_through(coordinator) -> None:
    coordinator.load_coin_info.return_value = LITECOIN

    result = runner.invoke(app, ["coin-info", "-u", "http://a", "--coin", "ltc"])

    assert result.exit_code == 0
    assert coordinator.cls.call_args.args[1] == LITECOIN


def test_urls_from_environment(coordinator, monkeypatch) -> None:
    monkeypatch.setenv("BLOCKBOOK_URLS", '["http://env"]')
    coordinator.load_current_height = AsyncMock(return_value=812345)

    result = runner.invoke(app, ["height"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"height": 812345}
    assert coordinator.cls.call_args.args[0] == ["http://env"]


def test_missing_url(coordinator) -> None:
    result = runner.invoke(app, ["height"])

    assert result.exit_code == 1
    coordinator.cls.assert_not_called()


def test_unknown_coin(coordinator) -> None:
    result = runner.invoke(app, ["height", "-u", "http://a", "-c", "XYZ"])

    assert result.exit_code == 1
    coordinator.cls.assert_not_called()


def test_tx(coordinator) -> None:
    coordinator.load_transactions = AsyncMock(
        return_value=[Transaction.from_hex(GENESIS_COINBASE_HEX)]
    )

    result = runner.invoke(app, ["tx", GENESIS_COINBASE_TXID, "-u", "http://a"])

    assert result.exit_code == 0
    decoded = json.loads(result.stdout)
    assert decoded[0]["txid"] == GENESIS_COINBASE_TXID
    assert decoded[0]["outputs"][0]["value"] == 5_000_000_000
    coordinator.load_transactions.assert_awaited_once_with([GENESIS_COINBASE_TXID])


def test_broadcast_rejected(coordinator) -> None:
    coordinator.send_transaction_hex = AsyncMock(side_effect=BroadcastRejectedError("dust"))

    result = runner.invoke(app, ["broadcast", "0100", "-u", "http://a"])

    assert result.exit_code == 1
    coordinator.dispose.assert_awaited_once()


def test_discover(coordinator) -> None:
    account = AccountInfo(
        xpub="xpub-test",
        balance=1234,
        transactions=["aa" * 32],
        last_block=BlockMarker(height=800000, hash="ab" * 32),
    )
    coordinator.load_account_info = AsyncMock(return_value=account)

    result = runner.invoke(app, ["discover", "xpub-test", "-u", "http://a"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {
        "xpub": "xpub-test",
        "balance": 1234,
        "unconfirmed_balance": 0,
        "transactions": 1,
        "used_receive_addresses": 0,
        "used_change_addresses": 0,
        "next_receive_address": None,
        "last_block": {"height": 800000, "hash": "ab" * 32},
    }
    args = coordinator.load_account_info.await_args.args
    assert args[0] == "xpub-test"
    assert args[1] is None
    assert args[2] == BITCOIN
