"""
Tests for raw transaction parsing.
"""

from __future__ import annotations

import pytest

from blockbook.errors import TransactionParseError
from blockbook.transaction import Transaction, read_varint, varint
from tests.conftest import GENESIS_COINBASE_HEX, GENESIS_COINBASE_TXID

# Sapling (v4) transaction with one transparent input and output and no shielded parts
ZCASH_V4_HEX = (
    "04000080"  # header: version 4, overwintered
    "85202f89"  # sapling version group id
    "01" + "33" * 32 + "00000000" + "00" + "feffffff"  # one input, empty script_sig
    + "01" + "e803000000000000" + "1976a914" + "44" * 20 + "88ac"  # one P2PKH output
    + "00000000"  # locktime
    + "10270000"  # expiry height 10000
    + "0000000000000000" + "00" + "00" + "00"  # value balance, no spends/outputs/joinsplits
)


class TestVarint:
    @pytest.mark.parametrize("value", [0, 0xFC, 0xFD, 0xFFFF, 0x10000, 0xFFFFFFFF, 0x100000000])
    def test_encoding_is_readable(self, value: int) -> None:
        encoded = varint(value)
        assert read_varint(b"\xaa" + encoded, 1) == (value, 1 + len(encoded))

    def test_truncated(self) -> None:
        with pytest.raises(TransactionParseError):
            read_varint(b"\xfd\x01", 0)


class TestBitcoin:
    def test_genesis_coinbase(self) -> None:
        tx = Transaction.from_hex(GENESIS_COINBASE_HEX)

        assert tx.txid == GENESIS_COINBASE_TXID
        assert tx.version == 1
        assert len(tx.inputs) == 1
        assert tx.inputs[0].is_coinbase
        assert tx.outputs[0].value == 5_000_000_000
        assert tx.locktime == 0
        assert not tx.has_witness
        assert tx.to_hex() == GENESIS_COINBASE_HEX

    def test_segwit(self, segwit_tx_hex: str) -> None:
        tx = Transaction.from_hex(segwit_tx_hex)

        assert tx.has_witness
        assert tx.version == 2
        assert tx.locktime == 800000
        assert len(tx.inputs[0].witness) == 2
        assert tx.inputs[0].txid == "11" * 32
        assert tx.inputs[0].vout == 1
        assert tx.outputs[0].value == 50_000
        assert tx.to_hex() == segwit_tx_hex
        # txid commits to the serialization without witness data
        assert len(tx.serialize(include_witness=False)) < len(tx.serialize())

    def test_truncated(self) -> None:
        with pytest.raises(TransactionParseError):
            Transaction.from_hex(GENESIS_COINBASE_HEX[:-10])

    def test_trailing_bytes(self) -> None:
        with pytest.raises(TransactionParseError, match="trailing"):
            Transaction.from_hex(GENESIS_COINBASE_HEX + "00")

    def test_invalid_hex(self) -> None:
        with pytest.raises(TransactionParseError):
            Transaction.from_hex("not hex")


class TestZcash:
    def test_sapling_transaction(self) -> None:
        tx = Transaction.from_hex(ZCASH_V4_HEX, zcash=True)

        assert tx.zcash
        assert tx.overwintered
        assert tx.version == 4
        assert tx.version_group_id == 0x892F2085
        assert tx.inputs[0].txid == "33" * 32
        assert tx.inputs[0].sequence == 0xFFFFFFFE
        assert tx.outputs[0].value == 1000
        assert tx.outputs[0].script_pubkey.hex() == "76a914" + "44" * 20 + "88ac"
        assert tx.expiry_height == 10000
        assert tx.shielded_data == bytes(11)
        assert tx.to_hex() == ZCASH_V4_HEX

    def test_zcash_payload_not_parsed_as_bitcoin(self) -> None:
        with pytest.raises(TransactionParseError):
            Transaction.from_hex(ZCASH_V4_HEX)

    def test_nu5_transaction_rejected(self) -> None:
        v5_hex = "05000080" + "0a27a726" + ZCASH_V4_HEX[16:]
        with pytest.raises(TransactionParseError, match="version 5"):
            Transaction.from_hex(v5_hex, zcash=True)
