"""
Raw transaction deserialization.

Handles legacy and SegWit Bitcoin serialization, and the transparent part
of Zcash transactions (overwinter v3 / sapling v4). Shielded Zcash data is
kept as opaque bytes.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from blockbook.errors import TransactionParseError

# Zcash header bit marking overwinter-or-later transactions
OVERWINTERED_FLAG = 0x80000000

COINBASE_TXID = "00" * 32


@dataclass
class TxInput:
    txid: str
    vout: int
    script_sig: bytes
    sequence: int
    witness: list[bytes] = field(default_factory=list)

    @property
    def is_coinbase(self) -> bool:
        return self.txid == COINBASE_TXID and self.vout == 0xFFFFFFFF


@dataclass
class TxOutput:
    value: int
    script_pubkey: bytes


@dataclass
class Transaction:
    version: int
    inputs: list[TxInput]
    outputs: list[TxOutput]
    locktime: int
    zcash: bool = False
    overwintered: bool = False
    version_group_id: int = 0
    expiry_height: int = 0
    # Zcash joinsplit / sapling payload following the transparent fields
    shielded_data: bytes = b""
    raw: bytes = field(default=b"", repr=False)

    @classmethod
    def from_hex(cls, tx_hex: str, zcash: bool = False) -> Transaction:
        try:
            data = bytes.fromhex(tx_hex)
        except ValueError as e:
            raise TransactionParseError(f"Invalid transaction hex: {e}") from e
        return cls.from_bytes(data, zcash=zcash)

    @classmethod
    def from_bytes(cls, data: bytes, zcash: bool = False) -> Transaction:
        if zcash:
            return _parse_zcash(data)
        return _parse_bitcoin(data)

    @property
    def has_witness(self) -> bool:
        return any(inp.witness for inp in self.inputs)

    def serialize(self, include_witness: bool = True) -> bytes:
        """Serialize a Bitcoin transaction. Zcash transactions return their raw bytes."""
        if self.zcash:
            return self.raw

        witness = include_witness and self.has_witness
        result = struct.pack("<I", self.version)
        if witness:
            result += bytes([0x00, 0x01])

        result += varint(len(self.inputs))
        for inp in self.inputs:
            result += bytes.fromhex(inp.txid)[::-1]
            result += struct.pack("<I", inp.vout)
            result += varint(len(inp.script_sig)) + inp.script_sig
            result += struct.pack("<I", inp.sequence)

        result += varint(len(self.outputs))
        for out in self.outputs:
            result += struct.pack("<Q", out.value)
            result += varint(len(out.script_pubkey)) + out.script_pubkey

        if witness:
            for inp in self.inputs:
                result += varint(len(inp.witness))
                for item in inp.witness:
                    result += varint(len(item)) + item

        result += struct.pack("<I", self.locktime)
        return result

    @property
    def txid(self) -> str:
        """Double SHA256 of the non-witness serialization, byte-reversed"""
        data = self.serialize(include_witness=False)
        return hashlib.sha256(hashlib.sha256(data).digest()).digest()[::-1].hex()

    def to_hex(self) -> str:
        return self.serialize().hex()


def varint(n: int) -> bytes:
    """Encode variable-length integer"""
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    elif n <= 0xFFFFFFFF:
        return bytes([0xFE]) + struct.pack("<I", n)
    else:
        return bytes([0xFF]) + struct.pack("<Q", n)


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Read variable-length integer, returns (value, new_offset)"""
    first_byte = _take(data, offset, 1)[0]
    offset += 1

    if first_byte < 0xFD:
        return first_byte, offset
    elif first_byte == 0xFD:
        return struct.unpack("<H", _take(data, offset, 2))[0], offset + 2
    elif first_byte == 0xFE:
        return struct.unpack("<I", _take(data, offset, 4))[0], offset + 4
    else:
        return struct.unpack("<Q", _take(data, offset, 8))[0], offset + 8


def _take(data: bytes, offset: int, length: int) -> bytes:
    chunk = data[offset : offset + length]
    if len(chunk) != length:
        raise TransactionParseError(
            f"Unexpected end of transaction at offset {offset} (need {length} bytes)"
        )
    return chunk


def _read_uint32(data: bytes, offset: int) -> tuple[int, int]:
    return struct.unpack("<I", _take(data, offset, 4))[0], offset + 4


def _read_inputs(data: bytes, offset: int) -> tuple[list[TxInput], int]:
    count, offset = read_varint(data, offset)
    inputs = []
    for _ in range(count):
        txid = _take(data, offset, 32)[::-1].hex()
        offset += 32
        vout, offset = _read_uint32(data, offset)
        script_len, offset = read_varint(data, offset)
        script_sig = _take(data, offset, script_len)
        offset += script_len
        sequence, offset = _read_uint32(data, offset)
        inputs.append(TxInput(txid=txid, vout=vout, script_sig=script_sig, sequence=sequence))
    return inputs, offset


def _read_outputs(data: bytes, offset: int) -> tuple[list[TxOutput], int]:
    count, offset = read_varint(data, offset)
    outputs = []
    for _ in range(count):
        value = struct.unpack("<Q", _take(data, offset, 8))[0]
        offset += 8
        script_len, offset = read_varint(data, offset)
        script_pubkey = _take(data, offset, script_len)
        offset += script_len
        outputs.append(TxOutput(value=value, script_pubkey=script_pubkey))
    return outputs, offset


def _parse_bitcoin(data: bytes) -> Transaction:
    version, offset = _read_uint32(data, 0)

    has_witness = False
    if len(data) > offset + 1 and data[offset] == 0x00 and data[offset + 1] == 0x01:
        has_witness = True
        offset += 2

    inputs, offset = _read_inputs(data, offset)
    outputs, offset = _read_outputs(data, offset)

    if has_witness:
        for inp in inputs:
            item_count, offset = read_varint(data, offset)
            for _ in range(item_count):
                item_len, offset = read_varint(data, offset)
                inp.witness.append(_take(data, offset, item_len))
                offset += item_len

    locktime, offset = _read_uint32(data, offset)

    if offset != len(data):
        raise TransactionParseError(f"{len(data) - offset} trailing bytes after transaction")

    return Transaction(
        version=version, inputs=inputs, outputs=outputs, locktime=locktime, raw=data
    )


def _parse_zcash(data: bytes) -> Transaction:
    header, offset = _read_uint32(data, 0)
    overwintered = bool(header & OVERWINTERED_FLAG)
    version = header & ~OVERWINTERED_FLAG

    # NU5 (v5) reorders the header and moves to a different txid scheme
    if overwintered and version >= 5:
        raise TransactionParseError(f"Unsupported Zcash transaction version {version}")

    version_group_id = 0
    if overwintered:
        version_group_id, offset = _read_uint32(data, offset)

    inputs, offset = _read_inputs(data, offset)
    outputs, offset = _read_outputs(data, offset)
    locktime, offset = _read_uint32(data, offset)

    expiry_height = 0
    if overwintered:
        expiry_height, offset = _read_uint32(data, offset)

    return Transaction(
        version=version,
        inputs=inputs,
        outputs=outputs,
        locktime=locktime,
        zcash=True,
        overwintered=overwintered,
        version_group_id=version_group_id,
        expiry_height=expiry_height,
        shielded_data=data[offset:],
        raw=data,
    )
