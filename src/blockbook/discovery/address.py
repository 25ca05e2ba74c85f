"""
Address encoding for discovered keys.

P2PKH and P2SH-P2WPKH in Base58Check, plus CashAddr for coins that use it.
"""

from __future__ import annotations

import hashlib

from blockbook.coins import NetworkParams, SegwitMode

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
CASHADDR_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CASHADDR_PREFIX = "bitcoincash"


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def base58_encode(data: bytes) -> str:
    num = int.from_bytes(data, "big")
    encoded = ""
    while num > 0:
        num, rem = divmod(num, 58)
        encoded = BASE58_ALPHABET[rem] + encoded

    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading_zeros + encoded


def base58_decode(s: str) -> bytes:
    num = 0
    for char in s:
        index = BASE58_ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"Invalid base58 character: {char!r}")
        num = num * 58 + index

    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    leading_ones = len(s) - len(s.lstrip("1"))
    return b"\x00" * leading_ones + body


def base58check_encode(payload: bytes) -> str:
    return base58_encode(payload + double_sha256(payload)[:4])


def base58check_decode(s: str) -> bytes:
    data = base58_decode(s)
    if len(data) < 4:
        raise ValueError("Base58Check string too short")
    payload, checksum = data[:-4], data[-4:]
    if double_sha256(payload)[:4] != checksum:
        raise ValueError("Invalid Base58Check checksum")
    return payload


def version_bytes(version: int) -> bytes:
    """Address version prefix; Zcash uses two bytes"""
    return version.to_bytes(max(1, (version.bit_length() + 7) // 8), "big")


def pubkey_to_p2pkh_address(pubkey: bytes, network: NetworkParams) -> str:
    return base58check_encode(version_bytes(network.pub_key_hash) + hash160(pubkey))


def pubkey_to_p2sh_p2wpkh_address(pubkey: bytes, network: NetworkParams) -> str:
    """BIP49 nested SegWit address"""
    redeem_script = bytes([0x00, 0x14]) + hash160(pubkey)
    return base58check_encode(version_bytes(network.script_hash) + hash160(redeem_script))


def cashaddr_polymod(values: list[int]) -> int:
    """CashAddr checksum polymod (40-bit BCH code)"""
    generators = [0x98F2BC8E61, 0x79B76D99E2, 0xF33E5FB3C4, 0xAE2EABE2A8, 0x1E4F43E470]
    chk = 1
    for v in values:
        b = chk >> 35
        chk = ((chk & 0x07FFFFFFFF) << 5) ^ v
        for i in range(5):
            chk ^= generators[i] if ((b >> i) & 1) else 0
    return chk ^ 1


def convertbits(data: bytes, frombits: int, tobits: int, pad: bool = True) -> list[int]:
    """Convert between bit groups"""
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1

    for value in data:
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (tobits - bits)) & maxv)
    elif bits >= frombits or ((acc << (tobits - bits)) & maxv):
        raise ValueError("Invalid bits")

    return ret


def cashaddr_encode(prefix: str, kind: int, hash_bytes: bytes) -> str:
    """
    Encode a CashAddr address.

    Args:
        prefix: Network prefix, e.g. "bitcoincash"
        kind: 0 for P2PKH, 1 for P2SH
        hash_bytes: 20-byte hash (only 160-bit hashes are supported)
    """
    if len(hash_bytes) != 20:
        raise ValueError(f"Unsupported hash length for CashAddr: {len(hash_bytes)}")

    version_byte = kind << 3  # size code 0 = 160 bits
    payload = convertbits(bytes([version_byte]) + hash_bytes, 8, 5)
    prefix_data = [ord(c) & 0x1F for c in prefix] + [0]
    polymod = cashaddr_polymod(prefix_data + payload + [0] * 8)
    checksum = [(polymod >> 5 * (7 - i)) & 0x1F for i in range(8)]
    return prefix + ":" + "".join(CASHADDR_CHARSET[d] for d in payload + checksum)


def pubkey_to_cashaddr(pubkey: bytes, prefix: str) -> str:
    return cashaddr_encode(prefix, 0, hash160(pubkey))


def pubkey_to_address(
    pubkey: bytes,
    network: NetworkParams,
    segwit: SegwitMode,
    cash_address: bool = False,
    cash_addr_prefix: str = CASHADDR_PREFIX,
) -> str:
    """Encode a compressed public key the way discovery queries it"""
    if segwit == SegwitMode.P2SH:
        return pubkey_to_p2sh_p2wpkh_address(pubkey, network)
    if cash_address:
        return pubkey_to_cashaddr(pubkey, cash_addr_prefix)
    return pubkey_to_p2pkh_address(pubkey, network)
