"""
BIP32 public key derivation for account discovery.

Only the public half of BIP32 is needed: discovery walks an account's
non-hardened chains (m/.../0/i and m/.../1/i) from its xpub.
"""

from __future__ import annotations

import hashlib
import hmac

from coincurve import PublicKey

from blockbook.constants import HARDENED_OFFSET
from blockbook.discovery.address import base58check_decode, base58check_encode, hash160
from blockbook.errors import InvalidXpubError

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

# Known SLIP-132 public versions, accepted in addition to the network's own
SEGWIT_PUBLIC_VERSIONS = {
    0x049D7CB2,  # ypub
    0x04B24746,  # zpub
    0x044A5262,  # upub
    0x045F1CF6,  # vpub
}


class HDPublicKey:
    """
    Extended public key. Implements BIP32 public child derivation.
    """

    def __init__(
        self,
        public_key: PublicKey,
        chain_code: bytes,
        depth: int = 0,
        parent_fingerprint: bytes = b"\x00\x00\x00\x00",
        child_number: int = 0,
        version: int = 0x0488B21E,
    ):
        self._public_key = public_key
        self.chain_code = chain_code
        self.depth = depth
        self.parent_fingerprint = parent_fingerprint
        self.child_number = child_number
        self.version = version

    @property
    def public_key(self) -> PublicKey:
        """Return the coincurve PublicKey instance."""
        return self._public_key

    @classmethod
    def from_xpub(cls, xpub: str, version: int | None = None) -> HDPublicKey:
        """
        Decode a serialized extended public key.

        Args:
            xpub: Base58Check encoded extended public key
            version: Expected bip32 public version of the network (any known one if None)

        Raises:
            InvalidXpubError: If the key is malformed or belongs to another network
        """
        try:
            data = base58check_decode(xpub)
        except ValueError as e:
            raise InvalidXpubError(f"Invalid xpub: {e}") from e

        if len(data) != 78:
            raise InvalidXpubError(f"Invalid xpub length: {len(data)}")

        key_version = int.from_bytes(data[0:4], "big")
        if (
            version is not None
            and key_version != version
            and key_version not in SEGWIT_PUBLIC_VERSIONS
        ):
            raise InvalidXpubError(
                f"xpub version {key_version:#010x} does not match network ({version:#010x})"
            )

        key_bytes = data[45:78]
        if key_bytes[0] not in (0x02, 0x03):
            raise InvalidXpubError("xpub does not contain a compressed public key")

        try:
            public_key = PublicKey(key_bytes)
        except ValueError as e:
            raise InvalidXpubError(f"Invalid public key in xpub: {e}") from e

        return cls(
            public_key,
            chain_code=data[13:45],
            depth=data[4],
            parent_fingerprint=data[5:9],
            child_number=int.from_bytes(data[9:13], "big"),
            version=key_version,
        )

    def to_xpub(self) -> str:
        data = (
            self.version.to_bytes(4, "big")
            + bytes([self.depth])
            + self.parent_fingerprint
            + self.child_number.to_bytes(4, "big")
            + self.chain_code
            + self.get_public_key_bytes()
        )
        return base58check_encode(data)

    @property
    def fingerprint(self) -> bytes:
        return hash160(self.get_public_key_bytes())[:4]

    def derive_child(self, index: int) -> HDPublicKey:
        """Derive a non-hardened child key at the given index"""
        if index >= HARDENED_OFFSET:
            raise ValueError("Cannot derive hardened child from public key")

        data = self.get_public_key_bytes() + index.to_bytes(4, "big")
        hmac_result = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        key_offset = hmac_result[:32]
        child_chain = hmac_result[32:]

        if int.from_bytes(key_offset, "big") >= SECP256K1_N:
            raise ValueError("Invalid child key")

        # child = parent + offset*G
        child_key = self._public_key.add(key_offset)

        return HDPublicKey(
            child_key,
            child_chain,
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint,
            child_number=index,
            version=self.version,
        )

    def derive(self, path: str) -> HDPublicKey:
        """Derive from relative path notation (e.g., "0/5")"""
        key = self
        for part in path.split("/"):
            if not part or part == "m":
                continue
            if part.endswith("'") or part.endswith("h"):
                raise ValueError("Cannot derive hardened path from public key")
            key = key.derive_child(int(part))
        return key

    def get_public_key_bytes(self, compressed: bool = True) -> bytes:
        """Get public key bytes"""
        return self._public_key.format(compressed=compressed)
