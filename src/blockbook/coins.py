"""
Known networks and coin descriptors.

A backend is identified by the hash of its genesis block. Forks that kept
Bitcoin's genesis block (Bitcoin Cash, Bitcoin Gold) are told apart by the
coin name and node subversion the backend reports.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from blockbook.backends.base import BackendInfo


class SegwitMode(str, Enum):
    P2SH = "p2sh"
    OFF = "off"


class NetworkParams(BaseModel):
    """Address and key version bytes of a network"""

    message_prefix: str
    bech32: str | None = None
    bip32_public: int
    bip32_private: int
    pub_key_hash: int = Field(..., ge=0)
    script_hash: int = Field(..., ge=0)
    wif: int = Field(..., ge=0, le=0xFF)

    model_config = {"frozen": True}


class CoinInfo(BaseModel):
    name: str = Field(..., min_length=1)
    shortcut: str = Field(..., min_length=1)
    hash_genesis_block: str = Field(..., pattern=r"^[0-9a-fA-F]{64}$")
    network: NetworkParams
    segwit: bool = False
    # Set for coins that encode addresses as CashAddr ("bitcoincash:q...")
    cash_addr_prefix: str | None = None
    # Zcash overwinter/sapling transaction format
    zcash: bool = False
    # Lowercase substrings of the backend's coin name / subversion identifying this coin
    # among coins sharing a genesis block
    subversion_hints: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @field_validator("hash_genesis_block")
    @classmethod
    def normalize_hash(cls, v: str) -> str:
        return v.lower()

    @property
    def segwit_mode(self) -> SegwitMode:
        return SegwitMode.P2SH if self.segwit else SegwitMode.OFF

    @property
    def uses_cash_address(self) -> bool:
        return self.cash_addr_prefix is not None

    def same_network(self, other: CoinInfo) -> bool:
        return (
            self.shortcut == other.shortcut
            and self.hash_genesis_block == other.hash_genesis_block
        )


BITCOIN_GENESIS = "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f"

_BITCOIN_PARAMS = NetworkParams(
    message_prefix="\x18Bitcoin Signed Message:\n",
    bech32="bc",
    bip32_public=0x0488B21E,
    bip32_private=0x0488ADE4,
    pub_key_hash=0x00,
    script_hash=0x05,
    wif=0x80,
)

BITCOIN = CoinInfo(
    name="Bitcoin",
    shortcut="BTC",
    hash_genesis_block=BITCOIN_GENESIS,
    network=_BITCOIN_PARAMS,
    segwit=True,
)

BITCOIN_CASH = CoinInfo(
    name="Bitcoin Cash",
    shortcut="BCH",
    hash_genesis_block=BITCOIN_GENESIS,
    network=_BITCOIN_PARAMS.model_copy(update={"bech32": None}),
    segwit=False,
    cash_addr_prefix="bitcoincash",
    subversion_hints=("bcash", "bitcoin cash", "bitcoin abc", "bchn"),
)

BITCOIN_GOLD = CoinInfo(
    name="Bitcoin Gold",
    shortcut="BTG",
    hash_genesis_block=BITCOIN_GENESIS,
    network=NetworkParams(
        message_prefix="\x1dBitcoin Gold Signed Message:\n",
        bech32="btg",
        bip32_public=0x0488B21E,
        bip32_private=0x0488ADE4,
        pub_key_hash=0x26,
        script_hash=0x17,
        wif=0x80,
    ),
    segwit=True,
    subversion_hints=("bgold", "bitcoin gold"),
)

TESTNET = CoinInfo(
    name="Testnet",
    shortcut="TEST",
    hash_genesis_block="000000000933ea01ad0ee984209779baaec3ced90fa3f408719526f8d77f4943",
    network=NetworkParams(
        message_prefix="\x18Bitcoin Signed Message:\n",
        bech32="tb",
        bip32_public=0x043587CF,
        bip32_private=0x04358394,
        pub_key_hash=0x6F,
        script_hash=0xC4,
        wif=0xEF,
    ),
    segwit=True,
)

LITECOIN = CoinInfo(
    name="Litecoin",
    shortcut="LTC",
    hash_genesis_block="12a765e31ffd4059bada1e25190f6e98c99d9714d334efa41a195a7e7e04bfe2",
    network=NetworkParams(
        message_prefix="\x19Litecoin Signed Message:\n",
        bech32="ltc",
        bip32_public=0x019DA462,
        bip32_private=0x019D9CFE,
        pub_key_hash=0x30,
        script_hash=0x32,
        wif=0xB0,
    ),
    segwit=True,
)

DOGECOIN = CoinInfo(
    name="Dogecoin",
    shortcut="DOGE",
    hash_genesis_block="1a91e3dace36e2be3bf030a65679fe821aa1d6ef92e7c9902eb318182c355691",
    network=NetworkParams(
        message_prefix="\x19Dogecoin Signed Message:\n",
        bip32_public=0x02FACAFD,
        bip32_private=0x02FAC398,
        pub_key_hash=0x1E,
        script_hash=0x16,
        wif=0x9E,
    ),
)

DASH = CoinInfo(
    name="Dash",
    shortcut="DASH",
    hash_genesis_block="00000ffd590b1485b3caadc19b22e6379c733355108f107a430458cdf3407ab6",
    network=NetworkParams(
        message_prefix="\x19DarkCoin Signed Message:\n",
        bip32_public=0x0488B21E,
        bip32_private=0x0488ADE4,
        pub_key_hash=0x4C,
        script_hash=0x10,
        wif=0xCC,
    ),
)

ZCASH = CoinInfo(
    name="Zcash",
    shortcut="ZEC",
    hash_genesis_block="00040fe8ec8471911baa1db1266ea15dd06b4a8a5c453883c000b031973dce08",
    network=NetworkParams(
        message_prefix="\x16Zcash Signed Message:\n",
        bip32_public=0x0488B21E,
        bip32_private=0x0488ADE4,
        # Zcash t-addresses use two-byte version prefixes
        pub_key_hash=0x1CB8,
        script_hash=0x1CBD,
        wif=0x80,
    ),
    zcash=True,
)

KNOWN_COINS: list[CoinInfo] = [
    BITCOIN,
    BITCOIN_CASH,
    BITCOIN_GOLD,
    TESTNET,
    LITECOIN,
    DOGECOIN,
    DASH,
    ZCASH,
]


def get_coin_info_by_hash(
    block_hash: str, backend_info: BackendInfo | None = None
) -> CoinInfo | None:
    """
    Find the coin whose genesis block hash is `block_hash`.

    When several coins share the genesis block, the backend's reported coin
    name and subversion select between them. The coin without hints (the
    original chain) is the fallback.
    """
    block_hash = block_hash.lower()
    candidates = [coin for coin in KNOWN_COINS if coin.hash_genesis_block == block_hash]

    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    reported = ""
    if backend_info is not None:
        reported = f"{backend_info.coin} {backend_info.subversion}".lower()

    for coin in candidates:
        if any(hint in reported for hint in coin.subversion_hints):
            return coin

    for coin in candidates:
        if not coin.subversion_hints:
            return coin

    return None


def get_coin_info_by_currency(currency: str) -> CoinInfo | None:
    """Find a known coin by shortcut ("BTC") or name ("Bitcoin"), case-insensitive."""
    currency = currency.lower()
    for coin in KNOWN_COINS:
        if coin.shortcut.lower() == currency or coin.name.lower() == currency:
            return coin
    return None
