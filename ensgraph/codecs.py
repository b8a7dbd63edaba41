"""
Rendering of raw resolver record bytes into their human-readable forms.

Coin addresses follow the SLIP-44 coin types stored by multicoin resolvers
(EIP-2304); content hashes follow the EIP-1577 codec prefixes.
"""

from typing import Optional

import base58
import bech32

from .normalize import to_checksum_address

COIN_TYPE_ETH = 60
COIN_TYPE_BTC = 0
COIN_TYPE_LTC = 2

# coin type -> (p2pkh version, p2sh version, segwit hrp)
BITCOIN_LIKE = {
    COIN_TYPE_BTC: (0x00, 0x05, "bc"),
    COIN_TYPE_LTC: (0x30, 0x32, "ltc"),
}

IPFS_PREFIX = bytes.fromhex("e3010170")
IPNS_PREFIX = bytes.fromhex("e5010172")
SWARM_PREFIX = bytes.fromhex("e40101fa011b20")


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _encode_bitcoin_script(script: bytes, coin_type: int) -> Optional[str]:
    p2pkh, p2sh, hrp = BITCOIN_LIKE[coin_type]

    if len(script) == 25 and script[:3] == b"\x76\xa9\x14" and script[23:] == b"\x88\xac":
        return base58.b58encode_check(bytes([p2pkh]) + script[3:23]).decode("ascii")

    if len(script) == 23 and script[:2] == b"\xa9\x14" and script[22:] == b"\x87":
        return base58.b58encode_check(bytes([p2sh]) + script[2:22]).decode("ascii")

    # Witness v0 only: v1+ (taproot) needs bech32m, which the bech32 package does not produce
    if len(script) >= 4 and script[0] == 0x00:
        program = script[2:]
        if script[1] == len(program):
            return bech32.encode(hrp, 0, list(program))

    return None


def format_coin_address(coin_type: int, raw: bytes) -> Optional[str]:
    """Render a multicoin ``addr`` record; empty records come back as None."""
    if not raw:
        return None
    if coin_type == COIN_TYPE_ETH:
        if len(raw) != 20:
            return to_hex(raw)
        if raw == b"\x00" * 20:
            return None
        return to_checksum_address(raw)
    if coin_type in BITCOIN_LIKE:
        encoded = _encode_bitcoin_script(raw, coin_type)
        if encoded:
            return encoded
    return to_hex(raw)


def format_content_hash(raw: bytes) -> Optional[str]:
    """Render an EIP-1577 content hash as ipfs://, ipns://, bzz:// or hex."""
    if not raw:
        return None
    if raw.startswith(IPFS_PREFIX) and len(raw) > len(IPFS_PREFIX):
        return "ipfs://" + base58.b58encode(raw[len(IPFS_PREFIX):]).decode("ascii")
    if raw.startswith(IPNS_PREFIX) and len(raw) > len(IPNS_PREFIX):
        return "ipns://" + base58.b58encode(raw[len(IPNS_PREFIX):]).decode("ascii")
    if raw.startswith(SWARM_PREFIX) and len(raw) == len(SWARM_PREFIX) + 32:
        return "bzz://" + raw[len(SWARM_PREFIX):].hex()
    return to_hex(raw)


def format_legacy_content(raw: Optional[bytes]) -> Optional[str]:
    """Legacy ``content(bytes32)`` records are bare 32-byte hashes."""
    if not raw or raw == b"\x00" * 32:
        return None
    return to_hex(raw)
