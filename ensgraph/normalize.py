from typing import Tuple

from Crypto.Hash import keccak

ZERO_NODE = b"\x00" * 32
ZERO_ADDRESS = "0x" + "0" * 40


def normalize_name(name: str) -> str:
    return name.strip().lower()


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def labelhash(label: str) -> bytes:
    return keccak256(label.encode("utf-8"))


def namehash(name: str) -> bytes:
    """EIP-137 namehash of a normalized name ("" hashes to the zero node)."""
    node = ZERO_NODE
    name = normalize_name(name)
    if not name:
        return node
    for label in reversed(name.split(".")):
        node = keccak256(node + labelhash(label))
    return node


def first_label(name: str) -> str:
    return normalize_name(name).split(".")[0]


def to_checksum_address(address) -> str:
    """EIP-55 mixed-case form of a 20-byte address (bytes or hex string)."""
    if isinstance(address, (bytes, bytearray)):
        hex_addr = bytes(address).hex()
    else:
        hex_addr = address.lower()
        if hex_addr.startswith("0x"):
            hex_addr = hex_addr[2:]
    if len(hex_addr) != 40:
        raise ValueError(f"Address must be 20 bytes: {address!r}")
    digest = keccak256(hex_addr.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(hex_addr)
    )


def is_zero_address(address: str | None) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def normalize_edge(a: str, b: str) -> Tuple[str, str]:
    # Lexicographic order so (a, b) and (b, a) are one edge
    first, second = sorted([a.strip(), b.strip()])
    return (first, second)


def same_edge(left: Tuple[str, str], right: Tuple[str, str]) -> bool:
    return normalize_edge(*left) == normalize_edge(*right)
