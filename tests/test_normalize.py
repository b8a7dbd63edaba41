"""
Tests for normalize.py - name hashing, checksums and edge orientation.
"""

import pytest

from ensgraph.normalize import (
    first_label,
    is_zero_address,
    keccak256,
    labelhash,
    namehash,
    normalize_edge,
    normalize_name,
    same_edge,
    to_checksum_address,
)


class TestHashing:
    def test_keccak_empty(self):
        assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"

    def test_namehash_root(self):
        assert namehash("") == b"\x00" * 32

    def test_namehash_eth(self):
        assert namehash("eth").hex() == "93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"

    def test_namehash_foo_eth(self):
        assert namehash("foo.eth").hex() == "de9b09fd7c5f901e23a3f19fecc54828e9c848539801e86591bd9801b019f84f"

    def test_namehash_normalizes_case_and_whitespace(self):
        assert namehash("  Foo.ETH ") == namehash("foo.eth")

    def test_labelhash_is_keccak_of_label(self):
        assert labelhash("vitalik") == keccak256(b"vitalik")

    def test_first_label(self):
        assert first_label("Sub.Vitalik.eth") == "sub"
        assert normalize_name(" A.eth ") == "a.eth"


class TestChecksum:
    @pytest.mark.parametrize("address", [
        "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
        "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
        "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
        "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
    ])
    def test_eip55_vectors(self, address):
        assert to_checksum_address(address.lower()) == address
        assert to_checksum_address(bytes.fromhex(address[2:])) == address

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError):
            to_checksum_address("0x1234")

    def test_zero_address(self):
        assert is_zero_address("0x" + "0" * 40)
        assert is_zero_address(None)
        assert not is_zero_address("0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed")


class TestEdges:
    def test_orientation_is_normalized(self):
        assert normalize_edge("b.eth", "a.eth") == ("a.eth", "b.eth")
        assert normalize_edge(" a.eth ", "b.eth") == ("a.eth", "b.eth")

    def test_same_edge_either_orientation(self):
        assert same_edge(("a.eth", "b.eth"), ("b.eth", "a.eth"))
        assert not same_edge(("a.eth", "b.eth"), ("a.eth", "c.eth"))
