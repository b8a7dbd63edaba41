"""
Pytest configuration and shared fixtures.
"""

import pytest
import json
from pathlib import Path
from typing import Dict, Optional

from eth_abi import decode, encode

from ensgraph.config import Settings
from ensgraph.contracts import INTERFACE_ERC165, ContractFunction, function_selector
from ensgraph.provider import NameResolutionProvider
from ensgraph.resolvers import Capability, ResolverHandle
from ensgraph.rpc import RpcError

VITALIK_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
OWNER_ADDRESS = "0x220866B1A2219f40e72f5c628B65D54268cA3A9D"
RESOLVER_ADDRESS = "0x231b0Ee14048e9dCcD1d247744d114a4EB5E8E63"


class StubResolver(ResolverHandle):
    """Resolver handle whose answers and failures are configured per capability.

    ``records`` maps a capability to either a callable (called with the
    lookup arguments) or a plain value returned for every call.
    """

    def __init__(self, records: Optional[Dict[Capability, object]] = None, address: str = RESOLVER_ADDRESS):
        records = records or {}
        super().__init__(address, records.keys())
        self.records = records
        self.calls = []

    def _answer(self, capability, *args):
        self.calls.append((capability, args))
        answer = self.records[capability]
        if callable(answer):
            return answer(*args)
        return answer

    def get_address(self, coin_type=None):
        return self._answer(Capability.GET_ADDRESS, *(() if coin_type is None else (coin_type,)))

    def get_addr(self, coin_type):
        return self._answer(Capability.GET_ADDR, coin_type)

    def addr(self, coin_type):
        return self._answer(Capability.ADDR, coin_type)

    def get_text(self, key):
        return self._answer(Capability.GET_TEXT, key)

    def text(self, key):
        return self._answer(Capability.TEXT, key)

    def get_content_hash(self):
        return self._answer(Capability.GET_CONTENT_HASH)

    def content_hash(self):
        return self._answer(Capability.CONTENT_HASH)


class StubProvider(NameResolutionProvider):
    """Provider stub; set an attribute to an Exception instance to make that call raise."""

    def __init__(
        self,
        resolver: Optional[ResolverHandle] = None,
        forward_address=None,
        owner=None,
        expiry=None,
    ):
        self.resolver = resolver
        self.forward_address = forward_address
        self.owner = owner
        self.expiry = expiry
        self.expiry_calls = []
        self.owner_calls = []

    @staticmethod
    def _value(value):
        if isinstance(value, Exception):
            raise value
        return value

    def resolve_forward_address(self, name):
        return self._value(self.forward_address)

    def get_resolver(self, name):
        return self._value(self.resolver)

    def owner_of(self, node):
        self.owner_calls.append(node)
        return self._value(self.owner)

    def expiry_of(self, label_hash):
        self.expiry_calls.append(label_hash)
        return self._value(self.expiry)


def text_lookup(records: Dict[str, str]):
    """get_text/text answer: value for known keys, empty string otherwise."""
    return lambda key: records.get(key, "")


@pytest.fixture
def settings() -> Settings:
    return Settings(rpc_url="http://localhost:8545", max_workers=4)


@pytest.fixture
def full_resolver() -> StubResolver:
    """Modern resolver with an ETH address, two text records and a content hash."""
    return StubResolver({
        Capability.GET_ADDRESS: lambda *args: VITALIK_ADDRESS if not args else None,
        Capability.GET_TEXT: text_lookup({"name": "Vitalik", "url": "https://vitalik.ca"}),
        Capability.GET_CONTENT_HASH: "ipfs://QmTest",
    })


@pytest.fixture
def full_provider(full_resolver) -> StubProvider:
    return StubProvider(
        resolver=full_resolver,
        forward_address=VITALIK_ADDRESS,
        owner=OWNER_ADDRESS,
        expiry=1_900_000_000,
    )


@pytest.fixture
def pairs_text() -> str:
    return "vitalik.eth, balajis.eth\nvitalik.eth, santi.eth\nlfield.eth, vitalik.eth\n"


@pytest.fixture
def pairs_file(tmp_path, pairs_text) -> Path:
    path = tmp_path / "pairs.txt"
    path.write_text(pairs_text, encoding="utf-8")
    return path


@pytest.fixture
def edges_path(tmp_path) -> Path:
    return tmp_path / "data" / "edges.json"


@pytest.fixture
def populated_edges_path(tmp_path) -> Path:
    """Store file with two custom edges."""
    path = tmp_path / "edges.json"
    path.write_text(json.dumps({
        "ens-custom-edges": [["alice.eth", "bob.eth"], ["bob.eth", "carol.eth"]]
    }, indent=2))
    return path


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'db' / 'edges.db'}"


class FakeChainClient:
    """eth_call stand-in answering by function selector with ABI-encoded data.

    ``responses`` maps a function signature to bytes, a callable taking the
    call arguments, or an Exception instance to raise. ``supportsInterface``
    is answered from ``interfaces``; ``erc165=False`` makes every interface check fail.
    """

    def __init__(self, interfaces=(), responses=None, erc165=True):
        self.interfaces = set(interfaces)
        if erc165:
            self.interfaces.add(INTERFACE_ERC165)
        self.responses = responses or {}
        self.calls = []

    def eth_call(self, to, data):
        self.calls.append((to, data))
        selector = data[:4]
        if selector == function_selector("supportsInterface(bytes4)"):
            if not self.interfaces:
                raise RpcError("execution reverted")
            (iface,) = decode(["bytes4"], data[4:])
            return encode(["bool"], [iface in self.interfaces])

        for signature, answer in self.responses.items():
            fn = ContractFunction(signature, [])
            if fn.selector != selector:
                continue
            if isinstance(answer, Exception):
                raise answer
            if callable(answer):
                return answer(*decode(fn.input_types, data[4:]))
            return answer
        return b""
