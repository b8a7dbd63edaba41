"""
Resolver handles.

A ResolverHandle exposes the record lookups of one resolver contract under a
fixed set of capability names. Which capabilities a handle offers is decided
once, when the resolver is opened, from the ERC-165 interfaces the contract
advertises; callers check ``supports()`` instead of probing for methods.

Two variants exist, one per resolver generation:

- PublicResolver: resolvers implementing EIP-1577 content hashes, usually
  alongside EIP-2304 multicoin addresses and EIP-634 text records.
- LegacyResolver: older deployments with EIP-137 ``addr``, optional text
  records and the pre-EIP-1577 ``content(bytes32)`` record.
"""

from enum import Enum
from typing import Iterable, Optional

from .codecs import (
    COIN_TYPE_ETH,
    format_coin_address,
    format_content_hash,
    format_legacy_content,
)
from .contracts import (
    INTERFACE_ADDR,
    INTERFACE_CONTENTHASH,
    INTERFACE_ERC165,
    INTERFACE_LEGACY_CONTENT,
    INTERFACE_MULTICOIN_ADDR,
    INTERFACE_TEXT,
    ResolverContract,
)
from .logger import get_logger
from .rpc import JsonRpcClient

logger = get_logger()


class Capability(str, Enum):
    GET_ADDRESS = "get_address"
    GET_ADDR = "get_addr"
    ADDR = "addr"
    GET_TEXT = "get_text"
    TEXT = "text"
    GET_CONTENT_HASH = "get_content_hash"
    CONTENT_HASH = "content_hash"


class UnsupportedCapability(NotImplementedError):
    """Raised when a handle is asked for a lookup its resolver does not offer."""

    def __init__(self, capability: Capability, address: str = ""):
        super().__init__(f"Resolver {address or '?'} does not support {capability.value}")
        self.capability = capability


class ResolverHandle:
    """Base resolver handle; every lookup is unsupported unless a variant overrides it."""

    def __init__(self, address: str, capabilities: Iterable[Capability] = ()):
        self.address = address
        self.capabilities = frozenset(capabilities)

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _unsupported(self, capability: Capability):
        raise UnsupportedCapability(capability, self.address)

    def get_address(self, coin_type: Optional[int] = None) -> Optional[str]:
        self._unsupported(Capability.GET_ADDRESS)

    def get_addr(self, coin_type: int) -> Optional[str]:
        self._unsupported(Capability.GET_ADDR)

    def addr(self, coin_type: int) -> Optional[str]:
        self._unsupported(Capability.ADDR)

    def get_text(self, key: str) -> Optional[str]:
        self._unsupported(Capability.GET_TEXT)

    def text(self, key: str) -> Optional[str]:
        self._unsupported(Capability.TEXT)

    def get_content_hash(self) -> Optional[str]:
        self._unsupported(Capability.GET_CONTENT_HASH)

    def content_hash(self) -> Optional[str]:
        self._unsupported(Capability.CONTENT_HASH)

    def __repr__(self) -> str:
        caps = ",".join(sorted(c.value for c in self.capabilities))
        return f"{type(self).__name__}({self.address}, [{caps}])"


class _ContractResolver(ResolverHandle):
    def __init__(
        self,
        contract: ResolverContract,
        node: bytes,
        capabilities: Iterable[Capability],
        multicoin: bool = False,
    ):
        super().__init__(contract.address, capabilities)
        self.contract = contract
        self.node = node
        self.multicoin = multicoin

    def _multicoin_address(self, coin_type: int) -> Optional[str]:
        raw = self.contract.call("addrMulticoin", self.node, coin_type)
        return format_coin_address(coin_type, raw or b"")

    def _text_record(self, key: str) -> Optional[str]:
        return self.contract.call("text", self.node, key) or None


class PublicResolver(_ContractResolver):
    def get_address(self, coin_type: Optional[int] = None) -> Optional[str]:
        if not self.supports(Capability.GET_ADDRESS):
            self._unsupported(Capability.GET_ADDRESS)
        if coin_type is None:
            coin_type = COIN_TYPE_ETH
        if coin_type == COIN_TYPE_ETH and not self.multicoin:
            return self.contract.call_address("addr", self.node)
        if not self.multicoin:
            self._unsupported(Capability.GET_ADDRESS)
        return self._multicoin_address(coin_type)

    def get_text(self, key: str) -> Optional[str]:
        if not self.supports(Capability.GET_TEXT):
            self._unsupported(Capability.GET_TEXT)
        return self._text_record(key)

    def get_content_hash(self) -> Optional[str]:
        if not self.supports(Capability.GET_CONTENT_HASH):
            self._unsupported(Capability.GET_CONTENT_HASH)
        return format_content_hash(self.contract.call("contenthash", self.node) or b"")


class LegacyResolver(_ContractResolver):
    def addr(self, coin_type: int) -> Optional[str]:
        if not self.supports(Capability.ADDR):
            self._unsupported(Capability.ADDR)
        # EIP-137 addr records only hold the Ethereum address
        if coin_type != COIN_TYPE_ETH:
            return None
        return self.contract.call_address("addr", self.node)

    def get_addr(self, coin_type: int) -> Optional[str]:
        if not self.supports(Capability.GET_ADDR):
            self._unsupported(Capability.GET_ADDR)
        return self._multicoin_address(coin_type)

    def text(self, key: str) -> Optional[str]:
        if not self.supports(Capability.TEXT):
            self._unsupported(Capability.TEXT)
        return self._text_record(key)

    def content_hash(self) -> Optional[str]:
        if not self.supports(Capability.CONTENT_HASH):
            self._unsupported(Capability.CONTENT_HASH)
        return format_legacy_content(self.contract.call("content", self.node))


def open_resolver(client: JsonRpcClient, address: str, node: bytes) -> ResolverHandle:
    """Probe a resolver contract once and return the matching handle variant."""
    contract = ResolverContract(client, address)

    if not contract.supports_interface(INTERFACE_ERC165):
        # Pre-ERC-165 resolvers: attempt the classic records, failures read as absent
        logger.debug("Resolver does not implement ERC-165", resolver=contract.address)
        return LegacyResolver(
            contract, node, [Capability.ADDR, Capability.TEXT, Capability.CONTENT_HASH]
        )

    has_addr = contract.supports_interface(INTERFACE_ADDR)
    has_multicoin = contract.supports_interface(INTERFACE_MULTICOIN_ADDR)
    has_text = contract.supports_interface(INTERFACE_TEXT)

    if contract.supports_interface(INTERFACE_CONTENTHASH):
        caps = [Capability.GET_CONTENT_HASH]
        if has_addr or has_multicoin:
            caps.append(Capability.GET_ADDRESS)
        if has_text:
            caps.append(Capability.GET_TEXT)
        handle = PublicResolver(contract, node, caps, multicoin=has_multicoin)
    else:
        caps = []
        if has_addr:
            caps.append(Capability.ADDR)
        if has_multicoin:
            caps.append(Capability.GET_ADDR)
        if has_text:
            caps.append(Capability.TEXT)
        if contract.supports_interface(INTERFACE_LEGACY_CONTENT):
            caps.append(Capability.CONTENT_HASH)
        handle = LegacyResolver(contract, node, caps, multicoin=has_multicoin)

    logger.debug("Opened resolver", resolver=repr(handle))
    return handle
