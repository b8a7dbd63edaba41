"""
Read-only bindings for the ENS contracts queried over eth_call.

Selectors are derived from the function signatures; arguments and return
values go through eth-abi.
"""

from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from .normalize import is_zero_address, keccak256, to_checksum_address
from .rpc import JsonRpcClient, RpcError

# ERC-165 interface ids of the resolver profiles we understand
INTERFACE_ERC165 = bytes.fromhex("01ffc9a7")
INTERFACE_ADDR = bytes.fromhex("3b3b57de")
INTERFACE_MULTICOIN_ADDR = bytes.fromhex("f1cb7e06")
INTERFACE_TEXT = bytes.fromhex("59d1d43c")
INTERFACE_CONTENTHASH = bytes.fromhex("bc1c58d1")
INTERFACE_LEGACY_CONTENT = bytes.fromhex("d8389dc5")


def function_selector(signature: str) -> bytes:
    return keccak256(signature.encode("ascii"))[:4]


def _arg_types(signature: str) -> list:
    inner = signature[signature.index("(") + 1:-1]
    return [t for t in inner.split(",") if t]


class ContractFunction:
    """One view function: ``ContractFunction("owner(bytes32)", ["address"])``."""

    def __init__(self, signature: str, output_types: Sequence[str]):
        self.signature = signature
        self.selector = function_selector(signature)
        self.input_types = _arg_types(signature)
        self.output_types = list(output_types)

    def encode_call(self, *args) -> bytes:
        if len(args) != len(self.input_types):
            raise TypeError(
                f"{self.signature} takes {len(self.input_types)} arguments, got {len(args)}"
            )
        return self.selector + encode(self.input_types, list(args))

    def decode_result(self, data: bytes) -> Optional[tuple]:
        # Calls to accounts without code return no data at all
        if not data:
            return None
        try:
            return decode(self.output_types, data)
        except DecodingError as e:
            raise RpcError(f"Could not decode {self.signature} result: {e}")


class Contract:
    """Base class binding a deployed address to a JSON-RPC client."""

    functions: dict = {}

    def __init__(self, client: JsonRpcClient, address: str):
        self.client = client
        self.address = to_checksum_address(address)

    def call(self, name: str, *args) -> Optional[Any]:
        """Call a view function and return its single decoded output, if any."""
        fn = self.functions[name]
        raw = self.client.eth_call(self.address, fn.encode_call(*args))
        decoded = fn.decode_result(raw)
        if decoded is None:
            return None
        return decoded[0] if len(decoded) == 1 else decoded

    def call_address(self, name: str, *args) -> Optional[str]:
        value = self.call(name, *args)
        if value is None or is_zero_address(value):
            return None
        return to_checksum_address(value)


class Registry(Contract):
    """ENS registry: ownership and resolver per namehash."""

    functions = {
        "owner": ContractFunction("owner(bytes32)", ["address"]),
        "resolver": ContractFunction("resolver(bytes32)", ["address"]),
    }

    def owner(self, node: bytes) -> Optional[str]:
        return self.call_address("owner", node)

    def resolver(self, node: bytes) -> Optional[str]:
        return self.call_address("resolver", node)


class BaseRegistrar(Contract):
    """The .eth base registrar, tracking expiry per labelhash."""

    functions = {
        "nameExpires": ContractFunction("nameExpires(uint256)", ["uint256"]),
    }

    def name_expires(self, label_hash: bytes) -> Optional[int]:
        return self.call("nameExpires", int.from_bytes(label_hash, "big"))


class ResolverContract(Contract):
    """Raw resolver ABI covering both legacy and current profiles."""

    functions = {
        "supportsInterface": ContractFunction("supportsInterface(bytes4)", ["bool"]),
        "addr": ContractFunction("addr(bytes32)", ["address"]),
        "addrMulticoin": ContractFunction("addr(bytes32,uint256)", ["bytes"]),
        "text": ContractFunction("text(bytes32,string)", ["string"]),
        "contenthash": ContractFunction("contenthash(bytes32)", ["bytes"]),
        "content": ContractFunction("content(bytes32)", ["bytes32"]),
    }

    def supports_interface(self, interface_id: bytes) -> bool:
        """ERC-165 interface check; any failure reads as "not supported"."""
        try:
            return bool(self.call("supportsInterface", interface_id))
        except RpcError:
            return False
