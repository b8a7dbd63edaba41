"""
Name resolution providers.

The engine talks to a NameResolutionProvider; JsonRpcNameProvider is the
concrete one, reading the ENS registry, resolvers and the .eth registrar
through ``eth_call`` on a configured JSON-RPC endpoint.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .codecs import COIN_TYPE_ETH
from .config import Settings
from .contracts import BaseRegistrar, Registry
from .logger import get_logger
from .normalize import namehash, normalize_name
from .resolvers import Capability, ResolverHandle, open_resolver
from .rpc import JsonRpcClient

logger = get_logger()


class NameResolutionProvider(ABC):
    """Capabilities the profile engine needs from the naming system."""

    @abstractmethod
    def resolve_forward_address(self, name: str) -> Optional[str]:
        """Primary address the name points at, or None."""

    @abstractmethod
    def get_resolver(self, name: str) -> Optional[ResolverHandle]:
        """Handle for the resolver responsible for ``name``, or None if it has none."""

    @abstractmethod
    def owner_of(self, node: bytes) -> Optional[str]:
        """Registry owner of a namehash."""

    @abstractmethod
    def expiry_of(self, label_hash: bytes) -> Optional[int]:
        """Registrar expiry (unix seconds) of a .eth labelhash."""


def primary_address(handle: ResolverHandle) -> Optional[str]:
    """Ethereum address record of a resolver, via whichever variant it offers."""
    if handle.supports(Capability.GET_ADDRESS):
        return handle.get_address()
    if handle.supports(Capability.ADDR):
        return handle.addr(COIN_TYPE_ETH)
    if handle.supports(Capability.GET_ADDR):
        return handle.get_addr(COIN_TYPE_ETH)
    return None


class JsonRpcNameProvider(NameResolutionProvider):
    def __init__(self, client: JsonRpcClient, registry_address: str, registrar_address: str):
        self.client = client
        self.registry = Registry(client, registry_address)
        self.registrar = BaseRegistrar(client, registrar_address)
        # Handle opened by resolve_forward_address, consumed by the next get_resolver
        self._opened: Dict[str, Optional[ResolverHandle]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonRpcNameProvider":
        client = JsonRpcClient(settings.rpc_url, timeout=settings.request_timeout)
        return cls(client, settings.registry_address, settings.registrar_address)

    def _open(self, name: str) -> Optional[ResolverHandle]:
        node = namehash(name)
        resolver_address = self.registry.resolver(node)
        if resolver_address is None:
            logger.debug("No resolver set", name=name)
            return None
        return open_resolver(self.client, resolver_address, node)

    def get_resolver(self, name: str) -> Optional[ResolverHandle]:
        name = normalize_name(name)
        with self._lock:
            if name in self._opened:
                return self._opened.pop(name)
        return self._open(name)

    def resolve_forward_address(self, name: str) -> Optional[str]:
        name = normalize_name(name)
        handle = self._open(name)
        with self._lock:
            self._opened[name] = handle
        if handle is None:
            return None
        return primary_address(handle)

    def owner_of(self, node: bytes) -> Optional[str]:
        return self.registry.owner(node)

    def expiry_of(self, label_hash: bytes) -> Optional[int]:
        return self.registrar.name_expires(label_hash)
