"""
Runtime configuration.

Settings come from the environment (optionally seeded from a .env file via
load_env) and can be overridden per invocation by CLI flags.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .logger import LOG_LEVELS

DEFAULT_RPC_URL = "https://ethereum-rpc.publicnode.com"
ENS_REGISTRY_ADDRESS = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"
ETH_REGISTRAR_ADDRESS = "0x57f1887a8bf19b14fc0df6fd9b2acc9af147ea85"
DEFAULT_EDGES_PATH = "data/edges.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean (got {raw!r})")


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer (got {raw!r})")


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number (got {raw!r})")


def _env_level(key: str, default: str) -> str:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().upper()
    if value not in LOG_LEVELS:
        raise ValueError(f"{key} must be one of {', '.join(LOG_LEVELS)} (got {raw!r})")
    return value


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one process."""

    rpc_url: str = DEFAULT_RPC_URL
    request_timeout: float = 15.0
    registry_address: str = ENS_REGISTRY_ADDRESS
    registrar_address: str = ETH_REGISTRAR_ADDRESS
    max_workers: int = 8
    lookup_expiry: bool = True
    lookup_coins: bool = True
    lookup_content_hash: bool = True
    edges_path: Path = Path(DEFAULT_EDGES_PATH)
    database_url: Optional[str] = None
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ENSGRAPH_* environment variables."""
        log_dir = os.getenv("ENSGRAPH_LOG_DIR")
        return cls(
            rpc_url=os.getenv("ENSGRAPH_RPC_URL") or DEFAULT_RPC_URL,
            request_timeout=_env_float("ENSGRAPH_TIMEOUT", 15.0),
            registry_address=os.getenv("ENSGRAPH_REGISTRY_ADDRESS") or ENS_REGISTRY_ADDRESS,
            registrar_address=os.getenv("ENSGRAPH_REGISTRAR_ADDRESS") or ETH_REGISTRAR_ADDRESS,
            max_workers=_env_int("ENSGRAPH_MAX_WORKERS", 8),
            lookup_expiry=_env_bool("ENSGRAPH_LOOKUP_EXPIRY", True),
            lookup_coins=_env_bool("ENSGRAPH_LOOKUP_COINS", True),
            lookup_content_hash=_env_bool("ENSGRAPH_LOOKUP_CONTENT_HASH", True),
            edges_path=Path(os.getenv("ENSGRAPH_EDGES_PATH") or DEFAULT_EDGES_PATH),
            database_url=os.getenv("ENSGRAPH_DATABASE_URL") or None,
            log_level=_env_level("ENSGRAPH_LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "edges_path" in changes:
            changes["edges_path"] = Path(changes["edges_path"])
        return replace(self, **changes)

    @property
    def remote_configured(self) -> bool:
        return bool(self.database_url)
