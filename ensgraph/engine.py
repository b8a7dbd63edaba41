"""
Profile resolution engine.

Turns one ENS name into a ResolvedProfile by running a cascade of lookups
against a NameResolutionProvider:

1. forward resolution of the primary address (failure is logged, not fatal)
2. resolver discovery (no resolver ends the search as "not found")
3. owner, content hash, text records, coin addresses and expiry, run
   concurrently, each behind its own failure boundary

Only a failure of the orchestration itself (provider construction, resolver
discovery) produces a profile with ``fatal_error`` set. Every other failure
leaves the affected field absent and is logged as a warning.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .codecs import COIN_TYPE_BTC, COIN_TYPE_ETH, COIN_TYPE_LTC
from .config import Settings
from .logger import get_logger
from .normalize import first_label, labelhash, namehash, normalize_name
from .provider import JsonRpcNameProvider, NameResolutionProvider
from .resolvers import Capability, ResolverHandle, UnsupportedCapability

logger = get_logger()

TEXT_RECORD_KEYS = (
    "name",
    "description",
    "url",
    "avatar",
    "email",
    "com.twitter",
    "com.github",
    "com.discord",
    "notice",
    "org.telegram",
    "vnd.twitter",
)

COIN_TYPES = {
    "ETH": COIN_TYPE_ETH,
    "BTC": COIN_TYPE_BTC,
    "LTC": COIN_TYPE_LTC,
}

EXPIRY_SUFFIX = ".eth"


class LookupStatus(str, Enum):
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"
    ERROR = "error"


@dataclass(frozen=True)
class LookupOutcome:
    status: LookupStatus
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.SUPPORTED and bool(self.value)


Strategy = Tuple[Capability, tuple]


def attempt(handle: ResolverHandle, capability: Capability, args: tuple = ()) -> LookupOutcome:
    """Invoke one resolver capability, never raising."""
    if not handle.supports(capability):
        return LookupOutcome(LookupStatus.UNSUPPORTED)
    method = getattr(handle, capability.value)
    try:
        return LookupOutcome(LookupStatus.SUPPORTED, method(*args))
    except UnsupportedCapability:
        return LookupOutcome(LookupStatus.UNSUPPORTED)
    except Exception as e:
        return LookupOutcome(LookupStatus.ERROR, error=e)


def first_success(handle: ResolverHandle, strategies: Sequence[Strategy]) -> LookupOutcome:
    """Try strategies in order and stop at the first non-empty value.

    Without a hit, the last error is reported if any strategy raised,
    otherwise the last unsupported/empty outcome.
    """
    last = LookupOutcome(LookupStatus.UNSUPPORTED)
    last_error = None
    for capability, args in strategies:
        outcome = attempt(handle, capability, args)
        if outcome.found:
            return outcome
        if outcome.status is LookupStatus.ERROR:
            last_error = outcome
        last = outcome
    return last_error or last


def guarded(fn: Callable, *args) -> LookupOutcome:
    try:
        return LookupOutcome(LookupStatus.SUPPORTED, fn(*args))
    except Exception as e:
        return LookupOutcome(LookupStatus.ERROR, error=e)


def coin_strategies(coin_type: int) -> List[Strategy]:
    # The primary method takes no coin argument for the chain's native address
    primary_args = () if coin_type == COIN_TYPE_ETH else (coin_type,)
    return [
        (Capability.GET_ADDRESS, primary_args),
        (Capability.GET_ADDR, (coin_type,)),
        (Capability.ADDR, (coin_type,)),
    ]


def text_strategies(key: str) -> List[Strategy]:
    return [(Capability.GET_TEXT, (key,)), (Capability.TEXT, (key,))]


CONTENT_HASH_STRATEGIES: List[Strategy] = [
    (Capability.GET_CONTENT_HASH, ()),
    (Capability.CONTENT_HASH, ()),
]


def expiry_applies(name: str) -> bool:
    return normalize_name(name).endswith(EXPIRY_SUFFIX)


def to_expiry(value) -> Optional[datetime]:
    if value is None:
        return None
    seconds = int(value)
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@dataclass
class ResolvedProfile:
    """Result of one resolution; exactly one of not_found / fatal_error / data applies."""

    queried_name: str
    resolved_address: Optional[str] = None
    owner_address: Optional[str] = None
    resolver_address: Optional[str] = None
    text_records: Dict[str, str] = field(default_factory=dict)
    coin_addresses: Dict[str, str] = field(default_factory=dict)
    content_hash: Optional[str] = None
    expiry: Optional[datetime] = None
    not_found: bool = False
    fatal_error: Optional[str] = None
    generation: int = 0

    @property
    def outcome(self) -> str:
        if self.fatal_error is not None:
            return "error"
        if self.not_found:
            return "not_found"
        return "profile"

    @property
    def has_data(self) -> bool:
        return bool(self.owner_address or self.resolved_address or self.text_records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queried_name": self.queried_name,
            "outcome": self.outcome,
            "resolved_address": self.resolved_address,
            "owner_address": self.owner_address,
            "resolver_address": self.resolver_address,
            "text_records": dict(self.text_records),
            "coin_addresses": dict(self.coin_addresses),
            "content_hash": self.content_hash,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "not_found": self.not_found,
            "fatal_error": self.fatal_error,
        }


class ProfileResolutionEngine:
    """Resolves names into profiles; one instance can serve many searches."""

    def __init__(
        self,
        provider: Optional[NameResolutionProvider] = None,
        settings: Optional[Settings] = None,
        provider_factory: Optional[Callable[[Settings], NameResolutionProvider]] = None,
        text_keys: Sequence[str] = TEXT_RECORD_KEYS,
        coin_types: Optional[Dict[str, int]] = None,
    ):
        self.settings = settings or Settings()
        self._provider = provider
        self._provider_factory = provider_factory or JsonRpcNameProvider.from_settings
        self.text_keys = tuple(text_keys)
        self.coin_types = dict(COIN_TYPES if coin_types is None else coin_types)

    @property
    def provider(self) -> NameResolutionProvider:
        if self._provider is None:
            self._provider = self._provider_factory(self.settings)
        return self._provider

    def resolve(self, name: str, generation: int = 0) -> ResolvedProfile:
        """Resolve ``name``; never raises."""
        try:
            return self._resolve(name, generation)
        except Exception as e:
            logger.error("Resolution failed", name=name, error=str(e))
            return ResolvedProfile(queried_name=name, fatal_error=str(e), generation=generation)

    def _resolve(self, name: str, generation: int) -> ResolvedProfile:
        if not name or not name.strip():
            raise ValueError("A name is required")

        provider = self.provider
        profile = ResolvedProfile(queried_name=name, generation=generation)

        try:
            profile.resolved_address = provider.resolve_forward_address(name)
        except Exception as e:
            logger.warning("Forward resolution failed", name=name, error=str(e))

        handle = provider.get_resolver(name)
        if handle is None:
            logger.info("No resolver found", name=name)
            return ResolvedProfile(queried_name=name, not_found=True, generation=generation)

        profile.resolver_address = handle.address
        self._collect_records(name, provider, handle, profile)
        logger.info(
            "Resolved profile",
            name=name,
            text_records=len(profile.text_records),
            coins=len(profile.coin_addresses),
        )
        return profile

    def _tasks(
        self, name: str, provider: NameResolutionProvider, handle: ResolverHandle
    ) -> List[Tuple[str, Optional[str], Callable[[], LookupOutcome]]]:
        node = namehash(name)
        tasks = [("owner", None, lambda: guarded(provider.owner_of, node))]

        if self.settings.lookup_content_hash:
            tasks.append(("content_hash", None, lambda: first_success(handle, CONTENT_HASH_STRATEGIES)))

        for key in self.text_keys:
            tasks.append(("text", key, lambda key=key: first_success(handle, text_strategies(key))))

        if self.settings.lookup_coins:
            for label, coin_type in self.coin_types.items():
                tasks.append((
                    "coin",
                    label,
                    lambda coin_type=coin_type: first_success(handle, coin_strategies(coin_type)),
                ))

        if self.settings.lookup_expiry and expiry_applies(name):
            label_hash = labelhash(first_label(name))
            tasks.append((
                "expiry",
                None,
                lambda: guarded(lambda: to_expiry(provider.expiry_of(label_hash))),
            ))

        return tasks

    def _settle(self, name: str, kind: str, key: Optional[str], task) -> Optional[Any]:
        logger.record_lookup_attempt(kind)
        outcome = task()
        if outcome.status is LookupStatus.ERROR:
            logger.record_lookup_failure(kind, type(outcome.error).__name__)
            logger.warning(
                f"{kind} lookup failed",
                name=name,
                key=key,
                error=str(outcome.error),
            )
            return None
        if not outcome.found:
            return None
        logger.record_lookup_success(kind)
        return outcome.value

    def _collect_records(
        self,
        name: str,
        provider: NameResolutionProvider,
        handle: ResolverHandle,
        profile: ResolvedProfile,
    ) -> None:
        tasks = self._tasks(name, provider, handle)
        workers = max(1, min(self.settings.max_workers, len(tasks)))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                (kind, key, executor.submit(self._settle, name, kind, key, task))
                for kind, key, task in tasks
            ]
            wait([f for _, _, f in futures])

        for kind, key, future in futures:
            value = future.result()
            if value is None:
                continue
            if kind == "owner":
                profile.owner_address = value
            elif kind == "content_hash":
                profile.content_hash = value
            elif kind == "text":
                profile.text_records[key] = value
            elif kind == "coin":
                profile.coin_addresses[key] = value
            elif kind == "expiry":
                profile.expiry = value


class SearchSession:
    """Tracks the profile on display while searches may overlap.

    Each search takes a generation token; only the result of the most recent
    search is published, so a slow superseded search cannot overwrite it.
    """

    def __init__(self, engine: ProfileResolutionEngine):
        self.engine = engine
        self.current: Optional[ResolvedProfile] = None
        self._lock = threading.Lock()
        self._generation = 0
        self._applied = 0

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._applied != self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def apply(self, token: int, profile: ResolvedProfile) -> bool:
        with self._lock:
            if token != self._generation:
                logger.debug("Discarding stale result", name=profile.queried_name, token=token)
                return False
            self.current = profile
            self._applied = token
            return True

    def search(self, name: str) -> Optional[ResolvedProfile]:
        """Resolve ``name``; returns None when a newer search superseded this one."""
        token = self.begin()
        profile = self.engine.resolve(name, generation=token)
        if self.apply(token, profile):
            return profile
        return None
