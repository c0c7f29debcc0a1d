"""Time-bounded, single-flight caching for credential providers.

Each cache key moves through ``empty -> refreshing -> valid(until)`` and back
to ``refreshing`` once ``until`` has passed. While a key is refreshing, other
callers for that key wait for the in-flight fetch instead of issuing their own.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta

import structlog

from .provider import CredentialProvider
from .types import CredentialSet

# Get logger for this module
logger = structlog.get_logger(__name__)

DEFAULT_CACHE_KEY = ""


def normalize_ttl(ttl: float | timedelta) -> float:
    """Normalize a TTL to seconds, rejecting negative values."""
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds < 0:
        raise ValueError(f"cache TTL must be non-negative, got {seconds}")  # noqa: TRY003
    return seconds


@dataclass
class CacheEntry:
    """A cached credential set and the monotonic time it expires at."""

    credentials: CredentialSet
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class _InFlight:
    done: threading.Event = field(default_factory=threading.Event)
    result: CredentialSet = field(default_factory=dict)
    error: BaseException | None = None


class CachingCredentialProvider:
    """Wrap a provider so ``provide`` results are reused for ``ttl`` seconds.

    The wrapped provider's credentials do not depend on the image by default,
    so every image shares one cache key. Pass ``key_func`` to cache per image
    or per registry instead.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        ttl: float | timedelta,
        key_func: Callable[[str], str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the caching wrapper.

        Args:
            provider: The provider whose results are cached.
            ttl: How long a fetched credential set stays valid.
            key_func: Maps an image reference to its cache key.
            clock: Monotonic clock in seconds.
        """
        self.provider = provider
        self.ttl = normalize_ttl(ttl)
        self._key_func = key_func or (lambda _image: DEFAULT_CACHE_KEY)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, _InFlight] = {}

    def enabled(self) -> bool:
        return self.provider.enabled()

    def provide(self, image: str) -> CredentialSet:
        key = self._key_func(image)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_valid(self._clock()):
                return dict(entry.credentials)

            call = self._in_flight.get(key)
            leader = call is None
            if call is None:
                call = _InFlight()
                self._in_flight[key] = call

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return dict(call.result)

        try:
            logger.debug("CREDENTIAL_CACHE_REFRESH", key=key, ttl=self.ttl)
            result = self.provider.provide(image)
        except BaseException as e:
            call.error = e
            with self._lock:
                del self._in_flight[key]
            call.done.set()
            raise

        call.result = result
        with self._lock:
            self._entries[key] = CacheEntry(
                credentials=dict(result), expires_at=self._clock() + self.ttl
            )
            del self._in_flight[key]
        call.done.set()
        return dict(result)

    def clear(self) -> None:
        """Drop every cached entry so the next ``provide`` refetches."""
        with self._lock:
            self._entries.clear()
