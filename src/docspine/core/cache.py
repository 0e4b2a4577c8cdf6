"""
Bounded in-memory LRU cache.

Replaces garbage-collector-driven weak caches with an explicit size bound and
optional TTL. Used for the per-document surrogate index and for the
``RETAINED`` identity-cache policy.

Manifesto:
    Caches keyed on document text or domain objects must not grow without
    bound in a long-running process. A fixed ``max_size`` with
    least-recently-used eviction makes the memory ceiling a configuration
    value instead of a property of the runtime's collector.

    - **Bounded:** Never holds more than ``max_size`` entries
    - **Thread-safe:** All operations run under one lock
    - **Any hashable key:** Not limited to strings

Examples:
    >>> cache = LRUCache(max_size=2)
    >>> cache.set("a", 1); cache.set("b", 2); cache.set("c", 3)
    >>> cache.get("a") is None
    True
    >>> cache.get_or_compute("d", lambda: 4)
    4

Tags:
    cache, lru, ttl, thread-safe, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Hashable
from typing import Any, Callable, Iterator


_MISSING = object()


class LRUCache:
    """Bounded, thread-safe LRU cache with optional TTL.

    Attributes:
        max_size: Maximum number of keys before LRU eviction.
        default_ttl_seconds: Default TTL for keys (``None`` → no expiry).
    """

    def __init__(
        self,
        *,
        max_size: int = 1024,
        default_ttl_seconds: float | None = None,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._store: OrderedDict[Hashable, tuple[Any, float | None]] = OrderedDict()
        self._lock = threading.RLock()
        self.max_size = max_size
        self.default_ttl_seconds = default_ttl_seconds

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and time.monotonic() > expires_at

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Retrieve a value by key, refreshing its recency."""
        with self._lock:
            entry = self._store.get(key, _MISSING)
            if entry is _MISSING:
                return default
            value, expires_at = entry
            if self._expired(expires_at):
                del self._store[key]
                return default
            self._store.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any, *, ttl_seconds: float | None = None) -> None:
        """Store a value, evicting the least recently used key when full."""
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        expires_at = (time.monotonic() + ttl) if ttl else None
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = (value, expires_at)
            while len(self._store) > self.max_size:
                self._store.popitem(last=False)

    def get_or_compute(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        """Return the cached value for ``key`` or compute and store it.

        ``factory`` runs under the cache lock, so it must be cheap and must
        not touch this cache.
        """
        with self._lock:
            value = self.get(key, _MISSING)
            if value is _MISSING:
                value = factory()
                self.set(key, value)
            return value

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._store.pop(key, None)

    def exists(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def values(self) -> list[Any]:
        """Snapshot of live values, oldest first."""
        with self._lock:
            return [v for v, exp in self._store.values() if not self._expired(exp)]

    def __contains__(self, key: Hashable) -> bool:
        return self.exists(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __iter__(self) -> Iterator[Hashable]:
        with self._lock:
            return iter(list(self._store.keys()))


__all__ = ["LRUCache"]
