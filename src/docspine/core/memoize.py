"""
Identity cache for domain objects.

Guarantees that value-equal instances (two ``Collection`` objects for the
same endpoint on the same transport, for example) are collapsed to one
canonical instance, so per-instance state such as a cached JSON snapshot is
shared by every caller.

Manifesto:
    Lazily-fetched domain objects are cheap to construct and expensive to
    populate. If every call to ``client.collection("news")`` returned a fresh
    object, each one would issue its own GET. Canonicalizing instances makes
    the cache and the single-flight guarantee of :class:`~docspine.model.node.LazyNode`
    hold across the whole process.

    - **Canonical instances:** Equal keys never yield two distinct objects
    - **Explicit eviction:** Reclamation is a construction-time policy
    - **Lock-light reads:** Hits never take the lock

Architecture:
    ::

        get_or_insert(obj)
            │
            ├── optimistic read (no lock) ──── hit ──► canonical
            │
            └── miss ──► exclusive lock ──► re-check ──► insert obj
                                                    └──► canonical

        EvictionPolicy.LIVE       weak keys; entry disappears as soon as no
                                  caller holds the canonical instance
        EvictionPolicy.RETAINED   strong references in a bounded LRU;
                                  entries disappear by size-bound eviction

Examples:
    >>> pool = IdentityCache(EvictionPolicy.RETAINED, max_size=10)
    >>> a, b = frozenset({1}), frozenset({1})
    >>> pool.get_or_insert(a) is pool.get_or_insert(b)
    True

Guardrails:
    ❌ DON'T: Memoize objects whose equality depends on mutable state
    ✅ DO: Define ``__eq__``/``__hash__`` on immutable identity fields

    ❌ DON'T: Use LIVE with classes that define ``__slots__`` without
       ``__weakref__``
    ✅ DO: Use RETAINED for values that cannot be weakly referenced

Tags:
    memoization, identity-map, weakref, lru, thread-safe, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
import weakref
from enum import Enum
from typing import Generic, TypeVar

from docspine.core.cache import LRUCache


T = TypeVar("T")


class EvictionPolicy(str, Enum):
    """How canonical instances are reclaimed."""

    LIVE = "live"
    RETAINED = "retained"


class IdentityCache(Generic[T]):
    """
    Pool of canonical instances keyed by value equality.

    ``get_or_insert(obj)`` returns the already-canonical instance equal to
    ``obj`` if one is still held by the pool, otherwise ``obj`` becomes
    canonical. Never fails.
    """

    def __init__(
        self,
        policy: EvictionPolicy = EvictionPolicy.LIVE,
        *,
        max_size: int = 4096,
    ):
        self.policy = policy
        self._lock = threading.Lock()
        if policy is EvictionPolicy.LIVE:
            self._live: weakref.WeakKeyDictionary[T, weakref.ref[T]] | None = (
                weakref.WeakKeyDictionary()
            )
            self._retained: LRUCache | None = None
        else:
            self._live = None
            self._retained = LRUCache(max_size=max_size)

    def _lookup(self, key: T) -> T | None:
        if self._live is not None:
            ref = self._live.get(key)
            return ref() if ref is not None else None
        return self._retained.get(key)

    def _store(self, key: T) -> None:
        if self._live is not None:
            self._live[key] = weakref.ref(key)
        else:
            self._retained.set(key, key)

    def get_or_insert(self, key: T) -> T:
        """Return the canonical instance equal to ``key``."""
        cached = self._lookup(key)
        if cached is not None:
            return cached

        with self._lock:
            # another thread may have inserted between the read and the lock
            cached = self._lookup(key)
            if cached is not None:
                return cached
            self._store(key)
            return key

    def remove(self, key: T) -> None:
        """Drop the canonical instance equal to ``key``, if any."""
        with self._lock:
            if self._live is not None:
                self._live.pop(key, None)
            else:
                self._retained.delete(key)

    def items(self) -> list[T]:
        """Snapshot of the canonical instances currently held."""
        with self._lock:
            if self._live is not None:
                return [v for v in (ref() for ref in list(self._live.values())) if v is not None]
            return self._retained.values()

    def clear(self) -> None:
        with self._lock:
            if self._live is not None:
                self._live.clear()
            else:
                self._retained.clear()

    def __len__(self) -> int:
        if self._live is not None:
            return len(self._live)
        return len(self._retained)

    def __contains__(self, key: object) -> bool:
        return self._lookup(key) is not None  # type: ignore[arg-type]


__all__ = ["EvictionPolicy", "IdentityCache"]
