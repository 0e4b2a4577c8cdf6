"""
LazyNode: endpoint-identified entity with a lazily fetched JSON snapshot.

Every domain object (collection, document, task) is a ``LazyNode``: an
immutable ``(endpoint, transport)`` identity plus at most one snapshot
future. The first ``snapshot()`` issues the GET; concurrent callers share
that same request; later callers reuse the resolved value until
``invalidate()`` drops it.

Manifesto:
    - **Identity is the endpoint:** Equality and hashing never look at
      fetched content, so nodes can be canonicalized before any I/O
    - **Single-flight:** N concurrent first reads cost one HTTP request
    - **Failures are not cached:** A failed fetch is forgotten so the next
      call retries
    - **Preload:** Write and search responses already contain fresh state;
      ``preload`` installs it without a round trip

Architecture:
    ::

        unfetched ──snapshot()──► fetching ──completes──► resolved
            ▲                        │ fails                 │
            │                        ▼                       │
            └────────── cleared (same future only) ◄─────────┘ invalidate()

        preload(json)  ──────────────────────────────────► resolved

Tags:
    lazy-loading, single-flight, identity, caching, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, TypeVar
from urllib.parse import quote

from docspine.core.errors import ParseError
from docspine.core.logging import get_logger
from docspine.core.memoize import EvictionPolicy, IdentityCache
from docspine.core.result import Err, Result
from docspine.transport.futures import completed_future, failed_future, resolve
from docspine.transport.protocol import Transport

logger = get_logger(__name__)

N = TypeVar("N", bound="LazyNode")

# canonical node instances, shared by every client in the process
_NODES: IdentityCache[LazyNode] = IdentityCache(EvictionPolicy.LIVE)


def percent_encode(name: str) -> str:
    """Encode a collection, task or document name as one path segment."""
    return quote(name, safe="")


def canonical(node: N) -> N:
    """Return the canonical instance equal to ``node``."""
    return _NODES.get_or_insert(node)


class LazyNode:
    """
    Base class for endpoint-identified, lazily loaded entities.

    ``root_key`` names the envelope key the service wraps the entity in
    (``{"collection": {...}}``); ``json()`` strips it.
    """

    root_key: str | None = None

    def __init__(self, endpoint: str, transport: Transport) -> None:
        self._endpoint = endpoint
        self._transport = transport
        self._future: Future | None = None
        self._lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def transport(self) -> Transport:
        return self._transport

    # ── Snapshot ────────────────────────────────────────────────

    def _fetch(self) -> Future:
        try:
            return self._transport.get(self._endpoint)
        except Exception as e:
            return failed_future(e)

    def snapshot(self) -> Result[dict[str, Any]]:
        """Return the cached JSON snapshot, fetching it once if needed."""
        with self._lock:
            if self._future is None:
                self._future = self._fetch()
            future = self._future

        outcome = resolve(future)
        if outcome.is_ok() and not isinstance(outcome.value, dict):
            outcome = Err(ParseError(f"Invalid return object from {self._endpoint}"))

        if outcome.is_err():
            with self._lock:
                # a concurrent invalidate/preload may already have replaced it
                if self._future is future:
                    self._future = None
            logger.debug("node.fetch_failed", endpoint=self._endpoint, error=str(outcome.error))
        return outcome

    def json(self) -> dict[str, Any]:
        """The entity's JSON body. Raises on fetch failure."""
        raw = self.snapshot().unwrap()
        if self.root_key is None:
            return raw
        body = raw.get(self.root_key)
        if not isinstance(body, dict):
            raise ParseError(f"Response from {self._endpoint} has no {self.root_key!r} object")
        return body

    def get(self, key: str, default: Any = None) -> Any:
        return self.json().get(key, default)

    def invalidate(self) -> None:
        """Forget the snapshot; the next ``snapshot()`` refetches."""
        with self._lock:
            self._future = None

    def preload(self: N, data: dict[str, Any]) -> N:
        """Install ``data`` as the resolved snapshot without a network request."""
        with self._lock:
            self._future = completed_future(data)
        return self

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._future is not None and self._future.done()

    # ── Identity ────────────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if other is self:
            return True
        if type(other) is not type(self):
            return NotImplemented
        return self._endpoint == other._endpoint and self._transport is other._transport

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._endpoint, id(self._transport)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._endpoint!r})"


__all__ = ["LazyNode", "canonical", "percent_encode"]
