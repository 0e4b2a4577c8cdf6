"""
Shared pytest fixtures for docspine tests.

This module provides:
- ``FakeTransport``: a thread-pooled in-memory transport that records every
  call, answers through a pluggable handler, and can add latency or fail
- ``transport`` fixture wired to a fresh ``FakeTransport``
- Isolation of the process-wide identity and surrogate caches

Usage:
    def test_something(transport):
        transport.handler = lambda call: {"collection": {"name": "news"}}
        ...
"""

import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

# Ensure docspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docspine.core.unicode import clear_cache
from docspine.model.node import _NODES
from docspine.transport.protocol import TransportProperty


# =============================================================================
# Fake transport
# =============================================================================


@dataclass
class Call:
    """One recorded transport request."""

    method: str
    endpoint: str
    body: Any = None
    started_at: float = field(default_factory=time.monotonic)


class FakeTransport:
    """
    In-memory ``Transport``.

    ``handler(call)`` returns the JSON response or raises to fail the
    request. ``latency`` (seconds, or a callable of the call) delays the
    answer on a worker thread so requests overlap like real ones.
    """

    def __init__(
        self,
        handler: Callable[[Call], Any] | None = None,
        *,
        parallel_limit: int | None = None,
        latency: float | Callable[[Call], float] = 0.0,
        workers: int = 32,
    ):
        self.handler = handler or (lambda call: {})
        self.parallel_limit = parallel_limit
        self.latency = latency
        self.calls: list[Call] = []
        self.active = 0
        self.max_active = 0
        self.shutdown_called_with: float | None = None
        self._lock = threading.Lock()
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fake-http")

    def _run(self, call: Call) -> Any:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            delay = self.latency(call) if callable(self.latency) else self.latency
            if delay:
                time.sleep(delay)
            return self.handler(call)
        finally:
            with self._lock:
                self.active -= 1

    def _submit(self, method: str, endpoint: str, body: Any) -> Future:
        call = Call(method, endpoint, body)
        with self._lock:
            self.calls.append(call)
        return self._pool.submit(self._run, call)

    def get(self, endpoint: str, body: Any = None) -> Future:
        return self._submit("GET", endpoint, body)

    def put(self, endpoint: str, body: Any = None) -> Future:
        return self._submit("PUT", endpoint, body)

    def post(self, endpoint: str, body: Any = None) -> Future:
        return self._submit("POST", endpoint, body)

    def delete(self, endpoint: str, body: Any = None) -> Future:
        return self._submit("DELETE", endpoint, body)

    def get_property(self, name: TransportProperty, default: Any = None) -> Any:
        if name == TransportProperty.PARALLEL_REQUEST_LIMIT and self.parallel_limit is not None:
            return self.parallel_limit
        return default

    def shutdown(self, max_wait: float = 0.0) -> None:
        self.shutdown_called_with = max_wait
        self._pool.shutdown(wait=True)

    def calls_to(self, method: str) -> list[Call]:
        with self._lock:
            return [c for c in self.calls if c.method == method]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def transport():
    """A fresh FakeTransport, shut down after the test."""
    fake = FakeTransport()
    yield fake
    fake._pool.shutdown(wait=True)


@pytest.fixture
def make_transport():
    """Factory for FakeTransports with custom handler/latency/limits."""
    created: list[FakeTransport] = []

    def _make(handler=None, **kwargs) -> FakeTransport:
        fake = FakeTransport(handler, **kwargs)
        created.append(fake)
        return fake

    yield _make
    for fake in created:
        fake._pool.shutdown(wait=True)


@pytest.fixture(autouse=True)
def _isolate_caches():
    """Keep canonical nodes and surrogate indexes from leaking between tests."""
    yield
    _NODES.clear()
    clear_cache()
