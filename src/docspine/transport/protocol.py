"""
Transport protocol.

The data-access layer never talks to sockets directly. It depends on an
object that can submit GET/PUT/POST/DELETE requests and hand back a
``concurrent.futures.Future`` resolving to the decoded JSON value or failing
with an :class:`~docspine.core.errors.HttpError`.

Implementations:
    - :class:`~docspine.transport.httpx_transport.HttpxTransport`: httpx
      client driven by a thread pool
    - test doubles in ``tests/conftest.py``

Tags:
    transport, protocol, futures, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from concurrent.futures import Future
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class TransportProperty(str, Enum):
    """Tunables a transport may report through ``get_property``."""

    PARALLEL_REQUEST_LIMIT = "parallel_request_limit"


@runtime_checkable
class Transport(Protocol):
    """Asynchronous JSON-over-HTTP request submission."""

    def get(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        """Submit a GET; ``body`` is sent as JSON when present."""
        ...

    def put(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        ...

    def post(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        ...

    def delete(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        ...

    def get_property(self, name: TransportProperty, default: Any = None) -> Any:
        """Return a transport tunable, or ``default`` if unsupported."""
        ...

    def shutdown(self, max_wait: float = 0.0) -> None:
        """Stop accepting work and wait up to ``max_wait`` seconds for in-flight requests."""
        ...


def parallel_request_limit(transport: Transport, default: int = 10) -> int:
    """Parallel request hint reported by ``transport``, falling back to ``default``."""
    value = transport.get_property(TransportProperty.PARALLEL_REQUEST_LIMIT, default)
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return default


__all__ = ["Transport", "TransportProperty", "parallel_request_limit"]
