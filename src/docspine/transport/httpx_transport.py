"""
httpx-backed transport.

Requests run synchronously on an ``httpx.Client`` inside a bounded
``ThreadPoolExecutor``; callers receive ``concurrent.futures.Future`` objects
immediately. The pool size doubles as the parallel-request hint that the
pipelines use to size their in-flight windows.

Wire conventions:
    - HTTP basic auth with the API key as user name and an empty password
    - JSON request bodies; GET and DELETE requests that carry a body are sent
      as POST with ``X-HTTP-Method-Override`` naming the real method
    - Chunked responses whose Content-Type carries ``boundary=`` are decoded
      by :mod:`docspine.transport.chunked` into a JSON array
    - Non-2xx responses fail the future with the matching
      :class:`~docspine.core.errors.HttpError` subclass

Examples:
    >>> transport = HttpxTransport(api_key="secret", max_connections=4)   # doctest: +SKIP
    >>> transport.get("/Collections/news").result()                        # doctest: +SKIP
    {'collection': {...}}
    >>> transport.shutdown(max_wait=5)                                     # doctest: +SKIP

Tags:
    transport, httpx, thread-pool, http, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

import httpx

from docspine.core.errors import (
    ConfigError,
    DocSpineError,
    NetworkError,
    ParseError,
    ValidationError,
    http_error_for_status,
)
from docspine.core.logging import get_logger
from docspine.core.settings import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_CONNECTIONS,
    MAX_CONNECTIONS_LIMIT,
    ClientSettings,
)
from docspine.transport.chunked import boundary_from_content_type, decode_boundary_stream
from docspine.transport.futures import failed_future
from docspine.transport.protocol import TransportProperty


logger = get_logger(__name__)

METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"


class HttpxTransport:
    """Thread-pooled JSON transport on top of ``httpx.Client``."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_key: str | None = None,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        timeout: float = 60.0,
        verify: bool = True,
        proxy: str | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ):
        if max_connections <= 0 or max_connections > MAX_CONNECTIONS_LIMIT:
            raise ConfigError(
                f"Invalid connection limit {max_connections} (must be 1..{MAX_CONNECTIONS_LIMIT})"
            )

        self.base_url = base_url.rstrip("/")
        self.max_connections = max_connections
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=httpx.BasicAuth(api_key, "") if api_key else None,
            timeout=timeout,
            verify=verify,
            proxy=proxy,
            limits=httpx.Limits(max_connections=max_connections),
            transport=http_transport,
        )
        self._pool = ThreadPoolExecutor(
            max_workers=max_connections, thread_name_prefix="docspine-http"
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings | None = None,
        **kwargs: Any,
    ) -> HttpxTransport:
        """Build a transport from ``ClientSettings`` (environment by default)."""
        settings = settings or ClientSettings()
        return cls(
            settings.base_url,
            api_key=settings.api_key or None,
            max_connections=settings.max_connections,
            timeout=settings.request_timeout,
            verify=settings.verify_tls,
            proxy=settings.proxy,
            **kwargs,
        )

    # ── Transport protocol ──────────────────────────────────────

    def get(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        return self._submit("GET", endpoint, body)

    def put(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        return self._submit("PUT", endpoint, body)

    def post(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        return self._submit("POST", endpoint, body)

    def delete(self, endpoint: str, body: dict[str, Any] | None = None) -> Future:
        return self._submit("DELETE", endpoint, body)

    def get_property(self, name: TransportProperty, default: Any = None) -> Any:
        if name == TransportProperty.PARALLEL_REQUEST_LIMIT:
            return self.max_connections
        return default

    def shutdown(self, max_wait: float = 0.0) -> None:
        """Stop accepting requests and wait up to ``max_wait`` seconds.

        Requests still queued after the wait are cancelled; requests already
        running finish on their worker threads, and the HTTP client is closed
        once the last of them returns.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._pending)

        _, not_done = wait(pending, timeout=max_wait) if pending else ((), ())
        self._pool.shutdown(wait=False, cancel_futures=bool(not_done))
        if not_done:
            logger.warning("transport.shutdown_incomplete", outstanding=len(not_done))
            threading.Thread(
                target=self._close_when_idle, name="docspine-http-close", daemon=True
            ).start()
        else:
            self._client.close()
        logger.debug("transport.shutdown", max_wait=max_wait)

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    # ── Internals ───────────────────────────────────────────────

    def _close_when_idle(self) -> None:
        self._pool.shutdown(wait=True)
        self._client.close()
        logger.debug("transport.client_closed")

    def _submit(self, method: str, endpoint: str, body: dict[str, Any] | None) -> Future:
        with self._lock:
            if self._closed:
                return failed_future(DocSpineError("Transport already shut down"))
            future = self._pool.submit(self._perform, method, endpoint, body)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _perform(self, method: str, endpoint: str, body: dict[str, Any] | None) -> Any:
        if not endpoint or not endpoint.startswith("/"):
            raise ValidationError(f"endpoint is not a valid path: {endpoint!r}")

        http_method = method
        headers: dict[str, str] = {}
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
            headers[METHOD_OVERRIDE_HEADER] = method
            if method not in ("PUT", "POST"):
                http_method = "POST"

        logger.debug("transport.request", method=method, endpoint=endpoint)
        try:
            with self._client.stream(
                http_method, endpoint, content=content, headers=headers
            ) as response:
                if not response.is_success:
                    response.read()
                    raise self._http_error(response)
                return self._read_json(response)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {endpoint} failed: {e}", cause=e) from e

    @staticmethod
    def _http_error(response: httpx.Response) -> DocSpineError:
        error_info: Any = None
        if response.content:
            try:
                error_info = response.json()
            except ValueError:
                error_info = None
        url = str(response.request.url)
        logger.info("transport.http_error", url=url, status=response.status_code)
        return http_error_for_status(
            response.status_code,
            url=url,
            message=f"HTTP {response.status_code} {response.reason_phrase} for {url}",
            error_info=error_info,
        )

    @staticmethod
    def _read_json(response: httpx.Response) -> Any:
        transfer_encoding = response.headers.get("transfer-encoding", "").lower()
        boundary = boundary_from_content_type(response.headers.get("content-type"))
        if "chunked" in transfer_encoding and boundary:
            return decode_boundary_stream(response.iter_bytes(), boundary)

        raw = response.read()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ParseError(
                f"Invalid JSON response from {response.request.url}", cause=e
            ) from e


__all__ = ["HttpxTransport", "METHOD_OVERRIDE_HEADER"]
