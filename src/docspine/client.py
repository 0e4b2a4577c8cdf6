"""
Client entry point.

A ``Client`` binds one :class:`~docspine.transport.protocol.Transport` and
hands out canonical :class:`~docspine.model.collection.Collection` objects.

Examples:
    >>> with Client.from_settings() as client:              # doctest: +SKIP
    ...     news = client.collection("news")
    ...     for doc in news.documents().limit(10):
    ...         print(doc.name)
"""

from __future__ import annotations

from typing import Any

from docspine.core.errors import ConfigError
from docspine.core.logging import configure_logging, get_logger
from docspine.core.settings import ClientSettings
from docspine.model.collection import Collection
from docspine.transport.httpx_transport import HttpxTransport
from docspine.transport.protocol import Transport

logger = get_logger(__name__)


class Client:
    """Access point for the collections reachable through one transport."""

    def __init__(self, transport: Transport | None = None) -> None:
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings | None = None,
        *,
        setup_logging: bool = False,
        **transport_kwargs: Any,
    ) -> Client:
        """Client over an :class:`HttpxTransport` built from ``settings``.

        With ``setup_logging`` the settings' log level and format are also
        applied through :func:`configure_logging`.
        """
        settings = settings or ClientSettings()
        if setup_logging:
            configure_logging(level=settings.log_level, json_format=settings.json_logs)
        transport = HttpxTransport.from_settings(settings, **transport_kwargs)
        logger.info(
            "client.created",
            base_url=settings.base_url,
            max_connections=settings.max_connections,
        )
        return cls(transport)

    def using(self, transport: Transport) -> Client:
        """Bind ``transport``. A client's transport can only be set once."""
        if self._transport is not None:
            raise ConfigError("Client already has a transport")
        self._transport = transport
        return self

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise ConfigError("No transport configured; call using() or from_settings()")
        return self._transport

    def collection(self, name: str) -> Collection:
        """The canonical collection named ``name``."""
        return Collection.instance(self.transport, name)

    def shutdown(self, max_wait: float = 0.0) -> None:
        """Shut the transport down, waiting up to ``max_wait`` seconds."""
        if self._transport is not None:
            self._transport.shutdown(max_wait)

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()


__all__ = ["Client"]
