"""
Structured logging for docspine.

docspine is a library: its modules only call ``get_logger(__name__)`` and emit
event-style messages such as ``logger.debug("pipeline.dispatch", items=25,
in_flight=3)``. Nothing is configured on import, so the host application's
structlog setup (or structlog's defaults) decides where events go.
``configure_logging`` is a convenience for scripts and services that have no
setup of their own.

Event naming:
    ``<component>.<what happened>``, e.g. ``paginator.page``,
    ``post_documents.item_failed``, ``transport.request``,
    ``node.fetch_failed``. Counts and names go in key/value context, never
    in the event string.

Processor chain installed by ``configure_logging``::

    merge_contextvars        collection/task bound by LogContext
    add_log_level
    TimeStamper(iso)         optional
    _add_client_name         "client": <name>
    _drop_none               optional context left unset by the caller
    JSONRenderer             or ConsoleRenderer when stdout is a tty

Examples:
    >>> from docspine.core.logging import LogContext, configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=True)   # doctest: +SKIP
    >>> with LogContext(collection="news", task="sentiment"):  # doctest: +SKIP
    ...     get_logger(__name__).info("batch.start", items=500)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from docspine.core.errors import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_client_name = "docspine"


def _add_client_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("client", _client_name)
    return event_dict


def _drop_none(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    return {k: v for k, v in event_dict.items() if v is not None}


def _level_number(level: str) -> int:
    name = level.upper()
    if name not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {level!r} (expected one of {', '.join(LOG_LEVELS)})")
    return getattr(logging, name)


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    client_name: str = "docspine",
    add_timestamp: bool = True,
) -> None:
    """Install a process-wide structlog configuration.

    Args:
        level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: True for JSON lines, False for console output, None to
            pick JSON unless stdout is a terminal
        client_name: Value of the ``client`` key on every event, useful when
            several clients log into the same stream
        add_timestamp: Include an ISO timestamp

    Raises:
        ConfigError: ``level`` is not a known level name.
    """
    global _client_name
    threshold = _level_number(level)
    _client_name = client_name

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [_add_client_name, _drop_none]

    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Logger for module ``name``, carried as the ``logger_name`` key of every event.

    The returned proxy resolves the structlog configuration on first use, so
    module-level loggers follow a later ``configure_logging`` call.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name, logger_name=name)


class LogContext:
    """Bind key/value context (collection, task, ...) for a ``with`` block.

    Nested contexts shadow outer values and restore them on exit.

    Example:
        with LogContext(collection="news", task="sentiment"):
            for result in task.predictions(docs):
                ...
    """

    def __init__(self, **context: Any):
        self._context = context
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = ["configure_logging", "get_logger", "LogContext", "LOG_LEVELS"]
