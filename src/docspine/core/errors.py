"""
Structured error types for docspine.

Every failure the client can surface is a ``DocSpineError`` carrying a
category, a retry hint, a structured context and the chained cause. The
remote service's HTTP status codes map onto a small taxonomy so callers can
branch on ``NotFound`` or ``ServiceUnavailable`` instead of parsing status
integers out of messages.

Manifesto:
    - **Typed Error Hierarchy:** Transport, parse, validation and iteration
      failures each have their own branch
    - **Explicit Retry Semantics:** Server-side and network failures are
      retryable, client-side ones are not
    - **Rich Context:** Errors carry the failing URL and HTTP status
    - **Error Chaining:** The original exception is preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       DocSpineError                              │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NetworkError      HttpError(url, status, error_info)           │
        │  (retryable)          │                                         │
        │                   ClientError 4xx           ServerError 5xx     │
        │                   BadRequest 400            InternalServerError │
        │                   Unauthorized 401          ServiceUnavailable  │
        │                   Forbidden 403             GatewayTimeout      │
        │                   NotFound 404                                  │
        │                   EntityTooLarge 413                            │
        │                                                                  │
        │  ParseError        ValidationError        ConfigError           │
        │                       │                   IterationError        │
        │                    SearchConfigError                            │
        │                    SerializationError                           │
        │                    OntologyCycleError                           │
        └─────────────────────────────────────────────────────────────────┘

Two error tiers:
    Local failures (serialization, invalid search configuration, ontology
    cycles) are raised at the call that caused them. Remote failures inside a
    pipeline are never raised by the iterator; they are delivered as ``Err``
    values wrapping an ``APIFailure`` (see :mod:`docspine.core.result`).

Examples:
    >>> err = http_error_for_status(404, url="/Collections/news")
    >>> type(err).__name__, err.status, err.retryable
    ('NotFound', 404, False)

    >>> http_error_for_status(503, url="/").retryable
    True

Tags:
    error-handling, exception-hierarchy, http-errors, retry-logic, docspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection, DNS, socket errors
        CLIENT: 4xx responses not covered by AUTH
        SERVER: 5xx responses
        AUTH: 401 / 403 responses
        PARSE: Malformed response bodies or chunk streams
        VALIDATION: Rejected arguments, invalid search configuration
        CONFIG: Missing or invalid client settings
        ITERATION: Failures fetching the next page of a paginated stream
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    CLIENT = "CLIENT"
    SERVER = "SERVER"
    AUTH = "AUTH"
    PARSE = "PARSE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    ITERATION = "ITERATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        url: Endpoint that was being accessed
        http_status: HTTP status code if applicable
        collection: Collection name the operation targeted
        task: Task name the operation targeted
        metadata: Additional key-value pairs
    """

    url: str | None = None
    http_status: int | None = None
    collection: str | None = None
    task: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["url", "http_status", "collection", "task"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocSpineError(Exception):
    """
    Base exception for all docspine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    constructing one needs nothing but a message in the common case.

    Examples:
        >>> err = DocSpineError("boom").with_context(collection="news")
        >>> err.context.collection
        'news'
        >>> err.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocSpineError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================


class NetworkError(DocSpineError):
    """Connection could not be established or was dropped mid-request."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class HttpError(DocSpineError):
    """
    Non-2xx response from the service.

    ``error_info`` holds the decoded JSON error body when the server sent
    one, otherwise ``None``.
    """

    default_category = ErrorCategory.CLIENT

    def __init__(
        self,
        url: str,
        status: int,
        message: str | None = None,
        *,
        error_info: Any = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            message or f"HTTP {status} for {url}",
            context=ErrorContext(url=url, http_status=status),
            cause=cause,
            **kwargs,
        )
        self.url = url
        self.status = status
        self.error_info = error_info


class ClientError(HttpError):
    """4xx response."""

    default_category = ErrorCategory.CLIENT


class BadRequest(ClientError):
    """400 Bad Request."""


class Unauthorized(ClientError):
    """401 Unauthorized."""

    default_category = ErrorCategory.AUTH


class Forbidden(ClientError):
    """403 Forbidden."""

    default_category = ErrorCategory.AUTH


class NotFound(ClientError):
    """404 Not Found."""


class EntityTooLarge(ClientError):
    """413 Request Entity Too Large."""


class ServerError(HttpError):
    """5xx response. Retryable."""

    default_category = ErrorCategory.SERVER
    default_retryable = True


class InternalServerError(ServerError):
    """500 Internal Server Error."""


class ServiceUnavailable(ServerError):
    """503 Service Unavailable."""


class GatewayTimeout(ServerError):
    """504 Gateway Timeout."""


_STATUS_CLASSES: dict[int, type[HttpError]] = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    413: EntityTooLarge,
    500: InternalServerError,
    503: ServiceUnavailable,
    504: GatewayTimeout,
}


def http_error_for_status(
    status: int,
    *,
    url: str,
    message: str | None = None,
    error_info: Any = None,
    cause: BaseException | None = None,
) -> HttpError:
    """Build the most specific ``HttpError`` subclass for ``status``.

    Unknown codes degrade to ``ClientError`` (4xx) or ``ServerError``
    (everything else).
    """
    cls = _STATUS_CLASSES.get(status)
    if cls is None:
        cls = ClientError if 400 <= status < 500 else ServerError
    return cls(url, status, message, error_info=error_info, cause=cause)


# =============================================================================
# LOCAL ERRORS
# =============================================================================


class ParseError(DocSpineError):
    """Response body or chunk stream could not be decoded."""

    default_category = ErrorCategory.PARSE


class ValidationError(DocSpineError):
    """
    Invalid argument or state detected before any request is issued.

    Never retryable.
    """

    default_category = ErrorCategory.VALIDATION


class SearchConfigError(ValidationError):
    """Contradictory document search configuration."""


class SerializationError(ValidationError):
    """Item could not be converted to its wire form."""


class OntologyCycleError(ValidationError):
    """Adding a sub-task edge would make the task ontology cyclic."""

    def __init__(self, parent: str, child: str, **kwargs: Any):
        super().__init__(
            f"Linking {child!r} under {parent!r} creates a cycle", **kwargs
        )
        self.parent = parent
        self.child = child


class ConfigError(DocSpineError):
    """Missing or invalid client configuration."""

    default_category = ErrorCategory.CONFIG


class IterationError(DocSpineError):
    """Fetching the next page of a paginated stream failed."""

    default_category = ErrorCategory.ITERATION


# =============================================================================
# UTILITIES
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DocSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, DocSpineError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocSpineError",
    # Transport
    "NetworkError",
    "HttpError",
    "ClientError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "EntityTooLarge",
    "ServerError",
    "InternalServerError",
    "ServiceUnavailable",
    "GatewayTimeout",
    "http_error_for_status",
    # Local
    "ParseError",
    "ValidationError",
    "SearchConfigError",
    "SerializationError",
    "OntologyCycleError",
    "ConfigError",
    "IterationError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
