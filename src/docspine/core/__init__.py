"""docspine core -- domain-agnostic primitives.

Manifesto:
    Everything above this layer (transport, pipelines, domain objects)
    needs the same handful of building blocks: a typed error hierarchy, a
    ``Result`` value for failures that must not abort a stream, bounded
    caches, and consistent logging and configuration. ``docspine.core``
    holds them and imports nothing else from the package.

Architecture::

    Layer 1 -- Errors & Results
        errors.py          DocSpineError hierarchy, HTTP status taxonomy
        result.py          Ok / Err / APIFailure + helpers

    Layer 2 -- Caching
        cache.py           Thread-safe bounded LRU
        memoize.py         IdentityCache (canonical instances, LIVE / RETAINED)
        unicode.py         Code-point offsets over UTF-16 storage units

    Layer 3 -- Ambient
        logging.py         structlog configuration
        settings.py        pydantic-settings ClientSettings
"""

from docspine.core.cache import LRUCache
from docspine.core.errors import (
    ConfigError,
    DocSpineError,
    ErrorCategory,
    ErrorContext,
    HttpError,
    IterationError,
    NetworkError,
    OntologyCycleError,
    ParseError,
    SearchConfigError,
    SerializationError,
    ValidationError,
    categorize_error,
    http_error_for_status,
    is_retryable,
)
from docspine.core.logging import LogContext, configure_logging, get_logger
from docspine.core.memoize import EvictionPolicy, IdentityCache
from docspine.core.result import (
    APIFailure,
    Err,
    Ok,
    Result,
    collect_results,
    failure,
    partition_results,
    try_result,
)
from docspine.core.settings import ClientSettings
from docspine.core.unicode import extract, find_surrogates

__all__ = [
    # errors
    "DocSpineError",
    "ErrorCategory",
    "ErrorContext",
    "NetworkError",
    "HttpError",
    "ParseError",
    "ValidationError",
    "SearchConfigError",
    "SerializationError",
    "OntologyCycleError",
    "ConfigError",
    "IterationError",
    "http_error_for_status",
    "is_retryable",
    "categorize_error",
    # result
    "Ok",
    "Err",
    "Result",
    "APIFailure",
    "try_result",
    "failure",
    "partition_results",
    "collect_results",
    # caching
    "LRUCache",
    "IdentityCache",
    "EvictionPolicy",
    "extract",
    "find_surrogates",
    # ambient
    "configure_logging",
    "get_logger",
    "LogContext",
    "ClientSettings",
]
