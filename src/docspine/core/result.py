"""
Result type for per-item outcomes.

Every asynchronous operation in docspine resolves to a ``Result``: either
``Ok(value)`` or ``Err(failure)``, never both and never neither. Batch
pipelines use it so one failing item does not abort its siblings; the
failure travels as an :class:`APIFailure` that pairs the raised error with
the request payload that produced it.

Manifesto:
    - **Errors as values:** A failed item is one element of the stream, not a
      control-flow jump out of the loop
    - **Attributable failures:** ``APIFailure`` keeps the offending items so a
      caller can retry exactly the failed subset
    - **Immutability:** Frozen, slotted dataclasses
    - **Bridge to exceptions:** ``unwrap()`` raises the contained error for
      callers that prefer exceptions

Architecture:
    ::

        ┌───────────────────────┐       ┌───────────────────────────────┐
        │        Ok[T]          │       │            Err[T]             │
        │  value: T             │       │  error: Exception | APIFailure│
        └───────────┬───────────┘       └───────────────┬───────────────┘
                    └─────────── Result[T] ─────────────┘
                                     │
                  fold / map / flat_map / unwrap / partition_results

Examples:
    >>> Ok(2).map(lambda v: v * 10).unwrap()
    20
    >>> Err(ValueError("bad")).fold(lambda e: str(e), lambda v: v)
    'bad'
    >>> failure = APIFailure(ValueError("bad item"), request=["doc-1"])
    >>> Err(failure).unwrap()
    Traceback (most recent call last):
    ...
    ValueError: bad item

Tags:
    result-pattern, either, error-handling, functional-programming, docspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

from docspine.core.errors import DocSpineError


T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class APIFailure:
    """
    A failed request paired with the payload that produced it.

    ``request`` is the single item for per-item pipelines and the list of
    items for batched pipelines. Created only inside pipelines; never raised.
    """

    error: BaseException
    request: Any = None

    def raise_error(self) -> None:
        raise self.error

    def __str__(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


def _as_exception(failure: Any) -> BaseException:
    if isinstance(failure, APIFailure):
        return failure.error
    if isinstance(failure, BaseException):
        return failure
    return DocSpineError(f"Operation failed: {failure!r}")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def fold(self, if_err: Callable[[Any], V], if_ok: Callable[[T], V]) -> V:
        """Apply ``if_ok`` to the value."""
        return if_ok(self.value)

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, f: Callable[[Any], T]) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def map_err(self, f: Callable[[Any], Any]) -> Result[T]:
        return self

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        """Call f with value for side effects, return self."""
        f(self.value)
        return self

    def inspect_err(self, f: Callable[[Any], None]) -> Result[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result.

    ``error`` is an exception or an :class:`APIFailure`. ``unwrap()`` raises
    the underlying exception in both cases.
    """

    error: Any

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def fold(self, if_err: Callable[[Any], V], if_ok: Callable[[T], V]) -> V:
        """Apply ``if_err`` to the failure."""
        return if_err(self.error)

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise _as_exception(self.error)

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, f: Callable[[Any], T]) -> T:
        """Call f with the failure to get a value."""
        return f(self.error)

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def map_err(self, f: Callable[[Any], Any]) -> Result[T]:
        """Transform the failure."""
        return Err(f(self.error))

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        return self

    def inspect_err(self, f: Callable[[Any], None]) -> Result[T]:
        """Call f with the failure for side effects, return self."""
        f(self.error)
        return self

    @property
    def exception(self) -> BaseException:
        """The underlying exception, unwrapped from an ``APIFailure``."""
        return _as_exception(self.error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        exc = self.exception
        if isinstance(exc, DocSpineError):
            return {"ok": False, "error": exc.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(exc).__name__,
                "message": str(exc),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


# =============================================================================
# RESULT CONSTRUCTORS AND UTILITIES
# =============================================================================


def try_result(f: Callable[[], T]) -> Result[T]:
    """Execute ``f`` and wrap its outcome in a Result."""
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


def failure(error: BaseException, request: Any = None) -> Err[Any]:
    """Shorthand for ``Err(APIFailure(error, request))``."""
    return Err(APIFailure(error, request))


def partition_results(results: Iterable[Result[T]]) -> tuple[list[T], list[Any]]:
    """
    Split results into successes and failures.

    Examples:
        >>> partition_results([Ok(1), Err("x"), Ok(2)])
        ([1, 2], ['x'])
    """
    successes: list[T] = []
    failures: list[Any] = []
    for r in results:
        if isinstance(r, Ok):
            successes.append(r.value)
        else:
            failures.append(r.error)
    return successes, failures


def collect_results(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Collect into ``Ok(list)`` or the first ``Err`` encountered."""
    values: list[T] = []
    for r in results:
        if isinstance(r, Err):
            return r
        values.append(r.value)
    return Ok(values)


__all__ = [
    "APIFailure",
    "Ok",
    "Err",
    "Result",
    "try_result",
    "failure",
    "partition_results",
    "collect_results",
]
