"""Helpers for bridging ``concurrent.futures`` and :mod:`docspine.core.result`."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any

from docspine.core.result import Err, Ok, Result


def completed_future(value: Any) -> Future:
    """A future that has already resolved to ``value``."""
    future: Future = Future()
    future.set_result(value)
    return future


def failed_future(error: BaseException) -> Future:
    """A future that has already failed with ``error``."""
    future: Future = Future()
    future.set_exception(error)
    return future


def resolve(future: Future, timeout: float | None = None) -> Result[Any]:
    """Block until ``future`` completes and convert its outcome to a Result."""
    try:
        return Ok(future.result(timeout=timeout))
    except Exception as e:
        return Err(e)


__all__ = ["completed_future", "failed_future", "resolve"]
