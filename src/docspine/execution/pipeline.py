"""Bounded Async Pipeline: sliding-window dispatch with FIFO consumption.

WHY
───
Uploading 100k documents, annotating a corpus or classifying a stream of
texts all reduce to the same problem: turn a large (possibly unbounded)
iterable of items into many small HTTP requests, keep a fixed number of
them in flight, and hand results back to the caller in submission order
without letting one bad item abort the rest.

ARCHITECTURE
────────────
::

    source ──► _next_request() ──► submit_queue (≤ window) ──► result_queue ──► __next__
               serialize + batch    FIFO of BatchRequest        FIFO of Result
               dispatch (Future)    drained head-first          Ok(value) |
                                                                Err(APIFailure)

    _advance()  =  _drain()   pop completed heads, in order, into result_queue
                 + _refill()  dispatch until len(submit_queue) == window

    __next__    pop result_queue; else block on the head future, advance,
                retry; StopIteration when both queues are empty

Completions may arrive out of order; only the head of ``submit_queue`` is
ever popped, so results are emitted strictly in submission order. Refill and
drain never block; the consuming thread only waits inside ``__next__``.

Failure isolation:
    - a request that fails remotely becomes ``Err(APIFailure(error, items))``
    - an item that cannot be serialized becomes its own single-item failed
      batch, emitted between the batches around it
    - ``stop_on_error`` stops refilling after the first failure; requests
      already dispatched still complete and are yielded

Cancellation is not supported: abandoning the iterator leaves dispatched
requests running on the transport.

Related modules:
    pagination.py            cursor-driven page fetching on the same engine
    model/uploads.py         document and annotation batch uploads
    model/predictions.py     one request per predicted item

Example::

    class Squares(BatchPipeline):
        def _serialize(self, item):
            return {"n": item}

        def _dispatch(self, payloads):
            return transport.post("/square", {"items": payloads})

        def _interpret(self, items, response):
            return [Ok(v) for v in response["squares"]]

    for result in Squares(range(100), window=3, batch_limit=10):
        print(result.unwrap())
"""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, wait
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from docspine.core.errors import (
    DocSpineError,
    SerializationError,
    categorize_error,
    is_retryable,
)
from docspine.core.logging import get_logger
from docspine.core.result import APIFailure, Err, Ok, Result
from docspine.transport.futures import failed_future, resolve

logger = get_logger(__name__)

T = TypeVar("T")

_END = object()


@dataclass
class BatchRequest:
    """An outstanding wire call and the items it carries."""

    items: list[Any]
    future: Future
    local_failure: bool = False

    @property
    def done(self) -> bool:
        return self.future.done()


class PipelineBase(Iterator[Result[T]], Generic[T]):
    """
    Shared submit/drain/consume engine.

    Subclasses implement ``_next_request`` (build and dispatch the next
    request, or return ``None`` when the source is exhausted) and
    ``_complete`` (turn a finished request into results). Subclasses set
    their own state before calling ``super().__init__`` and call
    ``_advance()`` once construction is complete.
    """

    name = "pipeline"

    def __init__(self, window: int, *, stop_on_error: bool = False) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self.window = window
        self.stop_on_error = stop_on_error
        self.submit_queue: deque[BatchRequest] = deque()
        self.result_queue: deque[Result[T]] = deque()
        self.max_in_flight = 0
        self._stopped = False
        self._exhausted = False

    # ── Subclass hooks ──────────────────────────────────────────

    def _next_request(self) -> BatchRequest | None:
        raise NotImplementedError

    def _complete(self, entry: BatchRequest) -> list[Result[T]]:
        raise NotImplementedError

    def _has_pending_local(self) -> bool:
        """True if a local failure is waiting to be emitted despite a stop."""
        return False

    # ── Engine ──────────────────────────────────────────────────

    @property
    def in_flight(self) -> int:
        return len(self.submit_queue)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Stop refilling. Requests already dispatched still complete."""
        self._stopped = True

    def _push(self, entry: BatchRequest) -> None:
        self.submit_queue.append(entry)
        self.max_in_flight = max(self.max_in_flight, len(self.submit_queue))
        if entry.local_failure and self.stop_on_error:
            self._stopped = True

    def _drain(self) -> None:
        while self.submit_queue and self.submit_queue[0].done:
            entry = self.submit_queue.popleft()
            for result in self._complete(entry):
                if isinstance(result, Err):
                    self._on_failure(result)
                self.result_queue.append(result)

    def _refill(self) -> None:
        while len(self.submit_queue) < self.window and not self._exhausted:
            if self._stopped and not self._has_pending_local():
                break
            entry = self._next_request()
            if entry is None:
                self._exhausted = True
                break
            self._push(entry)

    def _advance(self) -> None:
        self._drain()
        self._refill()

    def _on_failure(self, result: Err) -> None:
        error = result.exception
        logger.warning(
            f"{self.name}.request_failed",
            error=str(error),
            error_type=type(error).__name__,
            category=categorize_error(error).value,
            retryable=is_retryable(error),
        )
        if self.stop_on_error and not self._stopped:
            logger.info(f"{self.name}.stopped", in_flight=len(self.submit_queue))
            self._stopped = True

    def has_next(self) -> bool:
        if self.result_queue or self.submit_queue:
            return True
        return not self._stopped and not self._exhausted

    def __iter__(self) -> PipelineBase[T]:
        return self

    def __next__(self) -> Result[T]:
        while not self.result_queue:
            if not self.submit_queue:
                self._refill()
                if not self.submit_queue:
                    raise StopIteration
            wait([self.submit_queue[0].future])
            self._advance()
        result = self.result_queue.popleft()
        self._advance()
        return result


class BatchPipeline(PipelineBase[T]):
    """
    Pipeline over a source iterable with per-item serialization and batching.

    A batch closes when it holds ``batch_limit`` items or when its estimated
    serialized size reaches ``batch_target_bytes`` (``None`` disables the
    size bound). Subclasses implement ``_serialize``, ``_dispatch`` and
    ``_interpret``.
    """

    name = "batch_pipeline"
    single_item = False

    def __init__(
        self,
        source: Iterable[Any],
        *,
        window: int,
        batch_limit: int = 1,
        batch_target_bytes: int | None = None,
        stop_on_error: bool = False,
    ) -> None:
        if batch_limit < 1:
            raise ValueError(f"batch_limit must be >= 1, got {batch_limit}")
        super().__init__(window, stop_on_error=stop_on_error)
        self.batch_limit = batch_limit
        self.batch_target_bytes = batch_target_bytes
        self._source = iter(source)
        self._carry: BatchRequest | None = None
        self._advance()

    # ── Subclass hooks ──────────────────────────────────────────

    def _serialize(self, item: Any) -> Any:
        """Convert one item to its wire payload. Raise to fail the item."""
        return item

    def _dispatch(self, payloads: list[Any]) -> Future:
        raise NotImplementedError

    def _interpret(self, items: list[Any], response: Any) -> list[Result[T]]:
        raise NotImplementedError

    def _estimate_size(self, payload: Any) -> int:
        return len(json.dumps(payload, separators=(",", ":")))

    # ── Engine ──────────────────────────────────────────────────

    def _request_of(self, items: list[Any]) -> Any:
        return items[0] if self.single_item else items

    def _has_pending_local(self) -> bool:
        return self._carry is not None

    def _pull(self) -> Any:
        return next(self._source, _END)

    def _local_failure(self, item: Any, error: Exception) -> BatchRequest:
        if not isinstance(error, DocSpineError):
            error = SerializationError(f"Unable to serialize item: {error}", cause=error)
        logger.warning(f"{self.name}.item_failed", error=str(error))
        return BatchRequest([item], failed_future(error), local_failure=True)

    def _next_request(self) -> BatchRequest | None:
        if self._carry is not None:
            carried, self._carry = self._carry, None
            return carried
        if self._stopped:
            return None

        items: list[Any] = []
        payloads: list[Any] = []
        size = 0
        while len(items) < self.batch_limit:
            if self.batch_target_bytes is not None and size >= self.batch_target_bytes:
                break
            item = self._pull()
            if item is _END:
                break
            try:
                payload = self._serialize(item)
                payload_size = (
                    self._estimate_size(payload) if self.batch_target_bytes is not None else 0
                )
            except Exception as e:
                failed = self._local_failure(item, e)
                if not items:
                    return failed
                # submit what was accumulated; the failure follows it
                self._carry = failed
                break
            items.append(item)
            payloads.append(payload)
            size += payload_size

        if not items:
            return None

        try:
            future = self._dispatch(payloads)
        except Exception as e:
            future = failed_future(e)
        logger.debug(
            f"{self.name}.dispatch",
            items=len(items),
            bytes=size or None,
            in_flight=len(self.submit_queue) + 1,
        )
        return BatchRequest(items, future)

    def _complete(self, entry: BatchRequest) -> list[Result[T]]:
        request = self._request_of(entry.items)
        outcome = resolve(entry.future)
        if isinstance(outcome, Err):
            return [Err(APIFailure(outcome.error, request))]
        try:
            return self._interpret(entry.items, outcome.value)
        except Exception as e:
            return [Err(APIFailure(e, request))]


__all__ = ["BatchRequest", "PipelineBase", "BatchPipeline"]
