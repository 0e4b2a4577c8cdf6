"""Cursor Paginator: prefetching page iteration on the pipeline engine.

WHY
───
Collection listings and document searches come back one page at a time,
each page carrying an opaque ``cursor`` for the next. Waiting for the
caller to exhaust a page before asking for the next one serializes network
latency with processing time; the paginator dispatches page N+1 as soon as
page N arrives.

ARCHITECTURE
────────────
::

    CursorPaginator (window = 1 page in flight)
      ├── request:   query + {start, cursor?, count?}  ──► transport.get
      ├── arrival:   normalize_page()  ──► Page(documents, cursor, total)
      │                ├── enqueue documents (truncated to ``limit``)
      │                └── prefetch next page if the page was non-empty and
      │                    the server returned a cursor, or reported
      │                    total > start
      └── __next__:  yields items; page failures raise IterationError

``start`` is sent with every request and advanced by the number of documents
received, so a server that drops the cursor but still reports more results
is asked for the next offset instead of the same page again. An empty page
always ends the iteration.

Two page shapes are accepted:
    wrapped    ``{"documents": [...], "cursor": "...", "total": N}``
    streamed   ``[{...}, {...}, {..., "cursor": "..."}]`` where the last
               element carries the cursor (decoded from a chunked response)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from docspine.core.errors import IterationError, ParseError
from docspine.core.logging import get_logger
from docspine.core.result import Err, Ok, Result
from docspine.execution.pipeline import BatchRequest, PipelineBase
from docspine.transport.futures import failed_future, resolve
from docspine.transport.protocol import Transport

logger = get_logger(__name__)


@dataclass
class Page:
    """One normalized page of results."""

    documents: list[Any]
    cursor: str | None = None
    total: int | None = None


def _cursor_value(raw: Any) -> str | None:
    if raw is None or isinstance(raw, (dict, list)):
        return None
    return str(raw)


def normalize_page(payload: Any) -> Page:
    """Normalize a wrapped or streamed page into a :class:`Page`.

    Raises:
        ParseError: ``payload`` is neither shape.
    """
    if isinstance(payload, list):
        if not payload:
            return Page([])
        entries = list(payload)
        last = entries[-1]
        cursor = None
        total = None
        if isinstance(last, dict) and "cursor" in last:
            cursor = _cursor_value(last.get("cursor"))
            total = last.get("total")
            trimmed = {k: v for k, v in last.items() if k not in ("cursor", "total")}
            if trimmed:
                entries[-1] = trimmed
            else:
                entries.pop()
        return Page(entries, cursor, total if isinstance(total, int) else None)

    if isinstance(payload, dict):
        documents = payload.get("documents") or []
        if not isinstance(documents, list):
            raise ParseError("Page 'documents' is not an array")
        total = payload.get("total")
        return Page(
            list(documents),
            _cursor_value(payload.get("cursor")),
            total if isinstance(total, int) else None,
        )

    raise ParseError(f"Unexpected page shape: {type(payload).__name__}")


class CursorPaginator(PipelineBase[Any]):
    """
    Iterate the items of a cursor-paginated endpoint.

    ``transform`` maps each raw page entry to the yielded value. ``limit``
    caps the number of items yielded and stops prefetching once reached.
    """

    name = "paginator"

    def __init__(
        self,
        transport: Transport,
        endpoint: str,
        query: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
        page_size: int | None = None,
        transform: Callable[[Any], Any] | None = None,
    ) -> None:
        super().__init__(window=1)
        self.transport = transport
        self.endpoint = endpoint
        self.query = dict(query or {})
        self.limit = limit
        self.page_size = page_size
        self.transform = transform
        self.pages_requested = 0
        self._cursor: str | None = None
        self._start = 0
        self._enqueued = 0
        self._first_sent = False
        self._advance()

    # ── Requests ────────────────────────────────────────────────

    def _page_body(self) -> dict[str, Any]:
        body = dict(self.query)
        body["start"] = self._start
        if self._cursor is not None:
            body["cursor"] = self._cursor
        else:
            body.pop("cursor", None)
        if self.page_size is not None:
            body["count"] = self.page_size
        return body

    def _page_request(self) -> BatchRequest:
        body = self._page_body()
        try:
            future = self.transport.get(self.endpoint, body)
        except Exception as e:
            future = failed_future(e)
        self.pages_requested += 1
        logger.debug(
            "paginator.request",
            endpoint=self.endpoint,
            page=self.pages_requested,
            start=self._start,
            has_cursor=self._cursor is not None,
        )
        return BatchRequest([body], future)

    def _next_request(self) -> BatchRequest | None:
        if self._first_sent or (self.limit is not None and self.limit <= 0):
            return None
        self._first_sent = True
        return self._page_request()

    # ── Arrival ─────────────────────────────────────────────────

    def _fail(self, error: BaseException) -> list[Result[Any]]:
        self._stopped = True
        wrapped = IterationError(
            f"Failed to fetch results page from {self.endpoint}: {error}", cause=error
        ).with_context(url=self.endpoint)
        return [Err(wrapped)]

    def _complete(self, entry: BatchRequest) -> list[Result[Any]]:
        outcome = resolve(entry.future)
        if isinstance(outcome, Err):
            return self._fail(outcome.exception)
        try:
            page = normalize_page(outcome.value)
            documents = page.documents
            if self.limit is not None:
                documents = documents[: max(0, self.limit - self._enqueued)]
            items = [self.transform(d) if self.transform else d for d in documents]
        except Exception as e:
            return self._fail(e)

        self._start += len(page.documents)
        self._enqueued += len(items)
        logger.debug(
            "paginator.page",
            endpoint=self.endpoint,
            items=len(page.documents),
            start=self._start,
            total=page.total,
            has_cursor=page.cursor is not None,
        )

        if self._should_continue(page):
            self._cursor = page.cursor
            self._push(self._page_request())
        return [Ok(item) for item in items]

    def _should_continue(self, page: Page) -> bool:
        if not page.documents or self._stopped:
            return False
        if self.limit is not None and self._enqueued >= self.limit:
            return False
        if page.cursor is not None:
            return True
        return page.total is not None and page.total > self._start

    def __next__(self) -> Any:
        return super().__next__().unwrap()


__all__ = ["Page", "normalize_page", "CursorPaginator"]
