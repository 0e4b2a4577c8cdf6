"""Tests for docspine.execution.pagination module."""

import pytest

from docspine.core.errors import IterationError, NotFound, ParseError
from docspine.execution.pagination import CursorPaginator, Page, normalize_page


def paged(documents, page_size, *, cursors=True, report_total=True):
    """Handler serving ``documents`` in wrapped pages keyed on ``start``."""

    def handler(call):
        start = call.body.get("start", 0)
        chunk = documents[start : start + page_size]
        page = {"documents": chunk}
        more = start + len(chunk) < len(documents)
        if cursors and more:
            page["cursor"] = f"c{start + len(chunk)}"
        if report_total:
            page["total"] = len(documents)
        return page

    return handler


class TestNormalizePage:
    """Both wire shapes normalize to Page."""

    def test_wrapped(self):
        """Wrapped pages keep documents, cursor and total."""
        page = normalize_page({"documents": [1, 2], "cursor": "abc", "total": 9})
        assert page == Page([1, 2], "abc", 9)

    def test_streamed_cursor_on_last_document(self):
        """The cursor is stripped from the last streamed entry."""
        page = normalize_page([{"document": {"name": "a"}}, {"document": {"name": "b"}, "cursor": "x"}])
        assert page.cursor == "x"
        assert page.documents == [{"document": {"name": "a"}}, {"document": {"name": "b"}}]

    def test_streamed_cursor_only_trailer(self):
        """A trailer holding only the cursor is dropped."""
        page = normalize_page([{"document": {"name": "a"}}, {"cursor": "x", "total": 5}])
        assert page == Page([{"document": {"name": "a"}}], "x", 5)

    def test_empty(self):
        """Empty arrays and missing documents are empty pages."""
        assert normalize_page([]) == Page([])
        assert normalize_page({}) == Page([])

    def test_invalid(self):
        """Other shapes are rejected."""
        with pytest.raises(ParseError):
            normalize_page("nope")
        with pytest.raises(ParseError):
            normalize_page({"documents": "nope"})


class TestCursorPaginator:
    """Prefetching page iteration."""

    def test_two_pages_of_two(self, make_transport):
        """4 items in 2 pages: exactly 2 requests, the second sent eagerly."""
        transport = make_transport(paged(["a", "b", "c", "d"], 2))
        paginator = CursorPaginator(transport, "/news/*", {"full": True})

        assert next(paginator) == "a"
        # page two is already in flight while page one is consumed
        assert len(transport.calls) == 2
        assert list(paginator) == ["b", "c", "d"]
        assert len(transport.calls) == 2
        assert paginator.pages_requested == 2

    def test_request_bodies(self, make_transport):
        """Page one has no cursor; later pages carry cursor and start."""
        transport = make_transport(paged(list(range(5)), 2))
        assert list(CursorPaginator(transport, "/news/*", {"full": True}, page_size=2)) == [0, 1, 2, 3, 4]
        bodies = [c.body for c in transport.calls]
        assert bodies[0] == {"full": True, "start": 0, "count": 2}
        assert bodies[1] == {"full": True, "start": 2, "cursor": "c2", "count": 2}
        assert bodies[2] == {"full": True, "start": 4, "cursor": "c4", "count": 2}
        assert all(c.method == "GET" and c.endpoint == "/news/*" for c in transport.calls)

    def test_lost_cursor_terminates(self, make_transport):
        """A server that drops the cursor and reports no total ends the stream."""

        def handler(call):
            start = call.body["start"]
            page = {"documents": [start, start + 1]}
            if start < 4:
                page["cursor"] = f"c{start}"
            return page

        transport = make_transport(handler)
        assert list(CursorPaginator(transport, "/news/*")) == [0, 1, 2, 3, 4, 5]
        assert len(transport.calls) == 3

    def test_total_without_cursor_advances_start(self, make_transport):
        """Without a cursor, total > start anchors the next page by start."""
        transport = make_transport(paged(list(range(6)), 2, cursors=False))
        assert list(CursorPaginator(transport, "/news/*")) == list(range(6))
        assert [c.body["start"] for c in transport.calls] == [0, 2, 4]
        assert all("cursor" not in c.body for c in transport.calls)

    def test_empty_page_terminates(self, make_transport):
        """An empty page ends iteration even if it carries a cursor."""
        transport = make_transport(lambda call: {"documents": [], "cursor": "again", "total": 10})
        assert list(CursorPaginator(transport, "/news/*")) == []
        assert len(transport.calls) == 1

    def test_limit(self, make_transport):
        """limit truncates and stops prefetching."""
        transport = make_transport(paged(list(range(10)), 2))
        assert list(CursorPaginator(transport, "/news/*", limit=3)) == [0, 1, 2]
        assert len(transport.calls) == 2

    def test_zero_limit_sends_nothing(self, make_transport):
        transport = make_transport(paged([1], 1))
        assert list(CursorPaginator(transport, "/news/*", limit=0)) == []
        assert transport.calls == []

    def test_transform(self, make_transport):
        """transform maps each raw entry."""
        transport = make_transport(paged([{"name": "a"}, {"name": "b"}], 5))
        names = list(CursorPaginator(transport, "/news/*", transform=lambda e: e["name"]))
        assert names == ["a", "b"]

    def test_page_failure_raises_iteration_error(self, make_transport):
        """A failed page fetch raises IterationError chained to the cause."""

        def handler(call):
            if call.body["start"] >= 2:
                raise NotFound("/news/*", 404)
            return paged(list(range(10)), 2)(call)

        transport = make_transport(handler)
        paginator = CursorPaginator(transport, "/news/*")
        assert next(paginator) == 0
        assert next(paginator) == 1
        with pytest.raises(IterationError) as excinfo:
            next(paginator)
        assert isinstance(excinfo.value.__cause__, NotFound)
        assert excinfo.value.context.url == "/news/*"
        with pytest.raises(StopIteration):
            next(paginator)

    def test_streamed_pages(self, make_transport):
        """Streamed pages follow the cursor on their last entry."""
        pages = {
            None: [{"n": 1}, {"n": 2, "cursor": "p2"}],
            "p2": [{"n": 3, "cursor": None}],
        }
        transport = make_transport(lambda call: pages[call.body.get("cursor")])
        assert [e["n"] for e in CursorPaginator(transport, "/news/*", {"stream": True})] == [1, 2, 3]
        assert len(transport.calls) == 2
