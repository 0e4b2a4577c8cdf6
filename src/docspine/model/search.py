"""
Document search: a configurable query over a collection's documents.

``DocumentSearcher`` collects filters and return-data options, validates the
combination synchronously when iteration starts, and streams matching
documents through a :class:`~docspine.execution.pagination.CursorPaginator`.

Return data that needs more than the document listing (annotations, tokens,
features) switches the service to streaming mode, where each page is a
chunked array of ``{"document": {...}}`` envelopes in compact wire form.

Examples::

    docs = (
        collection.documents()
        .annotated_for_tasks("sentiment")
        .returning(ReturnData.TASK_ANNOTATIONS)
    )
    for document in docs:
        print(document.name, len(document.annotations()))
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any

from docspine.core.errors import SearchConfigError
from docspine.core.logging import get_logger
from docspine.execution.pagination import CursorPaginator
from docspine.model.document import Document

if TYPE_CHECKING:
    from docspine.model.collection import Collection
    from docspine.model.task import Task

logger = get_logger(__name__)


class ReturnData(str, Enum):
    """Optional data returned with each document."""

    TASK_ANNOTATIONS = "task_annotations"
    ALL_ANNOTATIONS = "all_annotations"
    TASK_FEATURES = "task_features"
    DOCUMENT_TOKENS = "document_tokens"
    DOCUMENT_CONTENT = "document_content"


STREAMING_DATA = frozenset(
    {
        ReturnData.TASK_ANNOTATIONS,
        ReturnData.ALL_ANNOTATIONS,
        ReturnData.TASK_FEATURES,
        ReturnData.DOCUMENT_TOKENS,
    }
)


def _task_name(task: str | Task) -> str:
    return task if isinstance(task, str) else task.name


class DocumentSearcher:
    """Builder and iterable for a document search in one collection."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection
        self._returns: set[ReturnData] = set()
        self._text: str | None = None
        self._tasks: list[str] | None = None
        self._labels: list[str] | None = None
        self._feature_task: str | None = None
        self._limit: int | None = None
        self._page_size: int | None = None

    # ── Configuration ───────────────────────────────────────────

    def returning(self, *data: ReturnData) -> DocumentSearcher:
        self._returns.update(ReturnData(d) for d in data)
        return self

    def excluding(self, *data: ReturnData) -> DocumentSearcher:
        self._returns.difference_update(ReturnData(d) for d in data)
        return self

    def that_includes(self, text: str | None) -> DocumentSearcher:
        """Full-text filter. An empty string clears it."""
        self._text = text or None
        return self

    def annotated_for_tasks(self, *tasks: str | Task) -> DocumentSearcher:
        """Only documents with annotations for any of ``tasks``.

        Replaces any label filter.
        """
        self._tasks = [_task_name(t) for t in tasks] or None
        self._labels = None
        return self

    def annotated_for_labels(self, task: str | Task, *labels: str) -> DocumentSearcher:
        """Only documents annotated with one of ``labels`` of ``task``."""
        if not labels:
            raise SearchConfigError("Empty labels array")
        self._tasks = [_task_name(task)]
        self._labels = list(labels)
        return self

    def using_features_from(self, task: str | Task) -> DocumentSearcher:
        self._feature_task = _task_name(task)
        return self

    def limit(self, count: int | None) -> DocumentSearcher:
        self._limit = count
        return self

    def page_size(self, count: int | None) -> DocumentSearcher:
        self._page_size = count
        return self

    # ── Query ───────────────────────────────────────────────────

    @property
    def streaming(self) -> bool:
        return bool(self._returns & STREAMING_DATA)

    @property
    def endpoint(self) -> str:
        return f"{self.collection.endpoint}/*"

    def validate(self) -> None:
        """Reject contradictory configurations.

        Raises:
            SearchConfigError: the configuration cannot be searched.
        """
        if (
            ReturnData.TASK_ANNOTATIONS in self._returns
            and self._tasks is None
            and ReturnData.ALL_ANNOTATIONS not in self._returns
        ):
            raise SearchConfigError("Task list required to return TaskAnnotations")
        if self.streaming and self._text is not None:
            raise SearchConfigError("Full-text search incompatible with return data")
        if (
            ReturnData.TASK_FEATURES in self._returns
            and self._tasks is None
            and self._feature_task is None
        ):
            raise SearchConfigError("A task must be provided to return TaskFeatures")

    def _doc_args(self) -> dict[str, Any]:
        args: dict[str, Any] = {"skip_null_fields": True}
        if ReturnData.DOCUMENT_TOKENS in self._returns:
            args["tokens"] = True
        if ReturnData.ALL_ANNOTATIONS in self._returns:
            pass  # the service default
        elif ReturnData.TASK_ANNOTATIONS in self._returns:
            args["task"] = list(self._tasks or [])
        else:
            args["skip_annotations"] = True
        args["format"] = "compact"
        if ReturnData.TASK_FEATURES in self._returns:
            args["features"] = self._feature_task or (self._tasks or [None])[0]
        return args

    def query(self) -> dict[str, Any]:
        """The request body shared by every page of this search."""
        self.validate()
        query: dict[str, Any] = {}
        if self.streaming:
            query["stream"] = True
            query["doc_args"] = self._doc_args()
        elif ReturnData.DOCUMENT_CONTENT in self._returns:
            query["full"] = True
        if self._text is not None:
            query["text"] = self._text
        if self._tasks is not None:
            query["task"] = list(self._tasks)
        if self._labels is not None:
            query["label"] = list(self._labels)
        return query

    def __iter__(self) -> Iterator[Document]:
        query = self.query()
        streaming = self.streaming
        collection = self.collection
        logger.debug(
            "search.start",
            collection=collection.name,
            streaming=streaming,
            returns=sorted(r.value for r in self._returns),
        )
        return CursorPaginator(
            collection.transport,
            self.endpoint,
            query,
            limit=self._limit,
            page_size=self._page_size,
            transform=lambda entry: Document.from_search_entry(
                collection, entry, streaming=streaming
            ),
        )


__all__ = ["ReturnData", "DocumentSearcher", "STREAMING_DATA"]
