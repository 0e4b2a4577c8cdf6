"""
Batch uploads of documents and annotations.

Both pipelines POST to ``{collection}/*`` and inherit ordering, the
in-flight bound and per-batch failure isolation from
:class:`~docspine.execution.pipeline.BatchPipeline`:

==========================  ===============  ==========  =====================
Pipeline                    Batch            In flight   Yields
==========================  ===============  ==========  =====================
``PostDocumentsPipeline``   100 docs / 25kB  1..25       ``Ok(Document)`` each
``PostAnnotationsPipeline`` 40 annotations   3           ``Ok(response)`` each
==========================  ===============  ==========  =====================

A failed batch yields one ``Err(APIFailure(error, items))`` carrying the
items of that batch.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

from docspine.core.errors import ParseError, SerializationError, ValidationError
from docspine.core.result import Ok, Result
from docspine.execution.pipeline import BatchPipeline
from docspine.model.document import Document
from docspine.model.serialize import annotation_to_json, document_to_json, group_by_document
from docspine.transport.protocol import parallel_request_limit

if TYPE_CHECKING:
    from docspine.model.collection import Collection

DOCUMENT_BATCH_LIMIT = 100
DOCUMENT_BATCH_TARGET_BYTES = 25_000
MAX_DOCUMENT_WINDOW = 25

ANNOTATION_BATCH_LIMIT = 40
ANNOTATION_WINDOW = 3


def document_window(transport: Any) -> int:
    """In-flight document batches: the transport's parallel limit, clamped."""
    return min(max(parallel_request_limit(transport), 1), MAX_DOCUMENT_WINDOW)


class PostDocumentsPipeline(BatchPipeline[Document]):
    """Upload ``DocumentContent`` items; yields the stored documents."""

    name = "post_documents"

    def __init__(
        self,
        collection: Collection,
        items: Iterable[Any],
        *,
        stop_on_error: bool = False,
        window: int | None = None,
    ) -> None:
        self.collection = collection
        super().__init__(
            items,
            window=window or document_window(collection.transport),
            batch_limit=DOCUMENT_BATCH_LIMIT,
            batch_target_bytes=DOCUMENT_BATCH_TARGET_BYTES,
            stop_on_error=stop_on_error,
        )

    def _serialize(self, item: Any) -> dict[str, Any]:
        return document_to_json(item)

    def _dispatch(self, payloads: list[Any]) -> Future:
        return self.collection.transport.post(
            f"{self.collection.endpoint}/*", {"documents": payloads}
        )

    def _interpret(self, items: list[Any], response: Any) -> list[Result[Document]]:
        documents = response.get("documents") if isinstance(response, dict) else None
        if not isinstance(documents, list):
            raise ParseError("API response contained no data")
        if len(documents) != len(items):
            raise ParseError(
                f"Uploaded {len(items)} documents but the response lists {len(documents)}"
            )
        results: list[Result[Document]] = []
        for entry in documents:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                raise ParseError("Uploaded document entry has no name")
            results.append(Ok(self.collection.document(entry["name"])))
        return results


class PostAnnotationsPipeline(BatchPipeline[Any]):
    """Upload annotations grouped by document; yields one response per batch."""

    name = "post_annotations"

    def __init__(
        self,
        collection: Collection,
        annotations: Iterable[Any],
        *,
        stop_on_error: bool = False,
    ) -> None:
        self.collection = collection
        super().__init__(
            annotations,
            window=ANNOTATION_WINDOW,
            batch_limit=ANNOTATION_BATCH_LIMIT,
            stop_on_error=stop_on_error,
        )

    def _serialize(self, annotation: Any) -> tuple[str, dict[str, Any]]:
        document = getattr(annotation, "document", None)
        name = getattr(document, "name", None)
        if not name:
            raise SerializationError("Annotation is not attached to a named document")
        if isinstance(document, Document) and document.collection != self.collection:
            raise ValidationError(
                f"Document {name!r} belongs to {document.collection.name!r}, "
                f"not {self.collection.name!r}"
            )
        return name, annotation_to_json(annotation)

    def _dispatch(self, payloads: list[Any]) -> Future:
        return self.collection.transport.post(
            f"{self.collection.endpoint}/*", {"documents": group_by_document(payloads)}
        )

    def _interpret(self, items: list[Any], response: Any) -> list[Result[Any]]:
        return [Ok(response)]


__all__ = [
    "PostDocumentsPipeline",
    "PostAnnotationsPipeline",
    "document_window",
    "DOCUMENT_BATCH_LIMIT",
    "DOCUMENT_BATCH_TARGET_BYTES",
    "ANNOTATION_BATCH_LIMIT",
    "ANNOTATION_WINDOW",
]
