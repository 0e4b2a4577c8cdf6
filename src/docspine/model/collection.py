"""
Collections: the top-level container of documents and tasks.

Collections, and the documents and tasks reached through them, are
canonical: asking twice for the same name on the same transport returns the
same instance, so its cached snapshot is shared.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from docspine.core.errors import ParseError
from docspine.core.logging import get_logger
from docspine.model.document import Document
from docspine.model.node import LazyNode, canonical, percent_encode
from docspine.model.ontology import OntologyGraph
from docspine.model.search import DocumentSearcher
from docspine.model.task import Task
from docspine.model.uploads import PostAnnotationsPipeline, PostDocumentsPipeline
from docspine.transport.protocol import Transport

logger = get_logger(__name__)


class Collection(LazyNode):
    """A named collection on the service."""

    root_key = "collection"

    def __init__(self, name: str, transport: Transport) -> None:
        super().__init__(f"/{percent_encode(name)}", transport)
        self.name = name

    @classmethod
    def instance(cls, transport: Transport, name: str) -> Collection:
        """Canonical ``Collection`` for ``name`` on ``transport``."""
        return canonical(cls(name, transport))

    # ── Members ─────────────────────────────────────────────────

    def document(self, name: str) -> Document:
        return Document.instance(self, name)

    def task(self, name: str) -> Task:
        return Task.instance(self, name)

    def tasks(self) -> list[Task]:
        """Tasks configured in this collection, preloaded from its snapshot."""
        result = []
        for entry in self.get("tasks") or []:
            if isinstance(entry, str):
                result.append(self.task(entry))
            elif isinstance(entry, dict):
                result.append(Task.from_json(self, {"task": entry}))
            else:
                raise ParseError(f"Invalid task entry in collection {self.name!r}")
        return result

    def ontology(self) -> OntologyGraph:
        """Validated task → sub-task graph of this collection.

        Raises:
            OntologyCycleError: the sub-task configuration is cyclic.
        """
        return OntologyGraph.from_tasks(self.tasks())

    def documents(self) -> DocumentSearcher:
        """A search over every document; narrow it with the searcher's filters."""
        return DocumentSearcher(self)

    # ── Uploads ─────────────────────────────────────────────────

    def add_documents(
        self, items: Iterable[Any], *, stop_on_error: bool = False
    ) -> PostDocumentsPipeline:
        """Upload ``DocumentContent`` items. Yields a ``Result`` per item, in order."""
        return PostDocumentsPipeline(self, items, stop_on_error=stop_on_error)

    def add_document(self, item: Any) -> Document:
        """Upload one document. Raises the request's error on failure."""
        return next(self.add_documents([item])).unwrap()

    def add_annotations(
        self, annotations: Iterable[Any], *, stop_on_error: bool = False
    ) -> PostAnnotationsPipeline:
        """Upload annotations. Yields a ``Result`` per batch, in order."""
        return PostAnnotationsPipeline(self, annotations, stop_on_error=stop_on_error)

    def add_annotation(self, annotation: Any) -> Any:
        """Upload one annotation. Raises the request's error on failure."""
        return next(self.add_annotations([annotation])).unwrap()

    def __repr__(self) -> str:
        return f"Collection({self.name!r})"


__all__ = ["Collection"]
