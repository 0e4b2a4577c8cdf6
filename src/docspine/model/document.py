"""
Documents and document content.

``DocumentContent`` is anything with text to upload or classify: a plain
:class:`Content` value built by the application, or a :class:`Document`
already stored in a collection (whose text is fetched lazily).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from docspine.core.errors import ParseError
from docspine.model.annotation import Annotation, annotation_from_json
from docspine.model.compact import expand_document
from docspine.model.node import LazyNode, canonical, percent_encode

if TYPE_CHECKING:
    from docspine.model.collection import Collection


class DocumentContent(Protocol):
    """Text plus optional metadata.

    A static type only: reading ``metadata`` on a stored :class:`Document`
    fetches it, so this protocol is not checked with ``isinstance``.
    """

    @property
    def content(self) -> str: ...

    @property
    def metadata(self) -> dict[str, Any] | None: ...


@dataclass
class Content:
    """Application-supplied document content.

    ``name`` is optional for uploads (the service assigns one) and ignored for
    predictions. ``annotations`` are uploaded together with the document.
    """

    content: str
    metadata: dict[str, Any] | None = None
    name: str | None = None
    annotations: list[Annotation] = field(default_factory=list)


class Document(LazyNode):
    """A document stored in a collection."""

    root_key = "document"

    def __init__(self, name: str, collection: Collection) -> None:
        super().__init__(
            f"{collection.endpoint}/{percent_encode(name)}", collection.transport
        )
        self.name = name
        self.collection = collection

    @classmethod
    def instance(cls, collection: Collection, name: str) -> Document:
        """Canonical ``Document`` for ``name`` in ``collection``."""
        return canonical(cls(name, collection))

    @classmethod
    def from_search_entry(cls, collection: Collection, entry: dict[str, Any], *, streaming: bool) -> Document:
        """Build a preloaded document from one search result entry.

        Streamed entries are ``{"document": {...}}`` envelopes; wrapped
        listings return the bare document object.
        """
        body = entry.get("document") if streaming else entry
        if not isinstance(body, dict) or not isinstance(body.get("name"), str):
            raise ParseError("Search result entry has no document name")
        envelope = dict(entry) if streaming else {"document": body}
        envelope["document"] = expand_document(body)
        return cls.instance(collection, body["name"]).preload(envelope)

    @property
    def content(self) -> str:
        return self.get("content", "") or ""

    @property
    def metadata(self) -> dict[str, Any] | None:
        return self.get("metadata")

    def annotations(self) -> list[Annotation]:
        """Annotations included in the snapshot, compact keys expanded."""
        raw = self.get("annotations") or []
        return [annotation_from_json(self, a) for a in raw if isinstance(a, dict)]

    def tokens(self) -> list[Any]:
        return self.get("tokens") or []


__all__ = ["DocumentContent", "Content", "Document"]
