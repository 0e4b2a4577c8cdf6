"""Wire form of uploaded documents and annotations."""

from __future__ import annotations

from typing import Any

from docspine.core.errors import SerializationError
from docspine.model.annotation import Annotation


def document_to_json(item: Any) -> dict[str, Any]:
    """Upload body for one ``DocumentContent`` item.

    ``name`` and ``annotations`` are optional; a stored :class:`Document`
    contributes its name, text, metadata and annotations so it can be copied
    between collections.

    Raises:
        SerializationError: ``item`` has no text, or one of its annotations
            cannot be serialized.
    """
    content = getattr(item, "content", None)
    if not isinstance(content, str):
        raise SerializationError(f"Document has no text content: {item!r}")

    body: dict[str, Any] = {}
    name = getattr(item, "name", None)
    if name:
        body["name"] = str(name)
    body["content"] = content

    metadata = getattr(item, "metadata", None)
    if metadata is not None:
        if not isinstance(metadata, dict):
            raise SerializationError("Document metadata must be a JSON object")
        body["metadata"] = metadata

    annotations = getattr(item, "annotations", None)
    if callable(annotations):
        annotations = annotations()
    if annotations:
        body["annotations"] = [annotation_to_json(a) for a in annotations]
    return body


def annotation_to_json(annotation: Any) -> dict[str, Any]:
    if not isinstance(annotation, Annotation):
        raise SerializationError(f"Not an annotation: {annotation!r}")
    return annotation.to_json()


def group_by_document(pairs: list[tuple[str, dict[str, Any]]]) -> list[dict[str, Any]]:
    """``[(name, annotation_json)]`` → ``[{name, annotations}]`` in first-seen order."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for name, body in pairs:
        grouped.setdefault(name, []).append(body)
    return [{"name": name, "annotations": bodies} for name, bodies in grouped.items()]


__all__ = ["document_to_json", "annotation_to_json", "group_by_document"]
