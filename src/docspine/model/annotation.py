"""
Annotations: label assignments and judgments attached to documents.

Three shapes travel on the wire:

- ``Assignment``      a document-scope label (``task``/``label``)
- ``SpanAssignment``  a label on a code-point span (``offset``/``length``)
- ``Judgment``        agreement or disagreement with an existing assignment
                      (``subject_id`` = the assignment's uuid)

``to_json`` raises :class:`~docspine.core.errors.SerializationError` for
annotations that cannot be sent (a judgment of an unsaved assignment, for
example); the annotation upload pipeline turns that into a per-item failure.

Examples:
    >>> Assignment(document=None, task="sentiment", label="positive").to_json()["label"]
    'positive'
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from docspine.core.errors import SerializationError
from docspine.core.unicode import extract
from docspine.model.compact import expand_annotation, is_compact


class Provenance(str, Enum):
    """Where an annotation came from."""

    AGGREGATION = "aggregation"
    BOOTSTRAPPED = "bootstrapped"
    CLUSTER = "cluster"
    PREDICTION = "prediction"
    HUMAN = "Human"
    CROWD = "Crowd"
    CROWDFLOWER = "Crowdflower"


@dataclass(kw_only=True, eq=False)
class Annotation:
    """Fields shared by every annotation."""

    document: Any
    is_active: bool = True
    uuid: str | None = None
    user_id: str | None = None

    @property
    def document_name(self) -> str | None:
        return getattr(self.document, "name", None)

    def _base_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"is_active": self.is_active}
        if self.uuid is not None:
            body["uuid"] = str(self.uuid)
        if self.user_id is not None:
            body["user_id"] = str(self.user_id)
        return body

    def to_json(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(kw_only=True, eq=False)
class Assignment(Annotation):
    """Document-scope label assignment."""

    task: str
    label: str
    provenance: Provenance = Provenance.HUMAN
    is_negated: bool = False
    is_trainable: bool = True
    confidence: float | None = None

    def to_json(self) -> dict[str, Any]:
        if not self.task or not self.label:
            raise SerializationError("Assignment requires a task and a label")
        body = self._base_json()
        body["task"] = self.task
        body["label"] = self.label
        body["provenance"] = Provenance(self.provenance).value
        body["is_negated"] = self.is_negated
        body["is_trainable"] = self.is_trainable
        if self.confidence is not None and not math.isnan(self.confidence):
            body["confidence"] = self.confidence
        return body


@dataclass(kw_only=True, eq=False)
class SpanAssignment(Assignment):
    """Label on ``length`` code points starting at ``offset``."""

    offset: int
    length: int
    text: str | None = None

    def span_text(self) -> str:
        """The labeled text, extracted from the document if not given."""
        if self.text is not None:
            return self.text
        return extract(self.document, self.offset, self.length)

    def to_json(self) -> dict[str, Any]:
        if self.offset < 0 or self.length < 0:
            raise SerializationError(
                f"Invalid span offset={self.offset} length={self.length}"
            )
        body = super().to_json()
        body["offset"] = self.offset
        body["length"] = self.length
        try:
            body["text"] = self.span_text()
        except Exception as e:
            raise SerializationError(f"Unable to extract span text: {e}", cause=e) from e
        return body


@dataclass(kw_only=True, eq=False)
class Judgment(Annotation):
    """Agreement (``disagreement=False``) or disagreement with an assignment."""

    subject_id: str | None
    disagreement: bool = False

    @classmethod
    def of(cls, assignment: Assignment, *, disagreement: bool = False, **kwargs: Any) -> Judgment:
        return cls(
            document=assignment.document,
            subject_id=assignment.uuid,
            disagreement=disagreement,
            **kwargs,
        )

    def to_json(self) -> dict[str, Any]:
        if self.subject_id is None:
            raise SerializationError("Can't judge uncommitted assignment")
        body = self._base_json()
        body["subject_id"] = str(self.subject_id)
        body["is_negated"] = self.disagreement
        return body


def annotation_from_json(document: Any, data: dict[str, Any]) -> Annotation:
    """Build the matching annotation type from a (full or compact) wire object."""
    if is_compact(data):
        data = expand_annotation(data)

    common = {
        "document": document,
        "is_active": data.get("is_active", True),
        "uuid": data.get("uuid"),
        "user_id": data.get("user_id"),
    }
    if data.get("subject_id") is not None:
        return Judgment(
            subject_id=data["subject_id"],
            disagreement=bool(data.get("is_negated", False)),
            **common,
        )

    provenance = data.get("provenance") or Provenance.HUMAN.value
    try:
        provenance = Provenance(provenance)
    except ValueError:
        provenance = Provenance.HUMAN
    fields = dict(
        common,
        task=_name_of(data.get("task")),
        label=_name_of(data.get("label")),
        provenance=provenance,
        is_negated=bool(data.get("is_negated", False)),
        is_trainable=bool(data.get("is_trainable", True)),
        confidence=data.get("confidence"),
    )
    if data.get("offset") is not None and data.get("length") is not None:
        return SpanAssignment(
            offset=int(data["offset"]),
            length=int(data["length"]),
            text=data.get("text"),
            **fields,
        )
    return Assignment(**fields)


def _name_of(value: Any) -> str:
    # the service returns either a bare name or {"name": ...}
    if isinstance(value, dict):
        return str(value.get("name", ""))
    return "" if value is None else str(value)


__all__ = [
    "Provenance",
    "Annotation",
    "Assignment",
    "SpanAssignment",
    "Judgment",
    "annotation_from_json",
]
