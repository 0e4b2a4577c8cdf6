"""Tests for documents, annotations and the compact wire format."""

import pytest

from docspine.core.errors import ParseError, SerializationError
from docspine.model.annotation import (
    Assignment,
    Judgment,
    Provenance,
    SpanAssignment,
    annotation_from_json,
)
from docspine.model.collection import Collection
from docspine.model.compact import expand_annotation, expand_document, is_compact
from docspine.model.document import Content, Document
from docspine.model.serialize import document_to_json, group_by_document


@pytest.fixture
def collection(make_transport):
    return Collection.instance(make_transport(), "news")


class TestCompactFormat:
    """Single-letter annotation keys."""

    def test_expand_annotation(self):
        expanded = expand_annotation({"a": "u1", "b": "sentiment", "c": "positive", "zz": 1})
        assert expanded == {"uuid": "u1", "task": "sentiment", "label": "positive", "zz": 1}

    def test_expand_document_keeps_other_fields(self):
        doc = {"name": "d1", "content": "text", "annotations": [{"b": "t", "c": "l"}]}
        expanded = expand_document(doc)
        assert expanded["content"] == "text"
        assert expanded["annotations"] == [{"task": "t", "label": "l"}]
        assert doc["annotations"] == [{"b": "t", "c": "l"}]

    def test_is_compact(self):
        assert is_compact({"b": "t"})
        assert not is_compact({"task": "t"})
        assert not is_compact({})


class TestDocument:
    """Stored documents."""

    def test_endpoint_and_identity(self, collection):
        doc = collection.document("a b")
        assert doc.endpoint == "/news/a%20b"
        assert collection.document("a b") is doc
        assert not doc.is_loaded

    def test_lazy_content(self, make_transport):
        transport = make_transport(
            lambda call: {"document": {"name": "d1", "content": "hello", "metadata": {"k": 1}}}
        )
        doc = Collection.instance(transport, "news").document("d1")
        assert doc.content == "hello"
        assert doc.metadata == {"k": 1}
        assert transport.calls[0].endpoint == "/news/d1"
        assert len(transport.calls) == 1

    def test_from_streamed_search_entry(self, collection):
        """Streamed entries are envelopes in compact form."""
        entry = {
            "document": {
                "name": "d1",
                "content": "I love it",
                "annotations": [{"a": "u1", "b": "sentiment", "c": "positive", "m": "Human"}],
            }
        }
        doc = Document.from_search_entry(collection, entry, streaming=True)
        assert doc.is_loaded
        [annotation] = doc.annotations()
        assert isinstance(annotation, Assignment)
        assert (annotation.task, annotation.label, annotation.uuid) == ("sentiment", "positive", "u1")
        assert annotation.provenance is Provenance.HUMAN
        assert annotation.document is doc

    def test_from_listing_entry(self, collection):
        """Listing entries are bare document objects."""
        doc = Document.from_search_entry(collection, {"name": "d2", "content": "x"}, streaming=False)
        assert doc.content == "x"
        assert doc.name == "d2"

    def test_entry_without_name(self, collection):
        with pytest.raises(ParseError):
            Document.from_search_entry(collection, {"content": "x"}, streaming=False)


class TestAnnotations:
    """Annotation wire form."""

    def test_assignment_json(self):
        body = Assignment(document=None, task="t", label="l", confidence=0.5).to_json()
        assert body == {
            "is_active": True,
            "task": "t",
            "label": "l",
            "provenance": "Human",
            "is_negated": False,
            "is_trainable": True,
            "confidence": 0.5,
        }

    def test_assignment_requires_label(self):
        with pytest.raises(SerializationError):
            Assignment(document=None, task="t", label="").to_json()

    def test_span_text_extracted(self):
        """Span text is cut from the document when not given."""
        span = SpanAssignment(
            document=Content("before \ud83d\udca9 after"), task="t", label="l", offset=9, length=5
        )
        assert span.to_json()["text"] == "after"

    def test_invalid_span(self):
        span = SpanAssignment(document=Content("x"), task="t", label="l", offset=-1, length=2)
        with pytest.raises(SerializationError):
            span.to_json()

    def test_judgment_of_uncommitted_assignment(self):
        """Judging an assignment without uuid cannot be serialized."""
        assignment = Assignment(document=None, task="t", label="l")
        with pytest.raises(SerializationError):
            Judgment.of(assignment).to_json()
        committed = Assignment(document=None, task="t", label="l", uuid="u1")
        body = Judgment.of(committed, disagreement=True).to_json()
        assert body["subject_id"] == "u1"
        assert body["is_negated"] is True

    def test_from_json_variants(self):
        span = annotation_from_json(None, {"task": {"name": "t"}, "label": "l", "offset": 1, "length": 2})
        assert isinstance(span, SpanAssignment)
        assert span.task == "t"
        judgment = annotation_from_json(None, {"w": "u1", "y": True})
        assert isinstance(judgment, Judgment)
        assert judgment.disagreement is True
        odd = annotation_from_json(None, {"task": "t", "label": "l", "provenance": "alien"})
        assert odd.provenance is Provenance.HUMAN


class TestSerialize:
    """Upload bodies."""

    def test_content(self):
        annotation = Assignment(document=None, task="t", label="l")
        body = document_to_json(Content("text", {"k": "v"}, name="d1", annotations=[annotation]))
        assert body["name"] == "d1"
        assert body["content"] == "text"
        assert body["metadata"] == {"k": "v"}
        assert body["annotations"][0]["label"] == "l"

    def test_minimal(self):
        assert document_to_json(Content("text")) == {"content": "text"}

    def test_no_text(self):
        with pytest.raises(SerializationError):
            document_to_json(object())

    def test_group_by_document(self):
        grouped = group_by_document([("a", {"n": 1}), ("b", {"n": 2}), ("a", {"n": 3})])
        assert grouped == [
            {"name": "a", "annotations": [{"n": 1}, {"n": 3}]},
            {"name": "b", "annotations": [{"n": 2}]},
        ]
