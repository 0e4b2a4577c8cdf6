"""Domain objects: collections, documents, tasks, annotations, predictions."""

from docspine.model.annotation import (
    Annotation,
    Assignment,
    Judgment,
    Provenance,
    SpanAssignment,
    annotation_from_json,
)
from docspine.model.collection import Collection
from docspine.model.document import Content, Document, DocumentContent
from docspine.model.node import LazyNode
from docspine.model.ontology import OntologyGraph
from docspine.model.predictions import (
    DocumentPrediction,
    PredictionIterable,
    Span,
    SpanPrediction,
)
from docspine.model.search import DocumentSearcher, ReturnData
from docspine.model.task import Label, Task, TaskScope
from docspine.model.tuning import RegexRule, Rule, SubstringRule, TuningRules
from docspine.model.uploads import PostAnnotationsPipeline, PostDocumentsPipeline

__all__ = [
    "LazyNode",
    "Collection",
    "Document",
    "DocumentContent",
    "Content",
    "DocumentSearcher",
    "ReturnData",
    "Task",
    "TaskScope",
    "Label",
    "Rule",
    "SubstringRule",
    "RegexRule",
    "TuningRules",
    "OntologyGraph",
    "Annotation",
    "Assignment",
    "SpanAssignment",
    "Judgment",
    "Provenance",
    "annotation_from_json",
    "DocumentPrediction",
    "SpanPrediction",
    "Span",
    "PredictionIterable",
    "PostDocumentsPipeline",
    "PostAnnotationsPipeline",
]
