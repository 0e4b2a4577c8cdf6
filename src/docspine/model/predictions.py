"""
Predictions: streaming classification of many items against one task.

``PredictionIterable`` is re-iterable: each ``iter()`` starts a fresh
:class:`PredictionPipeline` that keeps ``2 × parallel_request_limit``
requests in flight, one item per request, and yields
``Ok(prediction)`` / ``Err(APIFailure(error, item))`` in input order.

Tasks whose configuration makes every prediction a certain accept (see
:meth:`Task.is_trivial_accept`) are answered locally with a synthesized
1.0-confidence prediction and no network traffic.

Examples::

    for result in task.classifications(Content(text) for text in texts):
        result.fold(
            lambda failure: log.warning("failed", item=failure.request),
            lambda p: print(p.top_label, p.confidence),
        )
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from docspine.core.errors import ParseError, SerializationError
from docspine.core.logging import get_logger
from docspine.core.result import Ok, Result
from docspine.execution.pipeline import BatchPipeline
from docspine.model.document import Document
from docspine.transport.protocol import parallel_request_limit

if TYPE_CHECKING:
    from docspine.model.task import Label, Task

logger = get_logger(__name__)

DEFAULT_FEATURE_THRESHOLD = 0.7
DEFAULT_PREDICTION_THRESHOLD = 0.49
# above 1.0 so that no label triggers hierarchical sub-task predictions
DOCUMENT_PREDICTION_THRESHOLD = 1.1

TRIVIAL_ACCEPT_CONFIDENCE = 1.0
DEFAULT_LABEL_NAME = "Label1"


class DocumentPrediction:
    """Document-level label confidences for one requested item."""

    prediction_threshold = DOCUMENT_PREDICTION_THRESHOLD
    supports_trivial_accept = True

    def __init__(self, raw: list[dict[str, Any]], requested: Any, task: Task) -> None:
        self.raw = raw
        self.requested = requested
        self.task = task

    def _head(self) -> dict[str, Any]:
        if not self.raw or not isinstance(self.raw[0], dict):
            raise ParseError("API returned no data.")
        return self.raw[0]

    @property
    def top_label(self) -> Label:
        return self.task.label(self._head()["class"])

    @property
    def confidence(self) -> float:
        return float(self._head().get("confidence", math.nan))

    def confidences(self) -> dict[Label, float]:
        """Confidence per label; non-numeric values become NaN."""
        classes = self._head().get("classes")
        if not isinstance(classes, dict):
            raise ParseError("API returned no data.")
        return {
            self.task.label(name): (
                float(value)
                if isinstance(value, (int, float)) and not isinstance(value, bool)
                else math.nan
            )
            for name, value in classes.items()
        }

    def significant_features(self) -> dict[Label, list[str]] | None:
        """Feature names per label, or ``None`` if features were not requested."""
        features = self._head().get("features")
        if features is None:
            return None
        return {
            self.task.label(name): list(weights) if isinstance(weights, dict) else []
            for name, weights in features.items()
        }

    def __repr__(self) -> str:
        return f"DocumentPrediction({self.task.name!r}, {self.raw!r})"


@dataclass(frozen=True)
class Span:
    label: Label
    confidence: float
    offset: int
    length: int
    text: str | None


class SpanPrediction:
    """Span-level predictions for one requested item."""

    prediction_threshold = DEFAULT_PREDICTION_THRESHOLD
    supports_trivial_accept = False

    def __init__(self, raw: list[dict[str, Any]], requested: Any, task: Task) -> None:
        self.raw = raw
        self.requested = requested
        self.task = task

    def spans(self) -> list[Span]:
        return [
            Span(
                label=self.task.label(p["class"]),
                confidence=float(p.get("confidence", math.nan)),
                offset=int(p["offset"]),
                length=int(p["length"]),
                text=p.get("text"),
            )
            for p in self.raw
        ]

    def __repr__(self) -> str:
        return f"SpanPrediction({self.task.name!r}, {len(self.raw)} spans)"


PredictionFactory = Callable[[list[Any], Any, "Task"], Any]


class PredictionPipeline(BatchPipeline[Any]):
    """One GET per item against the task endpoint."""

    name = "predictions"
    single_item = True

    def __init__(
        self,
        task: Task,
        items: Iterable[Any],
        factory: PredictionFactory,
        *,
        window: int,
        include_features: bool = False,
        feature_threshold: float = DEFAULT_FEATURE_THRESHOLD,
    ) -> None:
        self.task = task
        self.factory = factory
        self.threshold = getattr(factory, "prediction_threshold", DEFAULT_PREDICTION_THRESHOLD)
        self.include_features = include_features
        self.feature_threshold = feature_threshold
        super().__init__(items, window=window, batch_limit=1)

    def _serialize(self, item: Any) -> dict[str, Any]:
        body: dict[str, Any] = {"threshold": self.threshold}
        if self.include_features:
            body["features"] = True
            body["feature_threshold"] = self.feature_threshold

        # documents already stored alongside the task are predicted in place
        if isinstance(item, Document) and item.collection == self.task.collection:
            body["document"] = item.name
            return body

        content = item if isinstance(item, str) else getattr(item, "content", None)
        if not isinstance(content, str):
            raise SerializationError(f"Item has no text content: {item!r}")
        body["content"] = content
        metadata = getattr(item, "metadata", None)
        if metadata is not None:
            body["metadata"] = metadata
        return body

    def _dispatch(self, payloads: list[Any]) -> Future:
        return self.task.transport.get(self.task.endpoint, payloads[0])

    def _interpret(self, items: list[Any], response: Any) -> list[Result[Any]]:
        if not isinstance(response, list):
            raise ParseError(f"Prediction response is not an array: {type(response).__name__}")
        return [Ok(self.factory(response, items[0], self.task))]


class PredictionIterable:
    """Re-iterable prediction stream over ``items``."""

    def __init__(self, task: Task, items: Iterable[Any], factory: PredictionFactory) -> None:
        self.task = task
        self.items = items
        self.factory = factory
        self.include_features = False
        self.feature_threshold = DEFAULT_FEATURE_THRESHOLD

    def with_significant_features(self, threshold: float = DEFAULT_FEATURE_THRESHOLD) -> PredictionIterable:
        """Also return the features that most influenced each label."""
        self.include_features = True
        self.feature_threshold = threshold
        return self

    def _trivial_prediction(self) -> list[dict[str, Any]]:
        classes: dict[str, float] = {}
        label_name = DEFAULT_LABEL_NAME
        for label in self.task.labels():
            label_name = label.name
            classes[label_name] = TRIVIAL_ACCEPT_CONFIDENCE
        prediction: dict[str, Any] = {
            "class": label_name,
            "confidence": TRIVIAL_ACCEPT_CONFIDENCE,
            "classes": classes,
        }
        if self.include_features:
            # rule features carry no weights, so there is nothing to explain
            prediction["features"] = {}
        return [prediction]

    def _iter_trivial(self) -> Iterator[Result[Any]]:
        raw = self._trivial_prediction()
        logger.debug("predictions.trivial_accept", task=self.task.name)
        for item in self.items:
            yield Ok(self.factory(raw, item, self.task))

    def __iter__(self) -> Iterator[Result[Any]]:
        if getattr(self.factory, "supports_trivial_accept", False) and self.task.is_trivial_accept():
            return self._iter_trivial()
        window = 2 * parallel_request_limit(self.task.transport)
        return PredictionPipeline(
            self.task,
            self.items,
            self.factory,
            window=window,
            include_features=self.include_features,
            feature_threshold=self.feature_threshold,
        )


__all__ = [
    "DocumentPrediction",
    "SpanPrediction",
    "Span",
    "PredictionPipeline",
    "PredictionIterable",
    "DEFAULT_FEATURE_THRESHOLD",
]
