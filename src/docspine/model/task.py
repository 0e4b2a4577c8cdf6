"""
Tasks and labels.

A task is a classifier configured in a collection: document-scope tasks
assign labels to whole documents, span-scope tasks to code-point spans.
``Task.predictions`` streams predictions for any number of items through the
bounded prediction pipeline.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from docspine.core.errors import ParseError
from docspine.core.logging import get_logger
from docspine.model.node import LazyNode, canonical, percent_encode
from docspine.model.tuning import Rule, TuningRules

if TYPE_CHECKING:
    from docspine.model.collection import Collection
    from docspine.model.predictions import DocumentPrediction, PredictionIterable, SpanPrediction

logger = get_logger(__name__)

# feature extractors whose only effect is the label rules they carry
RULE_FEATURE_NAMES = frozenset({"ClarabridgeRule"})


class TaskScope(str, Enum):
    DOCUMENT = "document"
    SPAN = "span"


@dataclass(frozen=True)
class Label:
    """A label of a task. Value object: equal by task and name."""

    task: Task
    name: str

    def rules(self) -> list[Rule]:
        return list(self.task.rules().get(self, []))

    def __repr__(self) -> str:
        return f"Label({self.task.name!r}, {self.name!r})"


def _rules_are_blank(label_rules: Any) -> bool:
    if isinstance(label_rules, str):
        if not label_rules.strip():
            return True
        try:
            label_rules = json.loads(label_rules)
        except ValueError:
            return False
    stack = [label_rules]
    while stack:
        value = stack.pop()
        if isinstance(value, str):
            if value.strip():
                return False
        elif isinstance(value, dict):
            stack.extend(value.values())
        elif isinstance(value, list):
            stack.extend(value)
        elif value is not None:
            return False
    return True


class Task(LazyNode):
    """A classification task in a collection."""

    root_key = "task"

    def __init__(self, name: str, collection: Collection) -> None:
        super().__init__(
            f"{collection.endpoint}/{percent_encode(name)}", collection.transport
        )
        self.name = name
        self.collection = collection

    @classmethod
    def instance(cls, collection: Collection, name: str) -> Task:
        """Canonical ``Task`` for ``name`` in ``collection``."""
        return canonical(cls(name, collection))

    @classmethod
    def from_json(cls, collection: Collection, data: dict[str, Any]) -> Task:
        """Canonical task preloaded with a ``{"task": {...}}`` envelope."""
        body = data.get("task")
        if not isinstance(body, dict) or "name" not in body:
            raise ParseError("Task object has no name")
        return cls.instance(collection, body["name"]).preload(data)

    # ── Configuration ───────────────────────────────────────────

    @property
    def scope(self) -> TaskScope:
        return TaskScope(self.get("scope", TaskScope.DOCUMENT.value))

    @property
    def config(self) -> dict[str, Any]:
        return self.get("config") or {}

    def label(self, name: str) -> Label:
        return Label(self, name)

    def labels(self) -> list[Label]:
        result = []
        for entry in self.get("labels") or []:
            name = entry.get("name") if isinstance(entry, dict) else entry
            if name is not None:
                result.append(self.label(str(name)))
        return result

    def rules(self) -> TuningRules:
        return TuningRules.parse(self, self.config)

    def subtasks(self) -> dict[Label, set[Task]]:
        """``config.sub_tasks``: label → tasks triggered by that label."""
        raw = self.config.get("sub_tasks") or {}
        if not isinstance(raw, dict):
            raise ParseError(f"Task {self.name!r} sub_tasks is not an object")
        return {
            self.label(label): {self.collection.task(name) for name in names or []}
            for label, names in raw.items()
        }

    def is_trivial_accept(self) -> bool:
        """True if every prediction is a certain accept of every label.

        That is the case for tasks whose only features are rule features
        with no non-blank rules, and which carry no tuning rules.
        """
        features = self.get("features") or []
        if not features:
            return False
        for feature in features:
            if not isinstance(feature, dict) or feature.get("name") not in RULE_FEATURE_NAMES:
                return False
            params = feature.get("parameters") or {}
            if not _rules_are_blank(params.get("label_rules")):
                return False
        return self.rules().is_empty()

    # ── Predictions ─────────────────────────────────────────────

    def predictions(
        self,
        items: Iterable[Any],
        factory: Callable[[list[Any], Any, Task], Any] | None = None,
    ) -> PredictionIterable:
        """Stream predictions for ``items``.

        ``factory`` builds each prediction from ``(json, item, task)``; it
        defaults to :class:`DocumentPrediction` for document-scope tasks and
        :class:`SpanPrediction` for span-scope tasks.
        """
        from docspine.model.predictions import (
            DocumentPrediction,
            PredictionIterable,
            SpanPrediction,
        )

        if factory is None:
            factory = (
                SpanPrediction
                if self.scope is TaskScope.SPAN
                else DocumentPrediction
            )
        return PredictionIterable(self, items, factory)

    def classifications(self, items: Iterable[Any]) -> PredictionIterable:
        """Document-level predictions for ``items``."""
        from docspine.model.predictions import DocumentPrediction

        return self.predictions(items, DocumentPrediction)

    def spans(self, items: Iterable[Any]) -> PredictionIterable:
        from docspine.model.predictions import SpanPrediction

        return self.predictions(items, SpanPrediction)

    def predict(self, item: Any) -> DocumentPrediction | SpanPrediction:
        """Predict a single item. Raises the request's error on failure."""
        return next(iter(self.predictions([item]))).unwrap()

    def __repr__(self) -> str:
        return f"Task({self.collection.name!r}, {self.name!r})"


__all__ = ["Task", "TaskScope", "Label", "RULE_FEATURE_NAMES"]
