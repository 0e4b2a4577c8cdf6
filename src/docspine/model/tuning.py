"""Tuning rules: per-label phrase weights from a task's ``config.tuning``.

A phrase wrapped in slashes (``/(?i)short.?hair/``) is a regular expression;
anything else is a plain substring. Weights run from 0.0 (blacklist) to 1.0
(whitelist).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docspine.core.errors import ParseError

if TYPE_CHECKING:
    from docspine.model.task import Label, Task


@dataclass(frozen=True, eq=False)
class Rule:
    """A weighted phrase for one label."""

    label: Label | None
    phrase: str
    weight: float

    @property
    def is_blacklist(self) -> bool:
        return self.weight == 0.0

    @property
    def is_whitelist(self) -> bool:
        return self.weight == 1.0

    @property
    def is_predictive(self) -> bool:
        return self.weight > 0.5

    @property
    def is_anti_predictive(self) -> bool:
        return self.weight < 0.5

    def matches(self, text: str) -> bool:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rule):
            return NotImplemented
        return other.weight == self.weight and other.phrase == self.phrase

    def __hash__(self) -> int:
        return hash(self.phrase)

    @staticmethod
    def parse(label: Label | None, phrase: str, weight: Any) -> Rule:
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise ParseError(f"API returned invalid weight: {weight!r}")
        if len(phrase) >= 2 and phrase.startswith("/") and phrase.endswith("/"):
            return RegexRule(label, phrase, float(weight))
        return SubstringRule(label, phrase, float(weight))


class SubstringRule(Rule):
    def matches(self, text: str) -> bool:
        return self.phrase in text


@dataclass(frozen=True, eq=False)
class RegexRule(Rule):
    _pattern: re.Pattern | None = field(default=None, repr=False, compare=False)

    @property
    def pattern(self) -> re.Pattern:
        if self._pattern is None:
            object.__setattr__(self, "_pattern", re.compile(self.phrase[1:-1]))
        return self._pattern

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


class TuningRules(dict):
    """``Label`` → list of :class:`Rule`, in configuration order."""

    @classmethod
    def parse(cls, task: Task, config: dict[str, Any] | None) -> TuningRules:
        rules = cls()
        tuning = (config or {}).get("tuning") or {}
        if not isinstance(tuning, dict):
            raise ParseError("Task tuning configuration is not an object")
        for label_name, phrases in tuning.items():
            label = task.label(label_name)
            rules[label] = [
                Rule.parse(label, phrase, weight)
                for phrase, weight in (phrases or {}).items()
            ]
        return rules

    def copy(self) -> TuningRules:
        return TuningRules({label: list(rules) for label, rules in self.items()})

    def is_empty(self) -> bool:
        return not any(self.values())


__all__ = ["Rule", "SubstringRule", "RegexRule", "TuningRules"]
