"""Compact wire-format expansion.

Searches request ``format: "compact"``, in which annotation objects use
single-letter keys (``{"b": "sentiment", "c": "positive", "d": 4, ...}``).
``expand_document`` rewrites a document's annotations to full key names and
leaves every other field untouched.
"""

from __future__ import annotations

from typing import Any

COMPACT_ANNOTATION_KEYS: dict[str, str] = {
    "a": "uuid",
    "b": "task",
    "c": "label",
    "d": "offset",
    "e": "length",
    "f": "text",
    "g": "offset2",
    "h": "length2",
    "i": "text2",
    "j": "is_active",
    "k": "boost",
    "l": "confidence",
    "m": "provenance",
    "n": "created_at",
    "o": "updated_at",
    "p": "status",
    "q": "importance",
    "r": "user_id",
    "s": "is_trainable",
    "t": "requested_for",
    "u": "queued_at",
    "v": "pending_at",
    "w": "subject_id",
    "x": "is_in_agreement",
    "y": "is_negated",
}


def expand_annotation(compact: dict[str, Any]) -> dict[str, Any]:
    """Rename compact keys; unknown keys pass through unchanged."""
    return {COMPACT_ANNOTATION_KEYS.get(k, k): v for k, v in compact.items()}


def expand_document(compact: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``compact`` with its ``annotations`` expanded."""
    expanded = {k: v for k, v in compact.items() if k != "annotations"}
    annotations = compact.get("annotations")
    if annotations is not None:
        expanded["annotations"] = [
            expand_annotation(a) if isinstance(a, dict) else a for a in annotations
        ]
    return expanded


def is_compact(annotation: dict[str, Any]) -> bool:
    return bool(annotation) and all(len(k) == 1 for k in annotation)


__all__ = ["COMPACT_ANNOTATION_KEYS", "expand_annotation", "expand_document", "is_compact"]
