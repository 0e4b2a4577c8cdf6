"""
Code-point offset translation for annotation and prediction spans.

The service measures span offsets in Unicode code points. A Python ``str``
built by normal decoding already indexes by code point, so offsets map
straight through. Text that still carries UTF-16 surrogate code units
(decoded with ``surrogatepass``, or received through a JSON layer that keeps
``\\ud83d\\udca9`` escapes as two units) stores every astral character as a
pair of units, and offsets past such a pair must be shifted.

``extract`` handles both: it indexes the surrogate pairs present in the
stored text once per distinct text and maps code-point positions to storage
positions by counting the pairs that precede them.

Examples:
    >>> extract("before \\U0001F469 after", 7, 1)
    '\\U0001f469'
    >>> extract("before \\ud83d\\udca9 after", 9, 12)
    'after'
    >>> extract("This is a document.", -1, 8)
    'This is'

Tags:
    unicode, utf-16, surrogate-pairs, offsets, docspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Any

from docspine.core.cache import LRUCache


_NO_SURROGATES: tuple[int, ...] = ()

# surrogate-pair start indices, keyed on the document text
_SURROGATES = LRUCache(max_size=1024)


def is_valid_surrogate_pair(text: str, index: int) -> bool:
    """True if a high surrogate at ``index`` is followed by a low surrogate."""
    if index + 1 >= len(text):
        return False
    if not 0xD800 <= ord(text[index]) <= 0xDBFF:
        return False
    return 0xDC00 <= ord(text[index + 1]) <= 0xDFFF


def _scan(text: str) -> tuple[int, ...]:
    pairs: list[int] = []
    i = 0
    length = len(text)
    while i < length:
        if is_valid_surrogate_pair(text, i):
            # storage index -> code point index
            pairs.append(i - len(pairs))
            i += 2
        else:
            i += 1
    return tuple(pairs) if pairs else _NO_SURROGATES


def find_surrogates(text: str) -> tuple[int, ...]:
    """Ascending code-point indices at which a surrogate pair begins."""
    return _SURROGATES.get_or_compute(text, lambda: _scan(text))


def _content_of(document: Any) -> str:
    if isinstance(document, str):
        return document
    content = getattr(document, "content", None)
    if callable(content):
        content = content()
    return content or ""


def extract(document: Any, offset: int, length: int) -> str:
    """
    Return ``length`` code points of ``document`` starting at ``offset``.

    ``document`` is a ``str`` or any object with a ``content`` attribute.
    Out-of-range offsets and lengths truncate instead of raising: a negative
    offset shortens the span, and an empty or inverted span returns ``""``.
    """
    if offset < 0:
        length += offset
        offset = 0

    if length <= 0:
        return ""

    content = _content_of(document)
    pairs = find_surrogates(content)

    # pairs strictly before the span start, then pairs up to its last unit
    start_adjust = bisect_left(pairs, offset)
    end_adjust = bisect_right(pairs, offset + length - 1)

    start = min(len(content), offset + start_adjust)
    end = min(len(content), offset + length + end_adjust)
    return content[start:end]


def clear_cache() -> None:
    """Forget every cached surrogate index."""
    _SURROGATES.clear()


__all__ = ["extract", "find_surrogates", "is_valid_surrogate_pair", "clear_cache"]
