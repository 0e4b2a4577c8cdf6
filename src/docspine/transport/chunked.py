"""
Boundary-delimited JSON stream decoding.

Large search results arrive as a chunked response whose body is a sequence
of JSON documents separated by ``--<boundary>`` markers and terminated by a
final ``--``::

    {"document": {...}}--XyZ{"document": {...}}--XyZ{"cursor": "abc"}--XyZ--

Each non-empty piece between separators is decoded as one JSON value and the
values are returned as a list in arrival order. Anything other than the
literal ``--`` after the last separator is a protocol error.

Examples:
    >>> decode_boundary_stream([b'{"a": 1}--XyZ{"b"', b': 2}--XyZ--'], "XyZ")
    [{'a': 1}, {'b': 2}]
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from docspine.core.errors import ParseError


_TRAILER = b"--"


def boundary_from_content_type(content_type: str | None) -> str | None:
    """Extract the ``boundary=`` parameter from a Content-Type header value."""
    if not content_type:
        return None
    index = content_type.find("boundary=")
    if index == -1:
        return None
    boundary = content_type[index + len("boundary="):].split(";", 1)[0].strip()
    return boundary.strip('"') or None


def _decode(piece: bytes) -> Any:
    try:
        return json.loads(piece.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Invalid JSON chunk ({len(piece)} bytes)", cause=e) from e


def decode_boundary_stream(chunks: Iterable[bytes], boundary: str) -> list[Any]:
    """Decode a boundary-delimited stream of JSON values.

    ``chunks`` may split values and separators at arbitrary byte positions.

    Raises:
        ParseError: a piece is not valid JSON, or the stream does not end
            with ``--`` immediately after the final separator.
    """
    separator = b"--" + boundary.encode("utf-8")
    values: list[Any] = []
    buffer = bytearray()

    for chunk in chunks:
        buffer.extend(chunk)
        index = buffer.find(separator)
        while index != -1:
            if index != 0:
                values.append(_decode(bytes(buffer[:index])))
            del buffer[: index + len(separator)]
            index = buffer.find(separator)

    if bytes(buffer) != _TRAILER:
        raise ParseError("Invalid chunked transfer encoding")
    return values


__all__ = ["boundary_from_content_type", "decode_boundary_stream"]
