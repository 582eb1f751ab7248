"""Percent-encoding for slash-delimited CloudAPI resource paths."""

from __future__ import annotations

from urllib.parse import quote

# Characters left intact by encodeURIComponent-style escaping.
_SEGMENT_SAFE = "!~*'()"


def encode_segment(segment: str) -> str:
    """Percent-encode one path segment."""
    return quote(segment, safe=_SEGMENT_SAFE)


def encode_path(path: str) -> str:
    """Encode a logical resource path into a URI path.

    Segments are separated by ``/``. A literal slash inside a segment is written
    ``\\/`` and a literal backslash ``\\\\``. Each segment is encoded on its own
    and empty segments are dropped.
    """
    if not isinstance(path, str):
        raise TypeError("path (string) required")
    if not path:
        raise ValueError("path must be non-empty")

    encoded: list[str] = []
    segment: list[str] = []
    escaped = False
    for char in path:
        if escaped:
            segment.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "/":
            if segment:
                encoded.append(encode_segment("".join(segment)))
            segment = []
        else:
            segment.append(char)
    if segment:
        encoded.append(encode_segment("".join(segment)))
    return "".join(f"/{item}" for item in encoded)


def escape_segment(value: str) -> str:
    """Escape a raw identifier so ``encode_path`` keeps it as one segment."""
    return value.replace("\\", "\\\\").replace("/", "\\/")
