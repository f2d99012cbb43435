"""Dot-path helpers shared by the dispatch engine and the observable.

Topics are ``str`` (dot-segmented) or ``int`` (sequence indices). Backticks
are escape markers and are stripped before a path is split.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

SEPARATOR = "."
ESCAPE = "`"

# Returned by step() for a missing segment.
MISSING = object()


def strip(topic):
    if isinstance(topic, str):
        return topic.replace(ESCAPE, "")
    return topic


def split(topic) -> list:
    """Split a topic into path segments."""
    if isinstance(topic, (list, tuple)):
        return list(topic)
    if isinstance(topic, str):
        return strip(topic).split(SEPARATOR)
    return [topic]


def join(*parts) -> str:
    return SEPARATOR.join(str(p) for p in parts)


def has_separator(topic) -> bool:
    return isinstance(topic, str) and SEPARATOR in strip(topic)


def related(a, b) -> bool:
    """True if either path is a segment-wise prefix of the other.

    ``"a.b"`` is related to ``"a"`` and to ``"a.b.c"`` but not to ``"ab"``.
    """
    sa = [str(s) for s in split(a)]
    sb = [str(s) for s in split(b)]
    n = min(len(sa), len(sb))
    return sa[:n] == sb[:n]


def as_index(segment) -> int | None:
    if isinstance(segment, bool):
        return None
    if isinstance(segment, int):
        return segment
    if isinstance(segment, str) and segment.lstrip("-").isdigit():
        return int(segment)
    return None


def step(node: Any, segment) -> Any:
    """Read one segment off a plain mapping, sequence or object."""
    if isinstance(node, Mapping):
        return node[segment] if segment in node else MISSING
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        index = as_index(segment)
        if index is None or not 0 <= index < len(node):
            return MISSING
        return node[index]
    if isinstance(segment, str) and segment and not segment.startswith("_"):
        return getattr(node, segment, MISSING)
    return MISSING
