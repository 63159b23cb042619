"""Recover a JSON payload from raw model output.

Code-execution answers come back in three shapes: plain JSON, JSON wrapped in
a Markdown fence, or a run of concatenated objects where tool traces precede
the final chart object (``{...trace...}{...trace...}{"chartType": ...}``).
:func:`extract_json_from_text` turns all of them into the best candidate
string. It never raises; parsing the result may still fail.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

logger = logging.getLogger("chart_query.extraction")

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_CHART_OBJECT_RE = re.compile(r'"chartType"\s*:\s*"[^"]+"')


class _ScanState(Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def split_concatenated_objects(text: str) -> list[str]:
    """Split ``text`` into its top-level JSON object substrings.

    Braces inside string literals (including escaped quotes) are ignored.
    Text between objects is attached to the following candidate and trimmed
    away by the caller.
    """

    candidates: list[str] = []
    state = _ScanState.NORMAL
    depth = 0
    boundary = 0
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if state is _ScanState.ESCAPED:
            state = _ScanState.IN_STRING
        elif state is _ScanState.IN_STRING:
            if char == "\\":
                state = _ScanState.ESCAPED
            elif char == '"':
                state = _ScanState.NORMAL
        elif char == '"':
            state = _ScanState.IN_STRING
        elif char == "{":
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                candidates.append(text[boundary : index + 1])  # noqa: E203
                boundary = index + 1
        index += 1

    return candidates


def _select_chart_candidate(candidates: list[str]) -> str | None:
    """Return the last candidate that looks like a chart object, else the last one."""

    for position in range(len(candidates) - 1, -1, -1):
        candidate = candidates[position].strip()
        if candidate and _CHART_OBJECT_RE.search(candidate):
            logger.debug("Using JSON object %d of %d as chart response", position + 1, len(candidates))
            return candidate
    if candidates:
        logger.debug("No chart JSON found in %d objects, using last object", len(candidates))
        return candidates[-1].strip()
    return None


def extract_json_from_text(text: object) -> str:
    """Return the most plausible JSON payload contained in ``text``.

    Args:
        text: Raw model output.

    Returns:
        The fenced block content, the chart object out of a concatenation of
        objects, or the trimmed input when neither pattern applies.
    """

    if not isinstance(text, str):
        return ""

    fenced = _CODE_FENCE_RE.search(text)
    if fenced:
        return fenced.group(1).strip()

    trimmed = text.strip()
    if trimmed.startswith("{") and "}{" in trimmed:
        selected = _select_chart_candidate(split_concatenated_objects(trimmed))
        if selected is not None:
            return selected

    return trimmed


__all__ = ["extract_json_from_text", "split_concatenated_objects"]
