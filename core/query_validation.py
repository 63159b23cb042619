"""Validation and sanitisation of user queries before they reach a prompt."""

from __future__ import annotations

import re
from dataclasses import dataclass

import config

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_UNSAFE_SCHEME_RE = re.compile(r"(?:javascript|data|vbscript):", re.IGNORECASE)

QUERY_REQUIRED_MESSAGE = "Query is required"


@dataclass(frozen=True)
class QueryValidation:
    is_valid: bool
    error: str | None = None


def validate_query(query: object, *, max_length: int | None = None) -> QueryValidation:
    """Check that ``query`` is a non-empty string within the length limit."""

    limit = max_length or config.MAX_QUERY_LENGTH
    if not query or not isinstance(query, str):
        return QueryValidation(False, QUERY_REQUIRED_MESSAGE)
    if len(query) > limit:
        return QueryValidation(False, f"Query must be {limit} characters or less")
    return QueryValidation(True)


def sanitize_query(query: str) -> str:
    """Strip HTML tags and script-capable URL schemes from ``query``."""

    cleaned = _HTML_TAG_RE.sub("", query)
    cleaned = _UNSAFE_SCHEME_RE.sub("", cleaned)
    return cleaned.strip()


__all__ = ["QUERY_REQUIRED_MESSAGE", "QueryValidation", "sanitize_query", "validate_query"]
