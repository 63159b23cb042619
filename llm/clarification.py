"""Detect answers where the model asks the user a question instead."""

from __future__ import annotations

import logging

logger = logging.getLogger("chart_query.clarification")

CLARIFICATION_PHRASES: tuple[str, ...] = (
    "need to know",
    "please specify",
    "which dataset",
    "clarifying question",
    "could you please",
    "need more information",
    "which specific",
    "can you specify",
    "need to ask",
    "more details",
    "which one",
    "be more specific",
    "please provide",
)


def is_asking_for_clarification(text: object) -> bool:
    """Return ``True`` when ``text`` contains a known clarification phrase.

    Such answers are returned to the user verbatim; reformatting them would
    wrap invented chart data around a question.
    """

    if not isinstance(text, str) or not text:
        return False
    lowered = text.lower()
    for phrase in CLARIFICATION_PHRASES:
        if phrase in lowered:
            logger.debug('Clarification detected - matched phrase: "%s"', phrase)
            return True
    return False


__all__ = ["CLARIFICATION_PHRASES", "is_asking_for_clarification"]
