"""High-level pipelines for chart queries."""

from __future__ import annotations

__all__ = [
    "ChartQueryOrchestrator",
    "ChartQueryService",
    "TraceEvent",
    "answer_query",
]

from .chart_query import ChartQueryOrchestrator, TraceEvent
from .ask import ChartQueryService, answer_query
