"""Pydantic models for chart responses."""

from .chart import CHART_TYPES, ChartConfig, ChartFilter, ChartResponse, ChartType, DEFAULT_CHART_TYPE

__all__ = [
    "CHART_TYPES",
    "ChartConfig",
    "ChartFilter",
    "ChartResponse",
    "ChartType",
    "DEFAULT_CHART_TYPE",
]
