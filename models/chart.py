"""Pydantic models for the chart description consumed by the dashboard."""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field


ChartType = Literal["line", "bar", "pie", "scatter", "area", "heatmap"]
CHART_TYPES: tuple[str, ...] = get_args(ChartType)
DEFAULT_CHART_TYPE: ChartType = "bar"


class ChartConfig(BaseModel):
    """Axis configuration; ``y_axis`` lists one or more series keys."""

    model_config = ConfigDict(populate_by_name=True)

    x_axis: str = Field(..., alias="xAxis")
    y_axis: list[str] = Field(..., alias="yAxis", min_length=1)
    group_by: str | None = Field(None, alias="groupBy")


class ChartFilter(BaseModel):
    """Filter the dashboard offers alongside the chart."""

    field: str = ""
    label: str = Field(..., min_length=1)
    values: list[Any] = Field(default_factory=list)


class ChartResponse(BaseModel):
    """Canonical chart description returned by the ask-AI endpoint.

    Attributes:
        chart_type: One of :data:`CHART_TYPES`.
        title: Human readable chart title.
        data: Records whose keys match ``config.x_axis`` / ``config.y_axis``.
        config: Axis configuration.
        filters: Filters relevant to the answer.
        insights: Free-text analysis, or the model's question for the user
            when it needs clarification.
    """

    model_config = ConfigDict(populate_by_name=True)

    chart_type: ChartType = Field(..., alias="chartType")
    title: str
    data: list[dict[str, Any]] = Field(default_factory=list)
    config: ChartConfig
    filters: list[ChartFilter] = Field(default_factory=list)
    insights: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""

        payload = self.model_dump(by_alias=True)
        if payload.get("insights") is None:
            payload.pop("insights", None)
        if payload["config"].get("groupBy") is None:
            payload["config"].pop("groupBy", None)
        return payload


__all__ = [
    "CHART_TYPES",
    "ChartConfig",
    "ChartFilter",
    "ChartResponse",
    "ChartType",
    "DEFAULT_CHART_TYPE",
]
