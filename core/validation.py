"""Validation and normalization of chart payloads returned by the model.

The model is an untrusted source: payloads arrive with scalar ``yAxis``
values, unknown chart types, missing filter labels and similar drift. The
helpers here coerce what can be coerced and raise :class:`StructuralError`
for what cannot. Normalization is idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from core.errors import StructuralError
from models.chart import CHART_TYPES, DEFAULT_CHART_TYPE, ChartResponse

logger = logging.getLogger("chart_query.validation")

UNKNOWN_FILTER_LABEL = "Unknown"
REQUIRED_CHART_FIELDS: tuple[str, ...] = ("chartType", "title", "data", "config")


def _is_present(value: Any) -> bool:
    """Return ``True`` for values a JSON producer meant to set.

    Empty containers count as present; ``None``, empty strings, ``False`` and
    zero do not.
    """

    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return True


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def has_required_chart_fields(payload: Any) -> bool:
    """Return ``True`` when ``payload`` carries every top-level chart field."""

    if not isinstance(payload, Mapping):
        return False
    return all(_is_present(payload.get(key)) for key in REQUIRED_CHART_FIELDS)


def normalize_filter(entry: Any) -> dict[str, Any]:
    """Return ``entry`` as ``{field, label, values}`` with safe defaults."""

    if not isinstance(entry, Mapping):
        return {"field": "", "label": UNKNOWN_FILTER_LABEL, "values": []}
    field = entry.get("field")
    field_text = _as_text(field) if _is_present(field) else ""
    label = entry.get("label")
    if _is_present(label):
        label_text = _as_text(label)
    else:
        label_text = field_text or UNKNOWN_FILTER_LABEL
    values = entry.get("values")
    return {
        "field": field_text,
        "label": label_text,
        "values": list(values) if _is_list(values) else [],
    }


def normalize_filters(value: Any) -> list[dict[str, Any]]:
    """Return a list of normalized filters; non-lists become ``[]``."""

    if not _is_list(value):
        if value is not None:
            logger.warning("Filters is not an array, defaulting to empty array")
        return []
    return [normalize_filter(entry) for entry in value]


def _normalize_y_axis(value: Any) -> list[str]:
    if _is_list(value):
        return [_as_text(item) for item in value if item is not None]
    logger.warning("yAxis is not an array, converting to array")
    return [_as_text(value)]


def _normalize_data(value: Any) -> list[dict[str, Any]]:
    if not _is_list(value):
        logger.warning("Data is not an array, defaulting to empty array")
        return []
    records = [dict(record) for record in value if isinstance(record, Mapping)]
    if len(records) != len(value):
        logger.warning("Dropped %d non-object data records", len(value) - len(records))
    return records


def normalize_chart_response(payload: Mapping[str, Any] | ChartResponse) -> ChartResponse:
    """Validate ``payload`` and return a conformant :class:`ChartResponse`.

    Args:
        payload: Parsed model output (camelCase keys) or an existing
            :class:`ChartResponse`.

    Returns:
        The normalized chart response.

    Raises:
        StructuralError: If required fields or the axis configuration are
            missing.
    """

    if isinstance(payload, ChartResponse):
        payload = payload.to_payload()
    if not isinstance(payload, Mapping):
        raise StructuralError(
            "Invalid chart response - missing required fields",
            details={"received": type(payload).__name__},
        )

    chart_type = payload.get("chartType")
    title = payload.get("title")
    config = payload.get("config")
    if not (_is_present(chart_type) and _is_present(title) and _is_present(config)):
        raise StructuralError(
            "Invalid chart response - missing required fields",
            details={"keys": sorted(str(key) for key in payload)},
        )

    if chart_type not in CHART_TYPES:
        logger.warning("Invalid chart type: %s, defaulting to '%s'", chart_type, DEFAULT_CHART_TYPE)
        chart_type = DEFAULT_CHART_TYPE

    if not isinstance(config, Mapping):
        raise StructuralError("Invalid chart response - missing axis configuration")
    x_axis = config.get("xAxis")
    y_axis = config.get("yAxis")
    if not (_is_present(x_axis) and _is_present(y_axis)):
        raise StructuralError("Invalid chart response - missing axis configuration")
    y_axis_values = _normalize_y_axis(y_axis)
    if not y_axis_values:
        raise StructuralError("Invalid chart response - missing axis configuration")

    group_by = config.get("groupBy")
    normalized_config: dict[str, Any] = {
        "xAxis": _as_text(x_axis),
        "yAxis": y_axis_values,
        "groupBy": _as_text(group_by) if _is_present(group_by) else None,
    }

    insights = payload.get("insights")
    normalized = {
        "chartType": chart_type,
        "title": _as_text(title),
        "data": _normalize_data(payload.get("data")),
        "config": normalized_config,
        "filters": normalize_filters(payload.get("filters")),
        "insights": _as_text(insights) if insights is not None else None,
    }
    return ChartResponse.model_validate(normalized)


__all__ = [
    "REQUIRED_CHART_FIELDS",
    "UNKNOWN_FILTER_LABEL",
    "has_required_chart_fields",
    "normalize_chart_response",
    "normalize_filter",
    "normalize_filters",
]
