"""JSON schema and ``text.format`` builders for structured chart output."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Mapping

from models.chart import CHART_TYPES

CHART_RESPONSE_SCHEMA_NAME = "chart_response"

# Data records are open objects keyed by the axis field names, so the schema
# cannot be sent with ``strict`` enabled.
CHART_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "chartType": {"type": "string", "enum": list(CHART_TYPES)},
        "title": {"type": "string"},
        "data": {
            "type": "array",
            "items": {"type": "object", "additionalProperties": True},
        },
        "config": {
            "type": "object",
            "properties": {
                "xAxis": {"type": "string"},
                "yAxis": {"type": "array", "items": {"type": "string"}},
                "groupBy": {"type": "string"},
            },
            "required": ["xAxis", "yAxis"],
        },
        "filters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "field": {"type": "string"},
                    "label": {"type": "string"},
                    "values": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["field", "label", "values"],
            },
        },
        "insights": {"type": "string"},
    },
    "required": ["chartType", "title", "data", "config"],
}


def build_json_schema_text_format(
    *, name: str, schema: Mapping[str, Any], strict: bool | None = None
) -> dict[str, Any]:
    """Return a Responses ``text`` payload constraining output to ``schema``."""

    if not name.strip():
        raise ValueError("A non-empty schema name is required for text.format.")
    schema_format: dict[str, Any] = {
        "type": "json_schema",
        "name": name.strip(),
        "schema": deepcopy(dict(schema)),
    }
    if strict is not None:
        schema_format["strict"] = bool(strict)
    return {"format": schema_format}


def build_json_object_text_format() -> dict[str, Any]:
    """Return a Responses ``text`` payload that only requests a JSON object."""

    return {"format": {"type": "json_object"}}


def chart_response_text_format(*, native: bool) -> dict[str, Any]:
    """Return the ``text`` payload for chart responses in the requested mode."""

    if native:
        return build_json_schema_text_format(name=CHART_RESPONSE_SCHEMA_NAME, schema=CHART_RESPONSE_SCHEMA, strict=False)
    return build_json_object_text_format()


__all__ = [
    "CHART_RESPONSE_SCHEMA",
    "CHART_RESPONSE_SCHEMA_NAME",
    "build_json_object_text_format",
    "build_json_schema_text_format",
    "chart_response_text_format",
]
