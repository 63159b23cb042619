"""Canned chart responses returned instead of raising.

The dashboard renders every outcome as a chart; these sentinels carry their
message in ``insights`` with an empty data set.
"""

from __future__ import annotations

from models.chart import ChartConfig, ChartResponse

CLARIFICATION_TITLE = "Additional Information Needed"
CONFIGURATION_ERROR_TITLE = "Service Configuration Error"
GENERIC_ERROR_TITLE = "Query Processing Error"
CONFIGURATION_ERROR_INSIGHTS = "The AI service is experiencing configuration issues. Please try again later."


def _empty_chart(title: str, insights: str) -> ChartResponse:
    return ChartResponse(
        chart_type="bar",
        title=title,
        data=[],
        config=ChartConfig(x_axis="dataset_name", y_axis=["fail_rate_1m"]),
        filters=[],
        insights=insights,
    )


def create_clarification_response(clarification_text: str) -> ChartResponse:
    """Return the model's question verbatim without fabricated data."""

    return _empty_chart(CLARIFICATION_TITLE, clarification_text)


def create_configuration_error_response() -> ChartResponse:
    return _empty_chart(CONFIGURATION_ERROR_TITLE, CONFIGURATION_ERROR_INSIGHTS)


def create_error_response(error: str, details: str | None = None) -> ChartResponse:
    """Return a generic apology; ``details`` replaces the default message."""

    return _empty_chart(GENERIC_ERROR_TITLE, details or f"Unable to process the query. {error}")


def create_query_error_response(query: str) -> ChartResponse:
    return create_error_response(
        "Unable to process the query",
        f'Unable to process the query "{query}". Please try a different question or try again later.',
    )


__all__ = [
    "CLARIFICATION_TITLE",
    "CONFIGURATION_ERROR_INSIGHTS",
    "CONFIGURATION_ERROR_TITLE",
    "GENERIC_ERROR_TITLE",
    "create_clarification_response",
    "create_configuration_error_response",
    "create_error_response",
    "create_query_error_response",
]
