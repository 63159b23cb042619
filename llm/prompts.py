"""Prompt builders for the chart query pipeline."""

from __future__ import annotations

from textwrap import dedent

from models.chart import CHART_TYPES

_CHART_TYPE_CHOICES = "|".join(CHART_TYPES)

DATA_FIELD_CATALOGUE = dedent(
    """\
    Available Data Fields (all 27 fields):
    - Identifiers: source, tenant_id, dataset_uuid, dataset_name, rule_code, rule_name
    - Classification: rule_type, dimension, rule_description, category, last_execution_level
    - Dates: business_date_latest
    - Counts: dataset_record_count_latest, filtered_record_count_latest
    - Pass/Fail counts: pass_count_total, fail_count_total, pass_count_1m, fail_count_1m, pass_count_3m, fail_count_3m, pass_count_12m, fail_count_12m
    - Failure rates: fail_rate_total, fail_rate_1m, fail_rate_3m, fail_rate_12m
    - Trends: trend_flag (up/down/equal)"""
)

CHART_JSON_SHAPE = dedent(
    f"""\
    {{
      "chartType": "{_CHART_TYPE_CHOICES}",
      "title": "Descriptive chart title",
      "data": [
        {{"<xAxis field>": "value", "<yAxis field>": 0.0}}
      ],
      "config": {{"xAxis": "<xAxis field>", "yAxis": ["<yAxis field>"], "groupBy": "optional field"}},
      "filters": [{{"field": "field_name", "label": "Display Label", "values": ["filter_values"]}}],
      "insights": "Brief insights about the data shown"
    }}"""
)

FALLBACK_ESTIMATION_NOTE = (
    "Note: Results based on pattern analysis. For precise calculations, please try a more specific query."
)


def build_analysis_prompt(query: str, *, has_file: bool) -> str:
    """Return the Step 1 prompt asking the model to analyse and answer with a chart."""

    if has_file:
        data_reference = "The data is provided in the uploaded CSV file. Please analyze the complete dataset from the file."
    else:
        data_reference = "No data file available. Please provide guidance on what data would be needed."

    return "\n".join(
        [
            "You are a data visualization expert. Analyze the user query and data to create a chart response.",
            "",
            f'User Query: "{query}"',
            f"Data Context: {data_reference}",
            "",
            "CRITICAL INSTRUCTIONS:",
            "1. Generate ONLY a single, complete JSON object",
            "2. No markdown, no code blocks, no extra text",
            "3. Ensure JSON is properly closed with all brackets/braces",
            "4. Use Python code execution for calculations when needed",
            "5. Keep data array small (max 10 items)",
            "6. Data objects should contain ONLY the fields named in config.xAxis and config.yAxis",
            "7. If the question is ambiguous, ask one clarifying question in plain text instead of JSON",
            "",
            "Required JSON format (must be complete and valid):",
            CHART_JSON_SHAPE,
            "",
            "Chart Types:",
            '- "bar": comparisons, high/low values',
            '- "line": trends over time',
            '- "pie": proportions/percentages',
            '- "scatter": correlations',
            '- "area": cumulative trends',
            '- "heatmap": two-dimensional distributions',
            "",
            DATA_FIELD_CATALOGUE,
            "",
            'Generate one complete JSON object. Start with "{" and end with "}". No additional text.',
        ]
    )


def build_reformat_prompt(query: str, raw_response_text: str) -> str:
    """Return the Step 2 prompt that turns free-form analysis into chart JSON."""

    return "\n".join(
        [
            "Format this data analysis result into a proper chart response.",
            "",
            f'Original Query: "{query}"',
            f"Analysis Result: {raw_response_text}",
            "",
            "Create a complete chart response with:",
            "1. Appropriate chart type based on the analysis",
            "2. Clean, formatted data array (limit to 10 items max)",
            "3. Proper axis configuration",
            "4. Any relevant filters",
            "5. Insights from the analysis",
            "",
            "CRITICAL for data array:",
            "- Each data object MUST use the exact field names specified in config.xAxis and config.yAxis",
            '- Example: If config has "xAxis": "Dataset", "yAxis": ["Failure Rate"], then data should be: '
            '{"Dataset": "Dataset A", "Failure Rate": 0.25}',
            "",
            "Generate ONLY valid JSON, no markdown or extra text",
        ]
    )


def build_direct_prompt(query: str) -> str:
    """Return the fallback prompt used when code execution produced nothing."""

    return "\n".join(
        [
            f'Analyze the data quality metrics in the uploaded CSV file to answer this query: "{query}"',
            "",
            "Please provide a response in the following JSON format:",
            CHART_JSON_SHAPE,
            "",
            'Focus on providing meaningful insights based on patterns in the data. For queries about "worst" '
            'or "best" datasets, analyze failure rates and trends.',
        ]
    )


def build_structured_system_prompt(*, has_file: bool) -> str:
    """Return the system instruction for schema-constrained calls."""

    file_hint = " You have access to the uploaded data quality summary CSV." if has_file else ""
    return (
        f"You are a data analysis assistant that responds with JSON chart configurations.{file_hint}\n"
        "You must respond with valid JSON that matches this exact structure:\n"
        f"{CHART_JSON_SHAPE}"
    )


__all__ = [
    "CHART_JSON_SHAPE",
    "DATA_FIELD_CATALOGUE",
    "FALLBACK_ESTIMATION_NOTE",
    "build_analysis_prompt",
    "build_direct_prompt",
    "build_reformat_prompt",
    "build_structured_system_prompt",
]
