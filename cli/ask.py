"""CLI for asking the chart assistant a question locally."""

from __future__ import annotations

import argparse
import asyncio
import json

import config


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and print the chart JSON to stdout.

    Example::

        python -m cli.ask "Which datasets have the highest failure rate?" --pretty
    """

    parser = argparse.ArgumentParser(description="Data quality chart assistant")
    parser.add_argument("query", help="Question about the data quality summary")
    parser.add_argument("--no-file", action="store_true", help="Do not attach the data file")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    args = parser.parse_args(argv)

    from core.errors import ChartQueryError
    from openai_utils.client import OpenAIChartLLM
    from openai_utils.files import openai_file_cache
    from pipelines.ask import ChartQueryService
    from utils.logging_context import configure_logging
    from utils.telemetry import setup_tracing

    configure_logging(level=config.LOG_LEVEL)
    setup_tracing()

    llm = OpenAIChartLLM()
    service = ChartQueryService(
        llm,
        file_cache=openai_file_cache(llm.get_client),
        attach_file=False if args.no_file else None,
    )
    try:
        chart = asyncio.run(service.answer(args.query))
    except ValueError as exc:
        raise SystemExit(str(exc))
    except ChartQueryError as exc:
        raise SystemExit(f"{exc.kind}: {exc}")
    print(json.dumps(chart.to_payload(), indent=2 if args.pretty else None, ensure_ascii=False))


if __name__ == "__main__":  # pragma: no cover
    main()
