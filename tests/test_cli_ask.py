from __future__ import annotations

import json
from typing import Any

import pytest

import pipelines.ask as ask
import utils.logging_context as logging_context
from cli import ask as cli_ask
from core.errors import ConfigurationError
from models.chart import ChartConfig, ChartResponse


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_context, "configure_logging", lambda **_: None)


def test_cli_prints_chart_json(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    captured: dict[str, Any] = {}

    async def _answer(self: ask.ChartQueryService, query: str) -> ChartResponse:
        captured["query"] = query
        captured["attach_file"] = self.attach_file
        return ChartResponse(
            chart_type="pie",
            title="Rule types",
            data=[{"rule_type": "null_check", "fail_count_1m": 3}],
            config=ChartConfig(x_axis="rule_type", y_axis=["fail_count_1m"]),
        )

    monkeypatch.setattr(ask.ChartQueryService, "answer", _answer)

    cli_ask.main(["share of failures by rule type", "--no-file"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["chartType"] == "pie"
    assert captured == {"query": "share of failures by rule type", "attach_file": False}


def test_cli_exits_on_pipeline_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _answer(self: ask.ChartQueryService, query: str) -> ChartResponse:
        raise ConfigurationError("OpenAI API key not configured")

    monkeypatch.setattr(ask.ChartQueryService, "answer", _answer)

    with pytest.raises(SystemExit) as excinfo:
        cli_ask.main(["anything"])
    assert "OpenAI API key not configured" in str(excinfo.value)
