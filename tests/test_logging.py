from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from infra.logging import log_event
from utils.logging_context import current_query_id, log_context


def test_log_event_redacts_api_key(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-secret")
    with caplog.at_level(logging.INFO, logger="chart_query.events"):
        path = log_event("info", event="step1.provider_error", query_id="q-1", fields={"error": "bad key sk-secret"})

    record = json.loads(caplog.records[-1].getMessage())
    assert record == {"level": "info", "event": "step1.provider_error", "query_id": "q-1", "error": "bad key [redacted]"}
    assert path == ""


def test_log_event_dumps_payload_in_debug_mode(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CHART_QUERY_DEBUG", "1")
    monkeypatch.setattr("tempfile.gettempdir", lambda: str(tmp_path))

    path = log_event("debug", event="step2.response", payload={"request": {"model": "m"}})

    assert path
    with open(path, encoding="utf-8") as handle:
        assert json.load(handle) == {"request": {"model": "m"}}


def test_log_context_binds_and_resets_query_id() -> None:
    assert current_query_id() == "-"
    with log_context(query_id="q-42", step="step1"):
        assert current_query_id() == "q-42"
    assert current_query_id() == "-"
