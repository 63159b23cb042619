from __future__ import annotations

from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from core.errors import (
    ConfigurationError,
    FileUploadError,
    RateLimitedError,
    StructuralError,
    UpstreamShapeError,
    UpstreamTimeoutError,
)
from models.chart import ChartConfig, ChartResponse
from openai_utils import server


class _FakeService:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.queries: list[Any] = []

    async def answer(self, query: Any) -> ChartResponse:
        self.queries.append(query)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _chart() -> ChartResponse:
    return ChartResponse(
        chart_type="line",
        title="Failure trend",
        data=[{"business_date_latest": "2024-01-01", "fail_rate_total": 0.1}],
        config=ChartConfig(x_axis="business_date_latest", y_axis=["fail_rate_total"]),
    )


@pytest.fixture
def use_service() -> Iterator[Any]:
    def _install(outcome: Any) -> _FakeService:
        service = _FakeService(outcome)
        server.app.dependency_overrides[server.get_service] = lambda: service
        return service

    yield _install
    server.app.dependency_overrides.clear()


def test_successful_query_returns_chart(use_service: Any) -> None:
    service = use_service(_chart())
    client = TestClient(server.app)

    response = client.post("/api/query", json={"query": "failure trend"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["chartType"] == "line"
    assert payload["config"] == {"xAxis": "business_date_latest", "yAxis": ["fail_rate_total"]}
    assert "insights" not in payload
    assert service.queries == ["failure trend"]


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": 5}, {"query": "x" * 501}])
def test_invalid_query_is_rejected_before_invocation(use_service: Any, body: dict[str, Any]) -> None:
    service = use_service(_chart())
    client = TestClient(server.app)

    response = client.post("/api/query", json=body)

    assert response.status_code == 400
    assert "error" in response.json()
    assert service.queries == []


def test_non_json_body_is_rejected(use_service: Any) -> None:
    use_service(_chart())
    client = TestClient(server.app)
    response = client.post("/api/query", content=b"not json", headers={"content-type": "application/json"})
    assert response.status_code == 400


@pytest.mark.parametrize(
    ("error", "status", "message"),
    [
        (ConfigurationError("OpenAI API key not configured"), 500, "OpenAI API key not configured"),
        (StructuralError("Invalid chart response - missing required fields"), 502, "Invalid response from AI service"),
        (UpstreamShapeError("not json"), 502, "Invalid response from AI service"),
        (RateLimitedError("429"), 503, "AI service is temporarily unavailable"),
        (UpstreamTimeoutError("timed out"), 504, "AI service did not respond in time"),
        (FileUploadError("Failed to upload data file to AI service"), 500, "Failed to process query after multiple attempts"),
        (RuntimeError("boom"), 500, "Failed to process query after multiple attempts"),
    ],
)
def test_errors_map_to_status_codes(use_service: Any, error: Exception, status: int, message: str) -> None:
    use_service(error)
    client = TestClient(server.app)

    response = client.post("/api/query", json={"query": "worst datasets"})

    assert response.status_code == status
    assert response.json() == {"error": message}


def test_healthz_reports_llm_state() -> None:
    client = TestClient(server.app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["llm_enabled"] is True
