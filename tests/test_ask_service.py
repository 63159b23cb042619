from __future__ import annotations

from typing import Any

import pytest

from models.chart import ChartConfig, ChartResponse
from openai_utils.files import FileReference, FileReferenceCache
from pipelines.ask import ChartQueryService, answer_query


class _RecordingOrchestrator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, FileReference | None]] = []

    async def run(self, prompt: str, original_query: str, file_ref: FileReference | None = None) -> ChartResponse:
        self.calls.append((prompt, original_query, file_ref))
        return ChartResponse(
            chart_type="bar",
            title="ok",
            data=[],
            config=ChartConfig(x_axis="dataset_name", y_axis=["fail_rate_1m"]),
        )


def _reference() -> FileReference:
    return FileReference(file_id="file-1", display_name="summary", uploaded_at=0.0, expires_at=1e12)


def _service(*, attach_file: bool, uploads: list[int] | None = None) -> tuple[ChartQueryService, _RecordingOrchestrator]:
    counter = uploads if uploads is not None else []

    async def _upload() -> FileReference:
        counter.append(1)
        return _reference()

    orchestrator = _RecordingOrchestrator()
    service = ChartQueryService(
        llm=object(),  # type: ignore[arg-type]
        orchestrator=orchestrator,  # type: ignore[arg-type]
        file_cache=FileReferenceCache(_upload),
        attach_file=attach_file,
    )
    return service, orchestrator


@pytest.mark.asyncio
async def test_query_is_sanitised_and_file_attached() -> None:
    uploads: list[int] = []
    service, orchestrator = _service(attach_file=True, uploads=uploads)

    await answer_query("  <i>worst</i> datasets ", service=service)
    await service.answer("best datasets")

    prompt, original_query, file_ref = orchestrator.calls[0]
    assert original_query == "worst datasets"
    assert 'User Query: "worst datasets"' in prompt
    assert "uploaded CSV file" in prompt
    assert file_ref is not None and file_ref.file_id == "file-1"
    assert len(uploads) == 1


@pytest.mark.asyncio
async def test_file_can_be_disabled() -> None:
    uploads: list[int] = []
    service, orchestrator = _service(attach_file=False, uploads=uploads)

    await service.answer("worst datasets")

    assert orchestrator.calls[0][2] is None
    assert "No data file available" in orchestrator.calls[0][0]
    assert uploads == []


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", None, "x" * 501])
async def test_invalid_query_raises_value_error(query: Any) -> None:
    service, orchestrator = _service(attach_file=False)
    with pytest.raises(ValueError):
        await service.answer(query)
    assert orchestrator.calls == []
