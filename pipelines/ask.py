"""Entry point that turns a raw user question into a chart response."""

from __future__ import annotations

import logging
from functools import lru_cache

import config
from core.query_validation import sanitize_query, validate_query
from llm.prompts import build_analysis_prompt
from models.chart import ChartResponse
from openai_utils.client import ChartLLM, OpenAIChartLLM
from openai_utils.files import FileReference, FileReferenceCache, openai_file_cache
from pipelines.chart_query import ChartQueryOrchestrator

logger = logging.getLogger("chart_query.service")


class ChartQueryService:
    """Validate, sanitise and route queries through the orchestrator."""

    def __init__(
        self,
        llm: ChartLLM,
        *,
        orchestrator: ChartQueryOrchestrator | None = None,
        file_cache: FileReferenceCache | None = None,
        attach_file: bool | None = None,
    ) -> None:
        self.llm = llm
        self.orchestrator = orchestrator or ChartQueryOrchestrator(llm)
        self.file_cache = file_cache
        self.attach_file = config.ATTACH_DATA_FILE if attach_file is None else attach_file

    async def _file_reference(self) -> FileReference | None:
        if not self.attach_file or self.file_cache is None:
            return None
        return await self.file_cache.get_or_refresh()

    async def answer(self, query: object) -> ChartResponse:
        """Return the chart for ``query``.

        Raises:
            ValueError: if ``query`` fails validation.
            FileUploadError: if the data file could not be uploaded.
        """

        validation = validate_query(query)
        if not validation.is_valid:
            raise ValueError(validation.error)
        sanitized = sanitize_query(str(query))
        file_ref = await self._file_reference()
        prompt = build_analysis_prompt(sanitized, has_file=file_ref is not None)
        logger.info("Answering query (%d chars, file=%s)", len(sanitized), bool(file_ref))
        return await self.orchestrator.run(prompt, sanitized, file_ref)


@lru_cache(maxsize=1)
def get_default_service() -> ChartQueryService:
    """Return the process-wide service backed by OpenAI."""

    llm = OpenAIChartLLM()
    return ChartQueryService(llm, file_cache=openai_file_cache(llm.get_client))


async def answer_query(query: object, *, service: ChartQueryService | None = None) -> ChartResponse:
    return await (service or get_default_service()).answer(query)


__all__ = ["ChartQueryService", "answer_query", "get_default_service"]
