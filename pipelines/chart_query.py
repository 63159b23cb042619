"""Two-step chart query orchestration.

Step 1 asks the model to analyse the data with code execution. A clear
chart answer is returned directly; anything else is reformatted by a
schema-constrained Step 2 call. When Step 1 produced no content at all, a
direct structured call is attempted before giving up.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

import config
from core.errors import ErrorKind, StructuralError, classify_error
from core.validation import has_required_chart_fields, normalize_chart_response, normalize_filters
from infra.logging import log_event
from llm.clarification import is_asking_for_clarification
from llm.json_extraction import extract_json_from_text
from llm.prompts import FALLBACK_ESTIMATION_NOTE, build_direct_prompt, build_reformat_prompt
from llm.responses import (
    create_clarification_response,
    create_configuration_error_response,
    create_query_error_response,
)
from models.chart import ChartResponse
from openai_utils.client import ChartLLM
from openai_utils.files import FileReference
from utils.logging_context import log_context, set_query_step
from utils.retry import RetryPolicy, default_retry_policy

logger = logging.getLogger("chart_query.orchestrator")
tracer = trace.get_tracer(__name__)

PREVIEW_LENGTH = 200
_UNRETRYABLE_KINDS = frozenset({ErrorKind.CONFIG, ErrorKind.BAD_REQUEST})


class QueryState(StrEnum):
    """States a single run passes through."""

    STEP1_STARTED = "step1.started"
    STEP1_SUCCEEDED = "step1.succeeded"
    STEP1_FAILED = "step1.failed"
    CLARIFICATION = "clarification"
    DIRECT_SUCCESS = "direct_success"
    STEP2_STARTED = "step2.started"
    STEP2_FAILED = "step2.failed"
    SUCCESS = "success"
    FALLBACK_STARTED = "fallback.started"
    FALLBACK_SUCCESS = "fallback.success"
    FALLBACK_FAILED = "fallback.failed"
    CONFIGURATION_ERROR_RESPONSE = "configuration_error_response"
    GENERIC_ERROR_RESPONSE = "generic_error_response"


@dataclass(frozen=True)
class TraceEvent:
    """Observation emitted on every state transition."""

    state: QueryState
    query_id: str
    preview: str | None = None
    error_kind: ErrorKind | None = None
    detail: str | None = None


TraceHook = Callable[[TraceEvent], None]


def log_trace_event(event: TraceEvent) -> None:
    """Default trace hook: structured log line plus a span event."""

    fields: dict[str, Any] = {"state": event.state}
    if event.error_kind is not None:
        fields["error_kind"] = event.error_kind
    if event.detail:
        fields["detail"] = event.detail
    if event.preview:
        fields["preview"] = event.preview
    level = "warning" if event.error_kind is not None else "info"
    log_event(level, event=f"chart_query.{event.state}", query_id=event.query_id, fields=fields)
    trace.get_current_span().add_event(str(event.state), {key: str(value) for key, value in fields.items()})


def is_unretryable(error: Exception) -> bool:
    """Return ``True`` for failures that cannot succeed on a retry."""

    return classify_error(error) in _UNRETRYABLE_KINDS


def _preview(text: str | None) -> str | None:
    if not text:
        return None
    return text[:PREVIEW_LENGTH]


def with_estimation_note(response: ChartResponse) -> ChartResponse:
    """Mark fallback answers as estimates."""

    if response.insights and "Note:" not in response.insights:
        return response.model_copy(update={"insights": f"{response.insights}\n\n{FALLBACK_ESTIMATION_NOTE}"})
    return response


class ChartQueryOrchestrator:
    """Turn a user query into a :class:`ChartResponse`.

    Args:
        llm: Provider implementing both call modes.
        retry_policy: Policy wrapping the Step 1 and Step 2 calls.
        fallback_retry_policy: Policy wrapping the direct fallback call.
        trace_hook: Receives a :class:`TraceEvent` per state transition.
        query_id_factory: Produces the identifier attached to a run.
    """

    def __init__(
        self,
        llm: ChartLLM,
        *,
        retry_policy: RetryPolicy | None = None,
        fallback_retry_policy: RetryPolicy | None = None,
        trace_hook: TraceHook | None = log_trace_event,
        query_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.llm = llm
        self.retry_policy = retry_policy or default_retry_policy(giveup=is_unretryable, name="llm call")
        self.fallback_retry_policy = fallback_retry_policy or default_retry_policy(
            giveup=is_unretryable, name="fallback call"
        )
        self.trace_hook = trace_hook
        self._query_id_factory = query_id_factory or (lambda: uuid.uuid4().hex[:12])

    def _emit(
        self,
        state: QueryState,
        query_id: str,
        *,
        preview: str | None = None,
        error: BaseException | None = None,
        detail: str | None = None,
    ) -> None:
        if self.trace_hook is None:
            return
        event = TraceEvent(
            state=state,
            query_id=query_id,
            preview=_preview(preview),
            error_kind=classify_error(error) if error is not None else None,
            detail=detail if detail is not None else (str(error) if error is not None else None),
        )
        try:
            self.trace_hook(event)
        except Exception:  # noqa: BLE001 - observers never break a run
            logger.exception("Trace hook failed for state %s", state)

    async def run(
        self,
        prompt: str,
        original_query: str,
        file_ref: FileReference | None = None,
    ) -> ChartResponse:
        """Run the state machine for one query.

        Returns:
            A validated chart, or a sentinel chart for clarifications and
            recoverable Step 2 failures.

        Raises:
            ConfigurationError: Step 2 failed because of credentials.
            StructuralError: The Step 1 chart failed validation or Step 2
                output could not be normalized.
            ChartQueryError: Step 1 failed and no fallback recovered it.
        """

        query_id = self._query_id_factory()
        model = getattr(self.llm, "model", None)
        with log_context(query_id=query_id, model=model), tracer.start_as_current_span("chart_query.run") as span:
            span.set_attribute("chart_query.query_id", query_id)
            span.set_attribute("chart_query.has_file", file_ref is not None)
            try:
                return await self._run_steps(prompt, original_query, file_ref, query_id)
            except Exception as err:
                span.record_exception(err)
                span.set_status(Status(StatusCode.ERROR, str(err)))
                raise

    async def _run_steps(
        self,
        prompt: str,
        original_query: str,
        file_ref: FileReference | None,
        query_id: str,
    ) -> ChartResponse:
        set_query_step("step1")
        self._emit(QueryState.STEP1_STARTED, query_id)
        try:
            raw_text = await self.retry_policy.run(lambda: self.llm.run_code_analysis(prompt, file_ref))
        except Exception as step1_error:
            self._emit(QueryState.STEP1_FAILED, query_id, error=step1_error)
            if classify_error(step1_error) is ErrorKind.EMPTY_CONTENT:
                return await self._run_fallback(original_query, file_ref, step1_error, query_id)
            raise
        self._emit(QueryState.STEP1_SUCCEEDED, query_id, preview=raw_text)

        if is_asking_for_clarification(raw_text):
            self._emit(QueryState.CLARIFICATION, query_id, preview=raw_text)
            return create_clarification_response(raw_text)

        direct = self._direct_chart(raw_text)
        if direct is not None:
            self._emit(QueryState.DIRECT_SUCCESS, query_id, detail=direct.chart_type)
            return direct

        return await self._run_step2(original_query, raw_text, file_ref, query_id)

    def _direct_chart(self, raw_text: str) -> ChartResponse | None:
        """Return the Step 1 chart when the text already is one.

        Only the filters are repaired. A chart the model cannot validate
        raises :class:`StructuralError` rather than going to Step 2.
        """

        candidate = extract_json_from_text(raw_text)
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            logger.debug("Step 1 text is not JSON; reformatting")
            return None
        if not has_required_chart_fields(parsed):
            logger.debug("Step 1 JSON lacks chart fields; reformatting")
            return None
        payload: dict[str, Any] = dict(parsed)
        payload["filters"] = normalize_filters(payload.get("filters"))
        try:
            return ChartResponse.model_validate(payload)
        except ValidationError as err:
            raise StructuralError(
                "Invalid chart response - direct chart failed validation",
                details={"errors": [".".join(map(str, item["loc"])) for item in err.errors()]},
            ) from err

    async def _run_step2(
        self,
        original_query: str,
        raw_text: str,
        file_ref: FileReference | None,
        query_id: str,
    ) -> ChartResponse:
        set_query_step("step2")
        self._emit(QueryState.STEP2_STARTED, query_id, preview=raw_text)
        messages = [{"role": "user", "content": build_reformat_prompt(original_query, raw_text)}]
        try:
            payload: Mapping[str, Any] = await self.retry_policy.run(
                lambda: self.llm.generate_structured(
                    messages,
                    file_ref,
                    temperature=config.STRUCTURED_TEMPERATURE,
                )
            )
        except Exception as step2_error:
            kind = classify_error(step2_error)
            self._emit(QueryState.STEP2_FAILED, query_id, error=step2_error)
            if kind is ErrorKind.CONFIG:
                raise
            if kind is ErrorKind.BAD_REQUEST:
                self._emit(QueryState.CONFIGURATION_ERROR_RESPONSE, query_id)
                return create_configuration_error_response()
            self._emit(QueryState.GENERIC_ERROR_RESPONSE, query_id)
            return create_query_error_response(original_query)

        result = normalize_chart_response(payload)
        self._emit(QueryState.SUCCESS, query_id, detail=result.chart_type)
        return result

    async def _run_fallback(
        self,
        original_query: str,
        file_ref: FileReference | None,
        step1_error: Exception,
        query_id: str,
    ) -> ChartResponse:
        set_query_step("fallback")
        self._emit(QueryState.FALLBACK_STARTED, query_id)
        messages = [{"role": "user", "content": build_direct_prompt(original_query)}]

        async def _attempt() -> ChartResponse:
            payload = await self.llm.generate_structured(
                messages,
                file_ref,
                temperature=config.FALLBACK_TEMPERATURE,
            )
            return with_estimation_note(normalize_chart_response(payload))

        try:
            result = await self.fallback_retry_policy.run(_attempt)
        except Exception as fallback_error:
            self._emit(QueryState.FALLBACK_FAILED, query_id, error=fallback_error)
            logger.warning("Fallback failed (%s); raising the Step 1 error", fallback_error)
            raise step1_error from fallback_error
        self._emit(QueryState.FALLBACK_SUCCESS, query_id, detail=result.chart_type)
        return result


__all__ = [
    "ChartQueryOrchestrator",
    "PREVIEW_LENGTH",
    "QueryState",
    "TraceEvent",
    "TraceHook",
    "is_unretryable",
    "log_trace_event",
    "with_estimation_note",
]
