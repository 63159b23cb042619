"""OpenAI Responses client for the code-execution and structured chart calls."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Mapping, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

import config
from config import StructuredOutputMode
from core.errors import ConfigurationError, EmptyContentError, UpstreamShapeError, wrap_provider_error
from infra.logging import log_event
from llm.json_extraction import extract_json_from_text
from llm.prompts import build_structured_system_prompt
from utils.logging_context import current_query_id

from .files import FileReference
from .schemas import chart_response_text_format

logger = logging.getLogger("chart_query.openai")
tracer = trace.get_tracer(__name__)

Message = Mapping[str, Any]

MISSING_API_KEY_MESSAGE = "OpenAI API key not configured"


class ChartLLM(Protocol):
    """The two call modes the orchestrator needs from a model provider."""

    async def run_code_analysis(
        self,
        prompt: str,
        file_ref: FileReference | None = None,
        *,
        temperature: float | None = None,
    ) -> str:
        """Return the raw text of a code-execution enabled call."""
        ...

    async def generate_structured(
        self,
        messages: Sequence[Message],
        file_ref: FileReference | None = None,
        *,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Return the parsed JSON object of a schema-constrained call."""
        ...


def _get(item: Any, key: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(key, default)
    return getattr(item, key, default)


def _serialise_tool_trace(item: Any) -> str:
    """Render a ``code_interpreter_call`` output item as a JSON object."""

    outputs: list[dict[str, Any]] = []
    for output in _get(item, "outputs") or []:
        entry: dict[str, Any] = {"type": _get(output, "type")}
        for key in ("logs", "url"):
            value = _get(output, key)
            if value:
                entry[key] = value
        outputs.append(entry)
    trace_payload = {
        "type": "code_interpreter_call",
        "code": _get(item, "code") or "",
        "outputs": outputs,
    }
    return json.dumps(trace_payload, ensure_ascii=False)


def collect_code_execution_text(response: Any) -> str:
    """Flatten a Responses payload into tool traces followed by message text.

    Raises:
        EmptyContentError: if the response has no output items or none of
            them carries message text.
    """

    output_items = list(_get(response, "output") or [])
    if not output_items:
        raise EmptyContentError("No content parts in code execution response")

    traces: list[str] = []
    texts: list[str] = []
    for item in output_items:
        item_type = _get(item, "type")
        if item_type == "code_interpreter_call":
            traces.append(_serialise_tool_trace(item))
        elif item_type == "message":
            for part in _get(item, "content") or []:
                if _get(part, "type") == "output_text":
                    text = _get(part, "text")
                    if text:
                        texts.append(text)

    if not texts:
        raise EmptyContentError("No text content found in code execution response parts")
    return "".join(traces) + "".join(texts)


def collect_output_text(response: Any) -> str:
    """Return the concatenated ``output_text`` parts of a Responses payload."""

    text = _get(response, "output_text")
    if isinstance(text, str) and text.strip():
        return text
    chunks: list[str] = []
    for item in _get(response, "output") or []:
        if _get(item, "type") != "message":
            continue
        for part in _get(item, "content") or []:
            if _get(part, "type") == "output_text" and _get(part, "text"):
                chunks.append(_get(part, "text"))
    return "".join(chunks)


def parse_structured_payload(text: str) -> dict[str, Any]:
    """Parse the JSON object returned by a structured call."""

    if not text or not text.strip():
        raise EmptyContentError("No output in structured response")
    candidate = extract_json_from_text(text)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise UpstreamShapeError(
            f"Structured response is not valid JSON: {exc.msg}",
            original=exc,
            raw_content=text,
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamShapeError(
            "Structured response is not a JSON object",
            raw_content=text,
        )
    return payload


class OpenAIChartLLM:
    """:class:`ChartLLM` backed by the OpenAI Responses API."""

    def __init__(
        self,
        *,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
        structured_mode: StructuredOutputMode | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self.model = model or config.OPENAI_MODEL
        self.structured_mode = structured_mode or config.STRUCTURED_OUTPUT_MODE
        self.max_output_tokens = max_output_tokens or config.MAX_OUTPUT_TOKENS
        self._client = client
        self._lock = asyncio.Lock()

    async def get_client(self) -> AsyncOpenAI:
        async with self._lock:
            if self._client is None:
                key = config.OPENAI_API_KEY
                if not key:
                    raise ConfigurationError(MISSING_API_KEY_MESSAGE)
                init_kwargs: dict[str, Any] = {
                    "api_key": key,
                    "base_url": config.OPENAI_BASE_URL or None,
                    "timeout": config.OPENAI_REQUEST_TIMEOUT,
                    # Retries are owned by RetryPolicy.
                    "max_retries": 0,
                }
                if config.OPENAI_ORGANIZATION:
                    init_kwargs["organization"] = config.OPENAI_ORGANIZATION
                self._client = AsyncOpenAI(**init_kwargs)
            return self._client

    async def _create_response(self, payload: dict[str, Any], *, span_name: str, step: str) -> Any:
        with tracer.start_as_current_span(span_name) as span:
            span.set_attribute("llm.model", self.model)
            span.set_attribute("llm.has_tools", "tools" in payload)
            if "temperature" in payload:
                span.set_attribute("llm.temperature", float(payload["temperature"]))
            started = time.perf_counter()
            try:
                client = await self.get_client()
                response = await client.responses.create(**payload)
            except (OpenAIError, asyncio.TimeoutError) as err:
                span.record_exception(err)
                span.set_status(Status(StatusCode.ERROR, str(err)))
                wrapped = wrap_provider_error(err, step=step)
                log_event(
                    "warning",
                    event=f"{step}.provider_error",
                    query_id=current_query_id(),
                    model=self.model,
                    duration=time.perf_counter() - started,
                    fields={"kind": wrapped.kind, "error": str(wrapped)},
                )
                raise wrapped from err
            except ConfigurationError as err:
                span.set_status(Status(StatusCode.ERROR, str(err)))
                err.step = err.step or step
                raise
            log_event(
                "debug",
                event=f"{step}.response",
                query_id=current_query_id(),
                model=self.model,
                duration=time.perf_counter() - started,
                payload={"request": payload, "response_id": _get(response, "id")},
            )
            return response

    async def run_code_analysis(
        self,
        prompt: str,
        file_ref: FileReference | None = None,
        *,
        temperature: float | None = None,
    ) -> str:
        container: dict[str, Any] = {"type": "auto"}
        if file_ref is not None:
            container["file_ids"] = [file_ref.file_id]
        payload: dict[str, Any] = {
            "model": self.model,
            "input": [{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
            "tools": [{"type": "code_interpreter", "container": container}],
            "include": ["code_interpreter_call.outputs"],
            "temperature": config.CODE_EXECUTION_TEMPERATURE if temperature is None else temperature,
            "max_output_tokens": self.max_output_tokens,
        }
        response = await self._create_response(payload, span_name="openai.code_execution", step="step1")
        try:
            return collect_code_execution_text(response)
        except EmptyContentError as err:
            err.step = "step1"
            raise

    def _structured_input(self, messages: Sequence[Message], *, has_file: bool) -> list[dict[str, Any]]:
        system_prompt = build_structured_system_prompt(has_file=has_file)
        if self.structured_mode is StructuredOutputMode.INSTRUCTION:
            system_prompt += "\nRespond with a single JSON object and nothing else."
        items: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        for message in messages:
            items.append({"role": message.get("role", "user"), "content": message.get("content", "")})
        return items

    async def generate_structured(
        self,
        messages: Sequence[Message],
        file_ref: FileReference | None = None,
        *,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        # The data file is only referenced in the instruction; structured
        # calls run without the code interpreter.
        payload: dict[str, Any] = {
            "model": self.model,
            "input": self._structured_input(messages, has_file=file_ref is not None),
            "text": chart_response_text_format(native=self.structured_mode is StructuredOutputMode.NATIVE),
            "temperature": config.STRUCTURED_TEMPERATURE if temperature is None else temperature,
            "max_output_tokens": self.max_output_tokens,
        }
        response = await self._create_response(payload, span_name="openai.structured", step="structured")
        try:
            return parse_structured_payload(collect_output_text(response))
        except (EmptyContentError, UpstreamShapeError) as err:
            logger.warning("Structured call returned unusable output: %s", err)
            err.step = err.step or "structured"
            raise


__all__ = [
    "ChartLLM",
    "MISSING_API_KEY_MESSAGE",
    "OpenAIChartLLM",
    "collect_code_execution_text",
    "collect_output_text",
    "parse_structured_payload",
]
