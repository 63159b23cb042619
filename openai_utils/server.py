"""FastAPI server exposing the chart query pipeline to the dashboard."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

import config
from core.errors import ChartQueryError, ErrorKind, classify_error
from core.query_validation import validate_query
from pipelines.ask import ChartQueryService, get_default_service
from utils.logging_context import configure_logging
from utils.telemetry import setup_tracing

logger = logging.getLogger("chart_query.server")

GENERIC_FAILURE_MESSAGE = "Failed to process query after multiple attempts"
INVALID_RESPONSE_MESSAGE = "Invalid response from AI service"
UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable"
TIMEOUT_MESSAGE = "AI service did not respond in time"

_STATUS_BY_KIND: dict[ErrorKind, tuple[int, str | None]] = {
    ErrorKind.CONFIG: (500, None),
    ErrorKind.STRUCTURAL: (502, INVALID_RESPONSE_MESSAGE),
    ErrorKind.UPSTREAM_SHAPE: (502, INVALID_RESPONSE_MESSAGE),
    ErrorKind.RATE_LIMITED: (503, UNAVAILABLE_MESSAGE),
    ErrorKind.TRANSIENT: (503, UNAVAILABLE_MESSAGE),
    ErrorKind.TIMEOUT: (504, TIMEOUT_MESSAGE),
}


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(level=config.LOG_LEVEL)
    setup_tracing()
    yield


app = FastAPI(title="Chart query service", lifespan=_lifespan)


def get_service() -> ChartQueryService:
    return get_default_service()


def error_status(error: BaseException) -> tuple[int, str]:
    """Map a pipeline failure to an HTTP status and a client-safe message."""

    status, message = _STATUS_BY_KIND.get(classify_error(error), (500, GENERIC_FAILURE_MESSAGE))
    if message is None:
        message = str(error)
    return status, message


@app.post("/api/query")
async def query_chart(request: Request, service: ChartQueryService = Depends(get_service)) -> JSONResponse:
    """Answer a dashboard question with a chart description."""

    try:
        body: Any = await request.json()
    except ValueError:
        body = None
    query = body.get("query") if isinstance(body, dict) else None
    validation = validate_query(query)
    if not validation.is_valid:
        return JSONResponse({"error": validation.error}, status_code=400)

    try:
        chart = await service.answer(query)
    except ChartQueryError as err:
        status, message = error_status(err)
        logger.error("Query failed with %s (%s): %s", err.kind, err.step, err)
        return JSONResponse({"error": message}, status_code=status)
    except Exception:
        logger.exception("Unexpected failure while answering query")
        return JSONResponse({"error": GENERIC_FAILURE_MESSAGE}, status_code=500)
    return JSONResponse(chart.to_payload())


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    return {"ok": True, "llm_enabled": config.is_llm_enabled(), "model": config.OPENAI_MODEL}


__all__ = ["app", "error_status", "get_service"]
