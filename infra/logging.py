"""Structured logging utilities for the chart query service."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict

LOGGER = logging.getLogger("chart_query.events")


def _redact(value: str) -> str:
    """Redact known secrets from a string."""

    secrets = [os.getenv("OPENAI_API_KEY")]
    for secret in secrets:
        if secret:
            value = value.replace(secret, "[redacted]")
    return value


def log_event(
    level: str,
    *,
    event: str,
    query_id: str | None = None,
    model: str | None = None,
    duration: float | None = None,
    fields: Dict[str, Any] | None = None,
    payload: Dict[str, Any] | None = None,
) -> str:
    """Emit a structured log line and optionally dump payload to a temp file.

    Args:
        level: Logging level name (e.g., ``"info"``).
        event: Short event name such as ``"step1.success"``.
        query_id: Identifier of the query run.
        model: Model name used for the call.
        duration: Duration of the operation in seconds.
        fields: Additional scalar fields merged into the record.
        payload: Optional payload to dump for debugging when the
            ``CHART_QUERY_DEBUG`` env var is truthy.

    Returns:
        Path to the dumped payload file if written, else an empty string.
    """

    record: Dict[str, Any] = {
        "level": level.lower(),
        "event": event,
        "query_id": query_id,
        "model": model,
        "duration": duration,
    }
    if fields:
        record.update(fields)
    safe_record = {k: _redact(str(v)) for k, v in record.items() if v is not None}
    LOGGER.log(getattr(logging, level.upper(), logging.INFO), json.dumps(safe_record, ensure_ascii=False))

    if payload and os.getenv("CHART_QUERY_DEBUG"):
        path = Path(tempfile.gettempdir()) / f"chart_query_{int(time.time())}.json"
        path.write_text(_redact(json.dumps(payload, ensure_ascii=False, indent=2, default=str)))
        return str(path)
    return ""


__all__ = ["log_event"]
