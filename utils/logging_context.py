from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [query=%(query_id)s step=%(query_step)s model=%(model)s] %(name)s: %(message)s"

_query_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("query_id", default="-")
_query_step_var: contextvars.ContextVar[str] = contextvars.ContextVar("query_step", default="-")
_model_var: contextvars.ContextVar[str] = contextvars.ContextVar("model", default="-")
_DEFAULT_RECORD_FACTORY = logging.getLogRecordFactory()
_RECORD_FACTORY_INSTALLED = False


def _apply_context(record: logging.LogRecord) -> None:
    record.query_id = _query_id_var.get("-")
    record.query_step = _query_step_var.get("-")
    record.model = _model_var.get("-")


class _ContextFilter(logging.Filter):
    """Inject contextual fields into log records for consistent formatting."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - logging protocol
        _apply_context(record)
        return True


def _coerce(value: str | None) -> str:
    if value is None:
        return "-"
    stripped = value.strip()
    return stripped or "-"


def configure_logging(*, level: int | str = logging.INFO) -> None:
    """Ensure the root logger formats records with contextual metadata."""

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_DEFAULT_LOG_FORMAT)
        root = logging.getLogger()
    else:
        root.setLevel(level)
    for handler in root.handlers:
        handler.setFormatter(logging.Formatter(_DEFAULT_LOG_FORMAT))
    has_filter = any(isinstance(flt, _ContextFilter) for flt in root.filters)
    if not has_filter:
        root.addFilter(_ContextFilter())
    global _RECORD_FACTORY_INSTALLED
    if not _RECORD_FACTORY_INSTALLED:
        default_factory = _DEFAULT_RECORD_FACTORY

        def _record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
            record = default_factory(*args, **kwargs)
            _apply_context(record)
            return record

        logging.setLogRecordFactory(_record_factory)
        _RECORD_FACTORY_INSTALLED = True


def current_query_id() -> str:
    """Return the query identifier bound to the current context."""

    return _query_id_var.get("-")


def set_query_step(step: str | None) -> None:
    """Bind the current orchestration step to the logging context."""

    _query_step_var.set(_coerce(step))


@contextmanager
def log_context(
    *,
    query_id: str | None = None,
    step: str | None = None,
    model: str | None = None,
) -> Iterator[None]:
    """Temporarily override logging context variables."""

    tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []
    if query_id is not None:
        tokens.append((_query_id_var, _query_id_var.set(_coerce(query_id))))
    if step is not None:
        tokens.append((_query_step_var, _query_step_var.set(_coerce(step))))
    if model is not None:
        tokens.append((_model_var, _model_var.set(_coerce(model))))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
