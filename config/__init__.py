"""Central configuration for the chart query service.

Settings are read from the process environment (after loading an optional
``.env`` file) once at import time. Tests patch the module attributes
directly, so call sites read them through ``config.<NAME>`` rather than
copying values at import.

The OpenAI Responses API backs both call modes: ``OPENAI_MODEL`` selects the
model, ``STRUCTURED_OUTPUT_MODE`` (``native`` | ``instruction``) controls
whether the reformatting call sends a JSON schema or only an instruction, and
``RETRY_MAX_ATTEMPTS`` / ``RETRY_BASE_DELAYS_MS`` shape the backoff schedule
used around every model call.
"""

from __future__ import annotations

import logging
import os
import warnings
from enum import StrEnum
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY_ENV_VALUES: tuple[str, ...] = ("1", "true", "yes", "on")
ROOT_DIR = Path(__file__).resolve().parents[1]


class StructuredOutputMode(StrEnum):
    """How the schema-constrained call communicates the expected shape."""

    NATIVE = "native"
    INSTRUCTION = "instruction"


def _is_truthy_flag(value: str | None) -> bool:
    """Return ``True`` when ``value`` matches a truthy environment token."""

    if value is None:
        return False
    return value.strip().lower() in _TRUTHY_ENV_VALUES


def _parse_positive_int_env(value: object | None, *, env_var: str, default: int) -> int:
    """Return a positive integer parsed from ``value`` or ``default``."""

    if value is None:
        return default
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return default
        try:
            parsed = int(float(candidate))
        except ValueError:
            warnings.warn(
                "%s is not a number; ignoring %s" % (candidate, env_var),
                RuntimeWarning,
            )
            return default
    elif isinstance(value, (int, float)):
        parsed = int(value)
    else:
        return default
    if parsed <= 0:
        warnings.warn(
            "%s must be positive; falling back to %s." % (env_var, default),
            RuntimeWarning,
        )
        return default
    return parsed


def _parse_float_env(
    value: str | None,
    *,
    env_var: str,
    default: float,
    upper: float | None = None,
) -> float:
    """Return a non-negative float parsed from ``value`` or ``default``.

    Values at or above ``upper`` fall back to ``default`` with a warning.
    """

    if value is None or not value.strip():
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        warnings.warn(
            "Unsupported %s '%s'; falling back to %s." % (env_var, value, default),
            RuntimeWarning,
        )
        return default
    if parsed < 0:
        return default
    if upper is not None and parsed >= upper:
        warnings.warn(
            "%s must be below %s, got %s; falling back to %s." % (env_var, upper, parsed, default),
            RuntimeWarning,
        )
        return default
    return parsed


def _parse_delay_list(value: str | None, *, default: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a comma-separated list of millisecond delays."""

    if value is None or not value.strip():
        return default
    delays: list[int] = []
    for fragment in value.split(","):
        fragment = fragment.strip()
        if not fragment:
            continue
        try:
            delay = int(float(fragment))
        except ValueError:
            warnings.warn(
                "Ignoring RETRY_BASE_DELAYS_MS; '%s' is not a number." % fragment,
                RuntimeWarning,
            )
            return default
        if delay < 0:
            return default
        delays.append(delay)
    return tuple(delays) or default


def _normalise_timeout(value: object | None, *, default: float = 120.0) -> float:
    """Return a positive timeout value in seconds."""

    if value is None:
        return default
    candidate = value
    if isinstance(candidate, str):
        stripped = candidate.strip()
        if not stripped:
            return default
        try:
            candidate = float(stripped)
        except ValueError:
            warnings.warn(
                "Unsupported OPENAI_REQUEST_TIMEOUT '%s'; falling back to %.1f seconds." % (candidate, default),
                RuntimeWarning,
            )
            return default
    if isinstance(candidate, (int, float)):
        timeout = float(candidate)
        if timeout > 0:
            return timeout
    warnings.warn(
        "OPENAI_REQUEST_TIMEOUT must be a positive number; falling back to %.1f seconds." % default,
        RuntimeWarning,
    )
    return default


def _coerce_structured_mode(value: str | None) -> StructuredOutputMode:
    if not value:
        return StructuredOutputMode.NATIVE
    lowered = value.strip().lower()
    if lowered in {"instruction", "instructions", "prompt", "best-effort"}:
        return StructuredOutputMode.INSTRUCTION
    if lowered not in {"native", "schema", "json_schema"}:
        warnings.warn(
            "Unsupported STRUCTURED_OUTPUT_MODE '%s'; falling back to 'native'." % value,
            RuntimeWarning,
        )
    return StructuredOutputMode.NATIVE


def get_openai_api_key() -> str:
    """Return the configured OpenAI API key or an empty string."""

    key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not key:
        logger.info("OPENAI_API_KEY not configured; the ask-AI endpoint will report a configuration error.")
    return key


GPT41_MINI = "gpt-4.1-mini"

OPENAI_API_KEY = get_openai_api_key()
OPENAI_BASE_URL = (os.getenv("OPENAI_BASE_URL") or os.getenv("OPENAI_API_BASE_URL") or "").strip()
OPENAI_ORGANIZATION = os.getenv("OPENAI_ORGANIZATION", "").strip()
OPENAI_MODEL = (os.getenv("OPENAI_MODEL") or GPT41_MINI).strip()
OPENAI_REQUEST_TIMEOUT = _normalise_timeout(os.getenv("OPENAI_REQUEST_TIMEOUT"), default=120.0)

MAX_OUTPUT_TOKENS = _parse_positive_int_env(os.getenv("MAX_OUTPUT_TOKENS"), env_var="MAX_OUTPUT_TOKENS", default=4096)
CODE_EXECUTION_TEMPERATURE = _parse_float_env(
    os.getenv("CODE_EXECUTION_TEMPERATURE"), env_var="CODE_EXECUTION_TEMPERATURE", default=0.5
)
STRUCTURED_TEMPERATURE = _parse_float_env(
    os.getenv("STRUCTURED_TEMPERATURE"), env_var="STRUCTURED_TEMPERATURE", default=0.5
)
FALLBACK_TEMPERATURE = _parse_float_env(os.getenv("FALLBACK_TEMPERATURE"), env_var="FALLBACK_TEMPERATURE", default=0.8)
STRUCTURED_OUTPUT_MODE = _coerce_structured_mode(os.getenv("STRUCTURED_OUTPUT_MODE"))

RETRY_MAX_ATTEMPTS = _parse_positive_int_env(os.getenv("RETRY_MAX_ATTEMPTS"), env_var="RETRY_MAX_ATTEMPTS", default=3)
RETRY_BASE_DELAYS_MS = _parse_delay_list(os.getenv("RETRY_BASE_DELAYS_MS"), default=(1000, 2000, 4000, 8000, 16000))
RETRY_JITTER = _parse_float_env(os.getenv("RETRY_JITTER"), env_var="RETRY_JITTER", default=0.2, upper=1.0)

DATA_FILE_PATH = Path(
    os.getenv("DATA_FILE_PATH") or ROOT_DIR / "resources" / "artifacts" / "full_summary.csv"
)
DATA_FILE_DISPLAY_NAME = os.getenv("DATA_FILE_DISPLAY_NAME", "Data Quality Summary")
# Uploaded files are dropped by the provider after 48 hours.
FILE_CACHE_TTL_SECONDS = _parse_positive_int_env(
    os.getenv("FILE_CACHE_TTL_SECONDS"), env_var="FILE_CACHE_TTL_SECONDS", default=47 * 60 * 60
)
ATTACH_DATA_FILE = not _is_truthy_flag(os.getenv("DISABLE_DATA_FILE"))

MAX_QUERY_LENGTH = _parse_positive_int_env(os.getenv("MAX_QUERY_LENGTH"), env_var="MAX_QUERY_LENGTH", default=500)
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()


def is_llm_enabled() -> bool:
    """Return ``True`` when an OpenAI API key is configured."""

    return bool(OPENAI_API_KEY)


__all__ = [
    "ATTACH_DATA_FILE",
    "CODE_EXECUTION_TEMPERATURE",
    "DATA_FILE_DISPLAY_NAME",
    "DATA_FILE_PATH",
    "FALLBACK_TEMPERATURE",
    "FILE_CACHE_TTL_SECONDS",
    "GPT41_MINI",
    "LOG_LEVEL",
    "MAX_OUTPUT_TOKENS",
    "MAX_QUERY_LENGTH",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_ORGANIZATION",
    "OPENAI_REQUEST_TIMEOUT",
    "RETRY_BASE_DELAYS_MS",
    "RETRY_JITTER",
    "RETRY_MAX_ATTEMPTS",
    "STRUCTURED_OUTPUT_MODE",
    "STRUCTURED_TEMPERATURE",
    "StructuredOutputMode",
    "get_openai_api_key",
    "is_llm_enabled",
]
