"""Error taxonomy for the chart query pipeline.

Provider failures are classified exactly once, where they leave the LLM
client (:func:`wrap_provider_error`). Everything downstream switches on
:class:`ErrorKind` instead of re-reading message text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping

import openai


class ErrorKind(StrEnum):
    """Closed set of failure categories the orchestrator can branch on."""

    CONFIG = "config"
    EMPTY_CONTENT = "empty_content"
    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    TIMEOUT = "timeout"
    UPSTREAM_SHAPE = "upstream_shape"
    STRUCTURAL = "structural"
    UNKNOWN = "unknown"


@dataclass
class ChartQueryError(Exception):
    """Base exception for the chart query pipeline."""

    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN
    step: str | None = None
    details: Mapping[str, Any] | None = None
    original: BaseException | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(ChartQueryError):
    """Raised when credentials or service configuration are missing."""

    kind: ErrorKind = ErrorKind.CONFIG


@dataclass
class EmptyContentError(ChartQueryError):
    """Raised when the provider answered without any usable content."""

    kind: ErrorKind = ErrorKind.EMPTY_CONTENT


@dataclass
class MalformedRequestError(ChartQueryError):
    """Raised when the provider rejected the request itself (HTTP 400/422)."""

    kind: ErrorKind = ErrorKind.BAD_REQUEST


@dataclass
class RateLimitedError(ChartQueryError):
    """Raised when the provider throttled the request."""

    kind: ErrorKind = ErrorKind.RATE_LIMITED


@dataclass
class TransientError(ChartQueryError):
    """Raised for network failures and 5xx responses."""

    kind: ErrorKind = ErrorKind.TRANSIENT


@dataclass
class UpstreamTimeoutError(ChartQueryError):
    """Raised when the provider did not answer within the request timeout."""

    kind: ErrorKind = ErrorKind.TIMEOUT


@dataclass
class UpstreamShapeError(ChartQueryError):
    """Raised when the provider returned an unparsable or incomplete payload."""

    kind: ErrorKind = ErrorKind.UPSTREAM_SHAPE
    raw_content: str | None = None


@dataclass
class StructuralError(ChartQueryError):
    """Raised by the normalizer when a chart payload cannot be repaired."""

    kind: ErrorKind = ErrorKind.STRUCTURAL


@dataclass
class FileUploadError(ChartQueryError):
    """Raised when the data file could not be uploaded to the provider."""


_ERROR_TYPES: dict[ErrorKind, type[ChartQueryError]] = {
    ErrorKind.CONFIG: ConfigurationError,
    ErrorKind.EMPTY_CONTENT: EmptyContentError,
    ErrorKind.BAD_REQUEST: MalformedRequestError,
    ErrorKind.RATE_LIMITED: RateLimitedError,
    ErrorKind.TRANSIENT: TransientError,
    ErrorKind.TIMEOUT: UpstreamTimeoutError,
    ErrorKind.UPSTREAM_SHAPE: UpstreamShapeError,
    ErrorKind.STRUCTURAL: StructuralError,
}

# Message fragments used only for exceptions that carry no type information.
_MESSAGE_PHRASES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.CONFIG, ("api key not configured", "incorrect api key", "invalid api key")),
    (
        ErrorKind.EMPTY_CONTENT,
        (
            "no content parts",
            "empty parts array",
            "no text content found",
            "no output in",
        ),
    ),
    (ErrorKind.BAD_REQUEST, ("400 bad request", "invalid request")),
    (ErrorKind.RATE_LIMITED, ("429", "rate limit")),
)


def _classify_status(status_code: int | None) -> ErrorKind | None:
    if status_code is None:
        return None
    if status_code in {401, 403}:
        return ErrorKind.CONFIG
    if status_code in {400, 404, 422}:
        return ErrorKind.BAD_REQUEST
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ErrorKind.TRANSIENT
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """Return the :class:`ErrorKind` for ``error``."""

    if isinstance(error, ChartQueryError):
        return error.kind
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.CONFIG
    if isinstance(error, (openai.BadRequestError, openai.UnprocessableEntityError, openai.NotFoundError)):
        return ErrorKind.BAD_REQUEST
    if isinstance(error, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, openai.APITimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, (openai.APIConnectionError, openai.InternalServerError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, openai.APIStatusError):
        status_kind = _classify_status(getattr(error, "status_code", None))
        if status_kind is not None:
            return status_kind
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT

    message = str(error).lower()
    for kind, phrases in _MESSAGE_PHRASES:
        if any(phrase in message for phrase in phrases):
            return kind
    return ErrorKind.UNKNOWN


def wrap_provider_error(error: BaseException, *, step: str | None = None) -> ChartQueryError:
    """Return ``error`` as a typed :class:`ChartQueryError`.

    Errors that are already part of the taxonomy pass through untouched so a
    retried call re-raises the exact instance it received.
    """

    if isinstance(error, ChartQueryError):
        if error.step is None:
            error.step = step
        return error
    kind = classify_error(error)
    error_type = _ERROR_TYPES.get(kind, ChartQueryError)
    message = str(error) or error.__class__.__name__
    if error_type is ChartQueryError:
        return ChartQueryError(message, kind=kind, step=step, original=error)
    return error_type(message, step=step, original=error)


__all__ = [
    "ChartQueryError",
    "ConfigurationError",
    "EmptyContentError",
    "ErrorKind",
    "FileUploadError",
    "MalformedRequestError",
    "RateLimitedError",
    "StructuralError",
    "TransientError",
    "UpstreamShapeError",
    "UpstreamTimeoutError",
    "classify_error",
    "wrap_provider_error",
]
