from __future__ import annotations

import asyncio

import httpx
import openai
import pytest

from core.errors import (
    ChartQueryError,
    ConfigurationError,
    EmptyContentError,
    ErrorKind,
    MalformedRequestError,
    RateLimitedError,
    TransientError,
    UpstreamTimeoutError,
    classify_error,
    wrap_provider_error,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def _status_error(error_type: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    response = httpx.Response(status, request=_REQUEST)
    return error_type(f"Error code: {status}", response=response, body=None)


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (_status_error(openai.AuthenticationError, 401), ErrorKind.CONFIG),
        (_status_error(openai.BadRequestError, 400), ErrorKind.BAD_REQUEST),
        (_status_error(openai.UnprocessableEntityError, 422), ErrorKind.BAD_REQUEST),
        (_status_error(openai.RateLimitError, 429), ErrorKind.RATE_LIMITED),
        (_status_error(openai.InternalServerError, 503), ErrorKind.TRANSIENT),
        (openai.APITimeoutError(request=_REQUEST), ErrorKind.TIMEOUT),
        (openai.APIConnectionError(request=_REQUEST), ErrorKind.TRANSIENT),
        (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
    ],
)
def test_classifies_provider_errors(error: BaseException, kind: ErrorKind) -> None:
    assert classify_error(error) is kind


def test_unmapped_status_code_uses_status() -> None:
    assert classify_error(_status_error(openai.APIStatusError, 502)) is ErrorKind.TRANSIENT


@pytest.mark.parametrize(
    ("message", "kind"),
    [
        ("OpenAI API key not configured", ErrorKind.CONFIG),
        ("No content parts in code execution response", ErrorKind.EMPTY_CONTENT),
        ("Empty parts array in API response", ErrorKind.EMPTY_CONTENT),
        ("upstream said 429 too many requests", ErrorKind.RATE_LIMITED),
        ("something else entirely", ErrorKind.UNKNOWN),
    ],
)
def test_foreign_exceptions_fall_back_to_message(message: str, kind: ErrorKind) -> None:
    assert classify_error(RuntimeError(message)) is kind


def test_own_errors_report_their_kind() -> None:
    assert classify_error(EmptyContentError("nothing")) is ErrorKind.EMPTY_CONTENT
    # The kind is authoritative even when the message suggests otherwise.
    assert classify_error(TransientError("API key not configured")) is ErrorKind.TRANSIENT


def test_wrap_provider_error_builds_typed_error() -> None:
    original = _status_error(openai.RateLimitError, 429)
    wrapped = wrap_provider_error(original, step="step1")
    assert isinstance(wrapped, RateLimitedError)
    assert wrapped.step == "step1"
    assert wrapped.original is original


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(openai.AuthenticationError, 401), ConfigurationError),
        (_status_error(openai.BadRequestError, 400), MalformedRequestError),
        (openai.APITimeoutError(request=_REQUEST), UpstreamTimeoutError),
    ],
)
def test_wrap_provider_error_types(error: BaseException, expected: type[ChartQueryError]) -> None:
    assert type(wrap_provider_error(error)) is expected


def test_wrap_provider_error_passes_through_own_errors() -> None:
    error = EmptyContentError("No content parts in code execution response")
    assert wrap_provider_error(error, step="step1") is error
    assert error.step == "step1"
    assert wrap_provider_error(error, step="step2").step == "step1"


def test_unknown_errors_keep_base_type() -> None:
    wrapped = wrap_provider_error(ValueError("boom"))
    assert type(wrapped) is ChartQueryError
    assert wrapped.kind is ErrorKind.UNKNOWN
    assert str(wrapped) == "boom"
