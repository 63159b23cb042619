"""Exponential backoff with jitter for model calls."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, TypeVar

import backoff

import config

T = TypeVar("T")

logger = logging.getLogger("chart_query.retry")

DEFAULT_BASE_DELAYS_MS: tuple[int, ...] = (1000, 2000, 4000, 8000, 16000)
DEFAULT_JITTER = 0.2


def jittered_delay(base_delay_ms: int, *, jitter: float = DEFAULT_JITTER, rng: random.Random | None = None) -> int:
    """Return ``floor(base_delay_ms * uniform(1 - jitter, 1 + jitter))``.

    Concurrent callers retrying the same outage spread out instead of
    hitting the provider in lockstep.
    """

    source = rng or random
    factor = source.uniform(1 - jitter, 1 + jitter)
    return max(0, math.floor(base_delay_ms * factor))


@dataclass(frozen=True)
class RetryContext:
    """Snapshot handed to ``on_retry`` before each backoff sleep."""

    attempt: int
    max_attempts: int
    base_delays_ms: tuple[int, ...]
    jitter: float
    delay_ms: int
    error: BaseException


@dataclass(frozen=True)
class RetryPolicy:
    """Retry a zero-argument coroutine function on failure.

    The delay before retry *n* (1-based) is the jittered value of
    ``base_delays_ms[n - 1]``; the last entry is reused when the list is
    shorter than ``max_attempts``. After the final attempt the last error is
    re-raised unchanged. Every :meth:`run` call owns its own schedule.
    """

    max_attempts: int = 3
    base_delays_ms: tuple[int, ...] = DEFAULT_BASE_DELAYS_MS
    jitter: float = DEFAULT_JITTER
    giveup: Callable[[Exception], bool] | None = None
    on_retry: Callable[[RetryContext], None] | None = None
    rng: random.Random | None = field(default=None, compare=False)
    name: str = "call"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if not self.base_delays_ms:
            raise ValueError("base_delays_ms must not be empty")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be within [0, 1)")

    def jittered_delay(self, base_delay_ms: int) -> int:
        return jittered_delay(base_delay_ms, jitter=self.jitter, rng=self.rng)

    def _delay_schedule(self) -> Iterator[int | None]:
        # backoff primes wait generators with ``send(None)``.
        yield None
        attempt = 0
        while True:
            yield self.base_delays_ms[min(attempt, len(self.base_delays_ms) - 1)]
            attempt += 1

    def _delay_seconds(self, base_delay_ms: int) -> float:
        return self.jittered_delay(base_delay_ms) / 1000

    def _should_give_up(self, error: Exception) -> bool:
        return bool(self.giveup and self.giveup(error))

    def _handle_backoff(self, details: dict[str, Any]) -> None:
        error = details.get("exception")
        delay_ms = int(round(float(details.get("wait") or 0) * 1000))
        logger.info(
            "%s failed (attempt %d/%d): %s; retrying in %dms",
            self.name,
            details["tries"],
            self.max_attempts,
            error,
            delay_ms,
        )
        if self.on_retry is not None and isinstance(error, BaseException):
            self.on_retry(
                RetryContext(
                    attempt=details["tries"],
                    max_attempts=self.max_attempts,
                    base_delays_ms=self.base_delays_ms,
                    jitter=self.jitter,
                    delay_ms=delay_ms,
                    error=error,
                )
            )

    def _handle_giveup(self, details: dict[str, Any]) -> None:
        logger.warning(
            "%s giving up after %d attempt(s): %s",
            self.name,
            details["tries"],
            details.get("exception"),
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or attempts are exhausted."""

        @backoff.on_exception(
            self._delay_schedule,
            Exception,
            max_tries=self.max_attempts,
            jitter=self._delay_seconds,
            giveup=self._should_give_up,
            on_backoff=self._handle_backoff,
            on_giveup=self._handle_giveup,
            logger=None,
        )
        async def _attempt() -> T:
            return await operation()

        return await _attempt()


def default_retry_policy(**overrides: Any) -> RetryPolicy:
    """Return a :class:`RetryPolicy` configured from :mod:`config`."""

    settings: dict[str, Any] = {
        "max_attempts": config.RETRY_MAX_ATTEMPTS,
        "base_delays_ms": tuple(config.RETRY_BASE_DELAYS_MS),
        "jitter": config.RETRY_JITTER,
    }
    settings.update(overrides)
    return RetryPolicy(**settings)


__all__ = [
    "DEFAULT_BASE_DELAYS_MS",
    "DEFAULT_JITTER",
    "RetryContext",
    "RetryPolicy",
    "default_retry_policy",
    "jittered_delay",
]
