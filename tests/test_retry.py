from __future__ import annotations

import random

import pytest

import config
from core.errors import ConfigurationError, TransientError
from utils.retry import RetryContext, RetryPolicy, default_retry_policy, jittered_delay


class _Flaky:
    """Coroutine factory failing ``failures`` times before succeeding."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or TransientError("503 Service Unavailable")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def test_jittered_delay_stays_within_twenty_percent() -> None:
    rng = random.Random(1234)
    for base in (1000, 2000, 4000):
        for _ in range(200):
            delay = jittered_delay(base, rng=rng)
            assert isinstance(delay, int)
            assert int(base * 0.8) <= delay <= int(base * 1.2)


def test_jittered_delay_zero_base() -> None:
    assert jittered_delay(0) == 0


@pytest.mark.asyncio
async def test_succeeds_on_third_attempt_with_two_retries() -> None:
    retries: list[RetryContext] = []
    operation = _Flaky(failures=2)
    policy = RetryPolicy(max_attempts=3, base_delays_ms=(0,), on_retry=retries.append)

    assert await policy.run(operation) == "ok"
    assert operation.calls == 3
    assert [context.attempt for context in retries] == [1, 2]
    assert all(context.max_attempts == 3 for context in retries)


@pytest.mark.asyncio
async def test_reraises_last_error_after_exhaustion() -> None:
    error = TransientError("still down")
    operation = _Flaky(failures=10, error=error)
    policy = RetryPolicy(max_attempts=3, base_delays_ms=(0,))

    with pytest.raises(TransientError) as excinfo:
        await policy.run(operation)

    assert excinfo.value is error
    assert operation.calls == 3


@pytest.mark.asyncio
async def test_giveup_stops_immediately() -> None:
    operation = _Flaky(failures=10, error=ConfigurationError("OpenAI API key not configured"))
    policy = RetryPolicy(
        max_attempts=5,
        base_delays_ms=(0,),
        giveup=lambda exc: isinstance(exc, ConfigurationError),
    )

    with pytest.raises(ConfigurationError):
        await policy.run(operation)
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_runs_do_not_share_state() -> None:
    policy = RetryPolicy(max_attempts=2, base_delays_ms=(0,))
    first = _Flaky(failures=1)
    second = _Flaky(failures=1)

    assert await policy.run(first) == "ok"
    assert await policy.run(second) == "ok"
    assert first.calls == second.calls == 2


@pytest.mark.asyncio
async def test_retry_delays_follow_schedule() -> None:
    retries: list[RetryContext] = []
    policy = RetryPolicy(
        max_attempts=4,
        base_delays_ms=(1, 2),
        jitter=0.0,
        on_retry=retries.append,
    )

    assert await policy.run(_Flaky(failures=3)) == "ok"
    assert [context.delay_ms for context in retries] == [1, 2, 2]


@pytest.mark.parametrize(
    "kwargs",
    [{"max_attempts": 0}, {"base_delays_ms": ()}, {"jitter": 1.5}],
)
def test_invalid_policies_are_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)  # type: ignore[arg-type]


def test_default_policy_reads_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "RETRY_MAX_ATTEMPTS", 5)
    monkeypatch.setattr(config, "RETRY_BASE_DELAYS_MS", (10, 20))
    policy = default_retry_policy(name="step1")
    assert policy.max_attempts == 5
    assert policy.base_delays_ms == (10, 20)
    assert policy.name == "step1"
