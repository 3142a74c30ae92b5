"""Tests for siteqa.resilience.governor module."""

import httpx
import pytest

from siteqa.core.errors import RateLimitError, ServiceDegradedError
from siteqa.resilience.governor import CallGovernor, is_rate_limited


class FakeClock:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _governor(clock: FakeClock, **kwargs: float) -> CallGovernor:
    params = {
        "min_interval": 0.0,
        "max_calls_per_window": 100,
        "rate_limit_cooldown": 10.0,
        "max_rate_limit_retries": 3,
    }
    params.update(kwargs)
    return CallGovernor(clock=clock, sleep=clock.sleep, **params)  # type: ignore[arg-type]


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://service.test/embed")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class Outcomes:
    """Async callable that raises or returns the queued outcomes in order."""

    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestPacing:
    """Minimum spacing and rolling window."""

    @pytest.mark.asyncio
    async def test_first_call_runs_immediately(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, min_interval=1.0)

        assert await governor.execute(Outcomes("ok")) == "ok"
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_min_interval_between_calls(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, min_interval=1.0)

        await governor.execute(Outcomes("a"))
        clock.now += 0.25
        await governor.execute(Outcomes("b"))

        assert clock.sleeps == [0.75]

    @pytest.mark.asyncio
    async def test_full_window_waits_for_oldest_call(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, max_calls_per_window=2)

        for _ in range(3):
            await governor.execute(Outcomes("ok"))

        assert clock.sleeps == [60.0]

    @pytest.mark.asyncio
    async def test_window_cap_is_never_exceeded(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, max_calls_per_window=2)
        starts: list[float] = []

        async def call() -> None:
            starts.append(clock.now)

        for _ in range(5):
            await governor.execute(call)

        for start in starts:
            in_window = [s for s in starts if start <= s < start + 60.0]
            assert len(in_window) <= 2
        assert starts == [0.0, 0.0, 60.0, 60.0, 120.0]

    @pytest.mark.asyncio
    async def test_calls_outside_window_do_not_count(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, max_calls_per_window=1)

        await governor.execute(Outcomes("a"))
        clock.now += 61
        await governor.execute(Outcomes("b"))

        assert clock.sleeps == []


class TestRateLimits:
    """Cooldown and retry on rate limit signals."""

    @pytest.mark.asyncio
    async def test_cools_down_and_retries_same_call(self) -> None:
        clock = FakeClock()
        governor = _governor(clock)
        call = Outcomes(RateLimitError("embeddings"), RateLimitError("embeddings"), "done")

        result = await governor.execute(call, operation_name="embed")

        assert result == "done"
        assert call.calls == 3
        assert clock.sleeps == [10.0, 10.0]

    @pytest.mark.asyncio
    async def test_retry_after_overrides_cooldown(self) -> None:
        clock = FakeClock()
        governor = _governor(clock)
        call = Outcomes(RateLimitError("embeddings", retry_after=3.0), "done")

        assert await governor.execute(call) == "done"
        assert clock.sleeps == [3.0]

    @pytest.mark.asyncio
    async def test_http_429_is_a_rate_limit(self) -> None:
        clock = FakeClock()
        governor = _governor(clock)
        call = Outcomes(_status_error(429), "done")

        assert await governor.execute(call) == "done"
        assert clock.sleeps == [10.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        clock = FakeClock()
        governor = _governor(clock, max_rate_limit_retries=2)
        call = Outcomes(RateLimitError("generation"))

        with pytest.raises(ServiceDegradedError):
            await governor.execute(call, operation_name="generate")

        assert call.calls == 3
        assert clock.sleeps == [10.0, 10.0]

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self) -> None:
        clock = FakeClock()
        governor = _governor(clock)
        error = _status_error(500)
        call = Outcomes(error)

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await governor.execute(call)

        assert exc_info.value is error
        assert call.calls == 1
        assert clock.sleeps == []


def test_is_rate_limited() -> None:
    assert is_rate_limited(RateLimitError("x"))
    assert is_rate_limited(_status_error(429))
    assert not is_rate_limited(_status_error(503))
    assert not is_rate_limited(ValueError("nope"))


def test_rejects_empty_window() -> None:
    with pytest.raises(ValueError, match="max_calls_per_window"):
        CallGovernor(max_calls_per_window=0)
