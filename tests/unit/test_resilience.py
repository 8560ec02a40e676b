"""Unit tests for agent_trust.resilience — timeouts, retries and backoff."""
from __future__ import annotations

import asyncio

import pytest

from agent_trust.errors import ExternalCallError
from agent_trust.resilience import ExternalCallPolicy, call_external


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class Flaky:
    """Fails the first *failures* calls, then returns *value*."""

    def __init__(self, failures: int, value: str = "ok") -> None:
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return self.value


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def policy() -> ExternalCallPolicy:
    return ExternalCallPolicy(max_retries=2, initial_delay=0.1, jitter=False)


# ---------------------------------------------------------------------------
# ExternalCallPolicy
# ---------------------------------------------------------------------------


class TestExternalCallPolicy:
    def test_defaults(self) -> None:
        policy = ExternalCallPolicy()
        assert policy.timeout_seconds == pytest.approx(5.0)
        assert policy.max_retries == 2
        assert policy.jitter is True

    def test_delays_grow_exponentially(self, policy: ExternalCallPolicy) -> None:
        assert policy.delay_for(0) == pytest.approx(0.1)
        assert policy.delay_for(1) == pytest.approx(0.2)
        assert policy.delay_for(2) == pytest.approx(0.4)

    def test_delay_capped(self) -> None:
        policy = ExternalCallPolicy(initial_delay=1.0, max_delay=1.5, jitter=False)
        assert policy.delay_for(5) == pytest.approx(1.5)

    def test_jitter_stays_within_half_to_full_delay(self) -> None:
        policy = ExternalCallPolicy(initial_delay=1.0, max_delay=10.0, jitter=True)
        for _ in range(20):
            assert 0.5 <= policy.delay_for(0) < 1.0

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            ExternalCallPolicy(timeout_seconds=0)


# ---------------------------------------------------------------------------
# call_external
# ---------------------------------------------------------------------------


class TestCallExternal:
    @pytest.mark.asyncio
    async def test_first_success_returned(
        self, policy: ExternalCallPolicy, sleep: RecordingSleep
    ) -> None:
        flaky = Flaky(failures=0)
        assert await call_external(flaky, policy, "op", sleep=sleep) == "ok"
        assert flaky.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_until_success(
        self, policy: ExternalCallPolicy, sleep: RecordingSleep
    ) -> None:
        flaky = Flaky(failures=2)
        assert await call_external(flaky, policy, "op", sleep=sleep) == "ok"
        assert flaky.calls == 3
        assert sleep.delays == [pytest.approx(0.1), pytest.approx(0.2)]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(
        self, policy: ExternalCallPolicy, sleep: RecordingSleep
    ) -> None:
        flaky = Flaky(failures=10)
        with pytest.raises(ExternalCallError) as exc_info:
            await call_external(flaky, policy, "store.load_evidence", sleep=sleep)
        assert exc_info.value.attempts == 3
        assert exc_info.value.operation == "store.load_evidence"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert flaky.calls == 3

    @pytest.mark.asyncio
    async def test_no_retries_when_disabled(self, sleep: RecordingSleep) -> None:
        flaky = Flaky(failures=1)
        with pytest.raises(ExternalCallError):
            await call_external(flaky, ExternalCallPolicy(max_retries=0), "op", sleep=sleep)
        assert flaky.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, sleep: RecordingSleep) -> None:
        async def slow() -> str:
            await asyncio.sleep(1.0)
            return "late"

        policy = ExternalCallPolicy(timeout_seconds=0.01, max_retries=0)
        with pytest.raises(ExternalCallError) as exc_info:
            await call_external(slow, policy, "slow.op", sleep=sleep)
        assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)
