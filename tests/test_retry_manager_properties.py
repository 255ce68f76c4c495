"""
Property-based tests for the Retry Manager module.

Uses Hypothesis to check the backoff schedule and the attempt budget.
"""

import asyncio

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from sms_solvers.config import RetryConfig
from sms_solvers.enums import ProviderErrorKind
from sms_solvers.exceptions import ProviderError
from sms_solvers.retry_manager import RetryManager


# Strategies for generating test data

@st.composite
def retry_config_strategy(draw) -> RetryConfig:
    """Generate valid RetryConfig objects."""
    min_delay = draw(st.floats(min_value=0.001, max_value=10.0))
    return RetryConfig(
        min_delay_seconds=min_delay,
        max_delay_seconds=draw(st.floats(min_value=min_delay, max_value=120.0)),
        factor=draw(st.floats(min_value=1.0, max_value=10.0)),
        max_retries=draw(st.integers(min_value=0, max_value=10)),
    )


@st.composite
def fast_retry_config_strategy(draw) -> RetryConfig:
    """Generate RetryConfig objects with millisecond delays for execution tests."""
    return RetryConfig(
        min_delay_seconds=0.0005,
        max_delay_seconds=0.002,
        factor=2.0,
        max_retries=draw(st.integers(min_value=0, max_value=4)),
    )


transient_kind_strategy = st.sampled_from([
    ProviderErrorKind.SERVICE_UNAVAILABLE,
    ProviderErrorKind.NETWORK_ERROR,
    ProviderErrorKind.TIMEOUT,
    ProviderErrorKind.RATE_LIMITED,
    ProviderErrorKind.NO_NUMBERS,
])

permanent_kind_strategy = st.sampled_from([
    ProviderErrorKind.TASK_NOT_FOUND,
    ProviderErrorKind.NUMBER_BANNED,
    ProviderErrorKind.INVALID_CREDENTIALS,
    ProviderErrorKind.ACCOUNT_BANNED,
    ProviderErrorKind.INSUFFICIENT_BALANCE,
    ProviderErrorKind.UNKNOWN,
])


class TestExponentialBackoffProperty:
    """The delay schedule grows exponentially and stays inside [min, max]."""

    @given(
        config=retry_config_strategy(),
        attempt=st.integers(min_value=0, max_value=2000),
    )
    @settings(max_examples=200)
    def test_delay_is_monotonic_and_bounded(
        self,
        config: RetryConfig,
        attempt: int,
    ) -> None:
        manager = RetryManager(config)

        delay = manager.calculate_delay(attempt)
        next_delay = manager.calculate_delay(attempt + 1)

        assert config.min_delay_seconds <= delay <= config.max_delay_seconds
        assert next_delay >= delay

    @given(config=retry_config_strategy(), attempt=st.integers(min_value=0, max_value=20))
    @settings(max_examples=100)
    def test_delay_matches_formula(self, config: RetryConfig, attempt: int) -> None:
        raw = config.min_delay_seconds * (config.factor ** attempt)
        assume(raw < 1e12)

        expected = min(raw, config.max_delay_seconds)
        delay = RetryManager(config).calculate_delay(attempt)

        assert delay == pytest.approx(expected)

    def test_default_schedule(self) -> None:
        manager = RetryManager()

        delays = [manager.calculate_delay(n) for n in range(7)]

        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_huge_attempt_saturates(self) -> None:
        manager = RetryManager(RetryConfig(factor=10.0))

        assert manager.calculate_delay(10_000) == 30.0


class TestAttemptBudgetProperty:
    """Retryable failures use the whole budget; permanent ones use one attempt."""

    @given(config=fast_retry_config_strategy(), kind=transient_kind_strategy)
    @settings(max_examples=30, deadline=None)
    def test_transient_errors_exhaust_budget(
        self,
        config: RetryConfig,
        kind: ProviderErrorKind,
    ) -> None:
        manager = RetryManager(config)
        calls = 0
        last = None

        async def always_failing():
            nonlocal calls, last
            calls += 1
            last = ProviderError(kind, f"failure {calls}")
            raise last

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(manager.execute(always_failing))

        assert calls == config.max_retries + 1
        assert exc_info.value is last

    @given(
        max_retries=st.integers(min_value=0, max_value=50),
        kind=permanent_kind_strategy,
    )
    @settings(max_examples=50, deadline=None)
    def test_permanent_error_is_attempted_once(
        self,
        max_retries: int,
        kind: ProviderErrorKind,
    ) -> None:
        manager = RetryManager(RetryConfig(max_retries=max_retries))
        calls = 0
        error = ProviderError(kind, "permanent")

        async def failing():
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(manager.execute(failing))

        assert calls == 1
        assert exc_info.value is error

    def test_foreign_exceptions_are_not_retried(self) -> None:
        manager = RetryManager(RetryConfig(min_delay_seconds=0.001, max_retries=5))
        calls = 0

        async def failing():
            nonlocal calls
            calls += 1
            raise KeyError("missing")

        with pytest.raises(KeyError):
            asyncio.run(manager.execute(failing))

        assert calls == 1

    def test_custom_predicate(self) -> None:
        manager = RetryManager(RetryConfig(min_delay_seconds=0.001, max_retries=2))
        calls = 0

        async def failing():
            nonlocal calls
            calls += 1
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            asyncio.run(manager.execute(
                failing, is_retryable=lambda e: isinstance(e, TimeoutError)
            ))

        assert calls == 3


class TestRetryObserverProperty:
    """The observer sees every retry with the delay about to be slept."""

    @given(failures=st.integers(min_value=0, max_value=3))
    @settings(max_examples=20, deadline=None)
    def test_success_after_transient_failures(self, failures: int) -> None:
        config = RetryConfig(
            min_delay_seconds=0.001, max_delay_seconds=0.004, max_retries=3
        )
        manager = RetryManager(config)
        calls = 0
        observed = []

        async def flaky():
            nonlocal calls
            calls += 1
            if calls <= failures:
                raise ProviderError(ProviderErrorKind.SERVICE_UNAVAILABLE, "down")
            return "ok"

        result = asyncio.run(manager.execute(
            flaky, on_retry=lambda error, delay: observed.append(delay)
        ))

        assert result == "ok"
        assert calls == failures + 1
        assert observed == [manager.calculate_delay(n) for n in range(failures)]
