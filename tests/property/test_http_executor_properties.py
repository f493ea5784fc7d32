"""Property-based tests for the HTTP executor.

Retry backoff:
- Delay grows exponentially with each attempt
- Delay never exceeds max_delay
- Jitter stays within configured bounds
- Retry-After is honoured but capped
"""

from __future__ import annotations

import asyncio

import httpx
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from parcel_sdk.config import RetryConfig
from parcel_sdk.core.http_executor import (
    AsyncHTTPExecutor,
    calculate_retry_delay,
    should_retry_status,
)
from parcel_sdk.errors import ApiError

# Strategies for generating test data
initial_delay_strategy = st.floats(min_value=0.1, max_value=10.0)
max_delay_strategy = st.floats(min_value=10.0, max_value=300.0)
exponential_base_strategy = st.floats(min_value=1.5, max_value=3.0)
jitter_strategy = st.floats(min_value=0.0, max_value=1.0)
attempt_strategy = st.integers(min_value=0, max_value=10)


class TestRetryExponentialBackoff:
    """Property tests for retry exponential backoff."""

    @given(
        initial_delay=initial_delay_strategy,
        max_delay=max_delay_strategy,
        exponential_base=exponential_base_strategy,
        attempt=attempt_strategy,
    )
    @settings(max_examples=100)
    def test_delay_never_exceeds_max(
        self,
        initial_delay: float,
        max_delay: float,
        exponential_base: float,
        attempt: int,
    ) -> None:
        """Property: Delay never exceeds max_delay."""
        config = RetryConfig(
            max_retries=10,
            initial_delay=initial_delay,
            max_delay=max_delay,
            exponential_base=exponential_base,
            jitter=0.0,
        )

        assert calculate_retry_delay(config, attempt) <= max_delay

    @given(
        initial_delay=initial_delay_strategy,
        max_delay=max_delay_strategy,
        exponential_base=exponential_base_strategy,
    )
    @settings(max_examples=100)
    def test_delay_increases_with_attempts(
        self,
        initial_delay: float,
        max_delay: float,
        exponential_base: float,
    ) -> None:
        """Property: Delay increases with each attempt until max."""
        assume(max_delay > initial_delay * exponential_base)

        config = RetryConfig(
            max_retries=10,
            initial_delay=initial_delay,
            max_delay=max_delay,
            exponential_base=exponential_base,
            jitter=0.0,
        )

        assert calculate_retry_delay(config, 1) > calculate_retry_delay(config, 0)

    @given(
        initial_delay=initial_delay_strategy,
        jitter=jitter_strategy,
        attempt=st.integers(min_value=0, max_value=3),
    )
    @settings(max_examples=100)
    def test_jitter_within_bounds(
        self,
        initial_delay: float,
        jitter: float,
        attempt: int,
    ) -> None:
        """Property: Jitter keeps the delay within +/- jitter of the base delay."""
        config = RetryConfig(
            max_retries=10,
            initial_delay=initial_delay,
            max_delay=300.0,
            exponential_base=2.0,
            jitter=jitter,
        )
        base = min(initial_delay * 2.0**attempt, 300.0)

        delay = config.get_delay(attempt)

        assert base * (1 - jitter) - 1e-9 <= delay <= base * (1 + jitter) + 1e-9

    @given(
        retry_after=st.integers(min_value=0, max_value=10_000),
        max_delay=max_delay_strategy,
    )
    @settings(max_examples=100)
    def test_retry_after_is_capped(self, retry_after: int, max_delay: float) -> None:
        """Property: A numeric Retry-After wins but never exceeds max_delay."""
        config = RetryConfig(max_delay=max_delay, jitter=0.0)

        delay = calculate_retry_delay(config, 0, str(retry_after))

        assert delay == min(float(retry_after), max_delay)


class TestRetryableStatus:
    """Property tests for status classification."""

    @given(status=st.integers(min_value=500, max_value=599))
    def test_server_errors_retry(self, status: int) -> None:
        assert should_retry_status(status)

    @given(status=st.integers(min_value=200, max_value=499).filter(lambda s: s != 429))
    def test_other_statuses_do_not_retry(self, status: int) -> None:
        assert not should_retry_status(status)


class TestExecuteWithRetry:
    """Property tests for the bounded retry loop."""

    @given(max_retries=st.integers(min_value=0, max_value=5))
    @settings(max_examples=20, deadline=None)
    def test_attempts_bounded_by_max_retries(self, max_retries: int) -> None:
        """Property: A permanently failing endpoint is tried max_retries + 1 times."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        config = RetryConfig(max_retries=max_retries, initial_delay=0.0, max_delay=0.0, jitter=0.0)

        async def run() -> None:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                executor = AsyncHTTPExecutor(client)
                try:
                    await executor.execute_with_retry("POST", "https://auth.test/token", config)
                except ApiError as e:
                    assert e.status_code == 503
                else:
                    raise AssertionError("expected ApiError")

        asyncio.run(run())

        assert calls == max_retries + 1

    @given(failures=st.integers(min_value=0, max_value=3))
    @settings(max_examples=20, deadline=None)
    def test_recovers_within_budget(self, failures: int) -> None:
        """Property: Fewer failures than the retry budget end in the real response."""
        statuses = [502] * failures + [400]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(statuses.pop(0))

        config = RetryConfig(max_retries=3, initial_delay=0.0, max_delay=0.0, jitter=0.0)

        async def run() -> int:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                response = await AsyncHTTPExecutor(client).execute_with_retry(
                    "POST", "https://auth.test/token", config
                )
                return response.status_code

        assert asyncio.run(run()) == 400
