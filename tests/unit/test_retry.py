"""Unit tests for the bounded retry combinator."""

from __future__ import annotations

import asyncio

import pytest

from src.utils.errors import LLMError, ModelInvocationError
from src.utils.retry import AttemptFailed, AttemptOk, capture, is_transient_error, retry_bounded


class TestIsTransientError:
    @pytest.mark.parametrize(
        "error",
        [
            asyncio.TimeoutError(),
            LLMError(message="boom", transient=True),
            RuntimeError("Rate limit exceeded, please slow down"),
            RuntimeError("HTTP 503 Service Unavailable"),
            RuntimeError("The server is overloaded"),
        ],
    )
    def test_transient(self, error) -> None:
        assert is_transient_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("invalid JSON schema"),
            LLMError(message="Invalid API key"),
            KeyError("content"),
        ],
    )
    def test_not_transient(self, error) -> None:
        assert is_transient_error(error) is False


class TestCapture:
    @pytest.mark.asyncio
    async def test_success_is_wrapped(self) -> None:
        async def ok() -> int:
            return 42

        result = await capture(ok)
        assert result == AttemptOk(value=42)

    @pytest.mark.asyncio
    async def test_exception_is_wrapped(self) -> None:
        async def bad() -> int:
            raise RuntimeError("nope")

        result = await capture(bad, provider_name="openai")
        assert isinstance(result, AttemptFailed)
        assert result.provider_name == "openai"
        assert str(result.error) == "nope"

    @pytest.mark.asyncio
    async def test_timeout_becomes_transient_failure(self) -> None:
        async def slow() -> int:
            await asyncio.sleep(1)
            return 1

        result = await capture(slow, timeout=0.01)
        assert isinstance(result, AttemptFailed)
        assert is_transient_error(result.error)


class TestRetryBounded:
    @pytest.mark.asyncio
    async def test_stops_at_first_success(self) -> None:
        seen: list[int] = []

        async def attempt(n: int):
            seen.append(n)
            return AttemptOk(value=f"attempt {n}")

        assert await retry_bounded(attempt, max_attempts=3) == "attempt 1"
        assert seen == [1]

    @pytest.mark.asyncio
    async def test_transient_failure_gets_another_attempt(self) -> None:
        seen: list[int] = []

        async def attempt(n: int):
            seen.append(n)
            if n == 1:
                return AttemptFailed(error=RuntimeError("timeout"))
            return AttemptOk(value="second")

        assert await retry_bounded(attempt, max_attempts=2) == "second"
        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_non_retryable_failure_stops_immediately(self) -> None:
        seen: list[int] = []

        async def attempt(n: int):
            seen.append(n)
            return AttemptFailed(error=ValueError("bad request"), provider_name="openai")

        with pytest.raises(ModelInvocationError) as exc_info:
            await retry_bounded(attempt, max_attempts=3, operation="generate_text")

        assert seen == [1]
        assert exc_info.value.attempts == 1
        assert exc_info.value.provider_name == "openai"
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_budget_is_never_exceeded(self) -> None:
        seen: list[int] = []

        async def attempt(n: int):
            seen.append(n)
            return AttemptFailed(error=RuntimeError("rate limit"))

        with pytest.raises(ModelInvocationError) as exc_info:
            await retry_bounded(attempt, max_attempts=3)

        assert seen == [1, 2, 3]
        assert exc_info.value.attempts == 3

    @pytest.mark.asyncio
    async def test_at_least_one_attempt(self) -> None:
        async def attempt(n: int):
            return AttemptOk(value=n)

        assert await retry_bounded(attempt, max_attempts=0) == 1
