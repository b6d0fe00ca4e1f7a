"""Bounded retry combinator for unreliable external calls.

A call site describes a single attempt as a function ``attempt(n)`` that
returns an :data:`AttemptResult` instead of raising: :class:`AttemptOk`
wraps the value, :class:`AttemptFailed` wraps the exception.
:func:`retry_bounded` then drives attempts 1..N strictly one after the
other, stopping at the first success, at the first non-retryable failure,
or when the budget is spent.  Keeping the transport call and the retry
policy apart lets each be tested on its own.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar, Union

import structlog

from src.utils.errors import LLMError, ModelInvocationError

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

# Lower-cased substrings that mark an error message as worth retrying.
TRANSIENT_ERROR_SIGNATURES: tuple[str, ...] = (
    "rate limit",
    "timeout",
    "timed out",
    "overloaded",
    "capacity",
    "unavailable",
    "try again",
    "too many requests",
    "429",
    "503",
    "504",
)


@dataclass(frozen=True)
class AttemptOk(Generic[_T]):
    """A successful attempt and the value it produced."""

    value: _T


@dataclass(frozen=True)
class AttemptFailed:
    """A failed attempt and the error it raised."""

    error: BaseException
    provider_name: str | None = None


AttemptResult = Union[AttemptOk[_T], AttemptFailed]


def is_transient_error(error: BaseException) -> bool:
    """Return ``True`` when *error* looks like a temporary upstream problem."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return True
    if isinstance(error, LLMError) and error.transient:
        return True
    text = str(error).lower()
    return any(signature in text for signature in TRANSIENT_ERROR_SIGNATURES)


async def capture(
    call: Callable[[], Awaitable[_T]],
    provider_name: str | None = None,
    timeout: float | None = None,
) -> AttemptResult[_T]:
    """Await *call* and fold its outcome into an :data:`AttemptResult`.

    A *timeout* (seconds) bounds the call; expiry becomes an
    ``asyncio.TimeoutError`` failure, which is classified as transient.
    """
    try:
        if timeout is not None:
            value = await asyncio.wait_for(call(), timeout=timeout)
        else:
            value = await call()
    except Exception as exc:  # noqa: BLE001 - folded into the result type
        return AttemptFailed(error=exc, provider_name=provider_name)
    return AttemptOk(value=value)


async def retry_bounded(
    attempt: Callable[[int], Awaitable[AttemptResult[_T]]],
    max_attempts: int,
    should_retry: Callable[[BaseException], bool] = is_transient_error,
    operation: str = "call",
) -> _T:
    """Drive ``attempt(1)``, ``attempt(2)``, ... until one succeeds.

    Parameters
    ----------
    attempt:
        Async function of the 1-based attempt number.  Must not raise; it
        reports failures through :class:`AttemptFailed`.
    max_attempts:
        Total number of attempts allowed (at least one is always made).
    should_retry:
        Predicate deciding whether a failure may consume another attempt.
    operation:
        Label used in log events and the terminal error message.

    Returns
    -------
    The value of the first successful attempt.

    Raises
    ------
    ModelInvocationError
        When a failure is not retryable or every attempt has failed.  The
        last underlying error is chained as ``__cause__``.
    """
    max_attempts = max(1, max_attempts)
    attempt_no = 0
    last_failure: AttemptFailed | None = None

    while attempt_no < max_attempts:
        attempt_no += 1
        result = await attempt(attempt_no)
        if isinstance(result, AttemptOk):
            return result.value

        last_failure = result
        retryable = should_retry(result.error)
        logger.warning(
            "attempt_failed",
            operation=operation,
            attempt=attempt_no,
            max_attempts=max_attempts,
            provider=result.provider_name,
            retryable=retryable,
            error=str(result.error),
        )
        if not retryable:
            break

    assert last_failure is not None
    raise ModelInvocationError(
        message=f"{operation} failed after {attempt_no} attempt(s): {last_failure.error}",
        provider_name=last_failure.provider_name,
        attempts=attempt_no,
    ) from last_failure.error
