"""Bounded-concurrency helpers for batch work.

The embedding generator fans a document's batches out through
:func:`throttled_gather`; a semaphore sized from
``Settings.embedding_concurrency`` caps how many batches talk to the
embedding provider at once (``1`` means strictly sequential).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    limit: int = 1,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``limit`` at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    semaphore:
        Optional shared semaphore.  When omitted a fresh one sized by
        *limit* is created for this call only.
    limit:
        Concurrency cap used when no *semaphore* is supplied.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input awaitables.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(max(1, limit))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros),
        return_exceptions=return_exceptions,
    )
