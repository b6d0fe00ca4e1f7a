"""In-memory cache provider using cachetools.TTLCache.

Used to memoise query embeddings so a repeated question is not re-embedded
within the TTL.  Single-process only; swap in a shared backend via
:class:`ICacheProvider` when running several workers.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from src.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Time-to-live in seconds applied to every entry.
    """

    def __init__(self, max_size: int = 512, ttl: int = 3600) -> None:
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any) -> None:
        self._cache[key] = value
