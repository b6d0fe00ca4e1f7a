"""Abstract base class for key-value cache providers.

Used by the embedding generator to memoise query embeddings.  Implementations
may keep entries in process memory or in a shared backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for key-value cache services."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* using the provider's expiry policy."""
