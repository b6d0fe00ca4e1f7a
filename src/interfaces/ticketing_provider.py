"""Abstract base class for ticketing platforms.

Adapters translate :class:`TicketCreationParams` into the platform's API
and map its status codes onto the closed :class:`TicketStatus` vocabulary
(Open / Pending / Resolved / Closed / Unknown).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.ticketing import TicketCreationParams, TicketResponse


# Concrete implementation: FreshdeskTicketingProvider (src/providers/ticketing/)
class ITicketingProvider(ABC):
    """Contract for creating and reading support tickets."""

    @abstractmethod
    async def create_ticket(self, params: TicketCreationParams) -> TicketResponse:
        """Create a ticket.

        Raises
        ------
        src.utils.errors.TicketingError
            If the platform rejects the request or cannot be reached.
        """

    @abstractmethod
    async def get_ticket(self, ticket_id: str) -> TicketResponse:
        """Fetch a ticket by id."""

    @abstractmethod
    async def update_ticket(self, ticket_id: str, updates: dict[str, Any]) -> TicketResponse:
        """Apply platform-specific field updates to a ticket."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"freshdesk"``."""
