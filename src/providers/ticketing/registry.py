"""Registry selecting a ticketing adapter by platform."""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from src.interfaces.ticketing_provider import ITicketingProvider
from src.models.ticketing import TicketCreationParams, TicketPlatform, TicketResponse
from src.utils.errors import ConfigurationError, TicketingError

logger = structlog.get_logger(logger_name=__name__)


class TicketingRegistry:
    """Holds one adapter per :class:`TicketPlatform`.

    Built explicitly at startup and injected into the ticket handler.
    """

    def __init__(self, default_platform: TicketPlatform = TicketPlatform.FRESHDESK) -> None:
        self._adapters: dict[TicketPlatform, ITicketingProvider] = {}
        self._default_platform = default_platform

    def register(self, platform: TicketPlatform, adapter: ITicketingProvider) -> None:
        self._adapters[platform] = adapter

    def get(self, platform: TicketPlatform | None = None) -> ITicketingProvider:
        platform = platform or self._default_platform
        adapter = self._adapters.get(platform)
        if adapter is None:
            raise ConfigurationError(message=f"Ticketing adapter '{platform.value}' is not available")
        return adapter

    def is_available(self, platform: TicketPlatform | None = None) -> bool:
        return (platform or self._default_platform) in self._adapters

    async def create_ticket(
        self,
        params: TicketCreationParams | dict,
        platform: TicketPlatform | None = None,
    ) -> TicketResponse:
        """Validate *params* and create the ticket on *platform*."""
        if not isinstance(params, TicketCreationParams):
            try:
                params = TicketCreationParams.model_validate(params)
            except ValidationError as exc:
                messages = ", ".join(err["msg"] for err in exc.errors())
                logger.error("ticket_validation_failed", errors=messages)
                raise TicketingError(message=f"Ticket validation failed: {messages}") from exc
        return await self.get(platform).create_ticket(params)
