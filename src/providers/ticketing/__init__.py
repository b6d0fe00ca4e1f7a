"""Ticketing platform adapters."""

from src.providers.ticketing.freshdesk_provider import FreshdeskTicketingProvider, map_freshdesk_status
from src.providers.ticketing.registry import TicketingRegistry

__all__ = ["FreshdeskTicketingProvider", "TicketingRegistry", "map_freshdesk_status"]
