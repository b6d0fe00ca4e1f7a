"""Abstract base class for CRM lead providers used by the lead tool."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: ZohoLeadProvider, SQLiteLeadProvider
# Located in: src/providers/crm/
class ILeadProvider(ABC):
    """Contract for looking up and creating sales leads."""

    @abstractmethod
    async def find_lead_by_email(self, email: str) -> str | None:
        """Return the id of an existing lead with *email*, or ``None``.

        Email comparison is case-insensitive.

        Raises
        ------
        src.utils.errors.CRMError
            If the lookup itself fails.
        """

    @abstractmethod
    async def create_lead(self, first_name: str, last_name: str, email: str) -> str:
        """Create a lead and return its id.

        Raises
        ------
        src.utils.errors.CRMError
            If the CRM rejects the lead or is unreachable.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"zoho"``."""
