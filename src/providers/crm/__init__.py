"""CRM lead provider implementations."""

from src.providers.crm.sqlite_lead_provider import SQLiteLeadProvider
from src.providers.crm.zoho_provider import ZohoLeadProvider

__all__ = ["SQLiteLeadProvider", "ZohoLeadProvider"]
