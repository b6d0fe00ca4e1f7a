"""Zoho CRM lead provider.

Authenticates with a long-lived refresh token, exchanging it for a
short-lived access token which is cached until shortly before it expires.
Leads are looked up with ``GET /Leads/search?email=`` (Zoho answers 204 when
nothing matches) and created with ``POST /Leads``.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from src.config.settings import Settings
from src.interfaces.lead_provider import ILeadProvider
from src.utils.errors import CRMError

logger = structlog.get_logger(logger_name=__name__)

_LEAD_SOURCE = "Website Chat"
# Refresh the access token this many seconds before Zoho says it expires.
_TOKEN_EXPIRY_MARGIN = 60.0
_DEFAULT_TOKEN_TTL = 3600.0


class ZohoLeadProvider(ILeadProvider):
    """Creates and looks up leads through the Zoho CRM v2 REST API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._client_id = settings.zoho_client_id
        self._client_secret = settings.zoho_client_secret
        self._refresh_token = settings.zoho_refresh_token
        self._accounts_url = settings.zoho_accounts_url
        self._base_url = settings.zoho_api_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    # -- Auth ------------------------------------------------------------------

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        try:
            response = await self._http.post(
                self._accounts_url,
                data={
                    "refresh_token": self._refresh_token,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "refresh_token",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.error("zoho_token_refresh_failed", error=str(exc))
            raise CRMError(
                message="Failed to get Zoho access token",
                provider_name=self.get_provider_name(),
            ) from exc

        token = payload.get("access_token")
        if not token:
            raise CRMError(
                message=f"Zoho token response missing access_token: {payload.get('error', 'unknown')}",
                provider_name=self.get_provider_name(),
            )
        ttl = float(payload.get("expires_in") or _DEFAULT_TOKEN_TTL)
        self._access_token = token
        self._token_expires_at = time.monotonic() + max(ttl - _TOKEN_EXPIRY_MARGIN, 0.0)
        logger.info("zoho_access_token_refreshed")
        return token

    async def _headers(self) -> dict[str, str]:
        token = await self._get_access_token()
        return {"Authorization": f"Zoho-oauthtoken {token}"}

    # -- ILeadProvider ---------------------------------------------------------

    async def find_lead_by_email(self, email: str) -> str | None:
        try:
            response = await self._http.get(
                f"{self._base_url}/Leads/search",
                params={"email": email.strip()},
                headers=await self._headers(),
            )
            if response.status_code == 204:
                return None
            response.raise_for_status()
            records: list[dict[str, Any]] = response.json().get("data") or []
            wanted = email.strip().lower()
            for record in records:
                if str(record.get("Email", "")).lower() == wanted:
                    return str(record["id"])
        except (httpx.HTTPError, KeyError, ValueError, AttributeError) as exc:
            logger.error("zoho_lead_search_failed", error=str(exc))
            raise CRMError(
                message=f"Zoho lead search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return None

    async def create_lead(self, first_name: str, last_name: str, email: str) -> str:
        body = {
            "data": [
                {
                    "Last_Name": last_name,
                    "First_Name": first_name,
                    "Email": email.strip(),
                    "Lead_Source": _LEAD_SOURCE,
                }
            ]
        }
        try:
            response = await self._http.post(
                f"{self._base_url}/Leads",
                json=body,
                headers=await self._headers(),
            )
            response.raise_for_status()
            entry = response.json()["data"][0]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            logger.error("zoho_create_lead_failed", error=str(exc))
            raise CRMError(
                message="Failed to create lead",
                provider_name=self.get_provider_name(),
            ) from exc

        # Zoho reports per-record errors inside a 2xx envelope.
        if str(entry.get("status", "success")).lower() != "success":
            raise CRMError(
                message=f"Zoho rejected lead: {entry.get('message', entry.get('code', 'unknown'))}",
                provider_name=self.get_provider_name(),
            )

        lead_id = str(entry.get("details", {}).get("id") or entry.get("id", ""))
        logger.info("zoho_lead_created", lead_id=lead_id)
        return lead_id

    def get_provider_name(self) -> str:
        return "zoho"
