"""Freshdesk ticketing adapter.

Talks to the Freshdesk v2 REST API (``https://{domain}/api/v2``) with HTTP
basic auth, using the API key as the username and ``X`` as the password.
Freshdesk's numeric status codes are mapped onto :class:`TicketStatus`.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.interfaces.ticketing_provider import ITicketingProvider
from src.models.ticketing import TicketCreationParams, TicketResponse, TicketStatus
from src.utils.errors import ConfigurationError, TicketingError

logger = structlog.get_logger(logger_name=__name__)

_STATUS_MAP: dict[int, TicketStatus] = {
    2: TicketStatus.OPEN,
    3: TicketStatus.PENDING,
    4: TicketStatus.RESOLVED,
    5: TicketStatus.CLOSED,
}

_DEFAULT_STATUS = 2  # Open
_DEFAULT_SOURCE = 2  # Portal


def map_freshdesk_status(code: Any) -> TicketStatus:
    """Translate a Freshdesk status code; anything unrecognised is UNKNOWN."""
    try:
        return _STATUS_MAP.get(int(code), TicketStatus.UNKNOWN)
    except (TypeError, ValueError):
        return TicketStatus.UNKNOWN


class FreshdeskTicketingProvider(ITicketingProvider):
    """Creates, reads and updates tickets in a Freshdesk helpdesk."""

    def __init__(
        self,
        domain: str,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not domain or not api_key:
            raise ConfigurationError(
                message="Freshdesk domain and API key must be configured",
                provider_name="freshdesk",
            )
        self._domain = domain
        self._base_url = f"https://{domain}/api/v2"
        self._auth = httpx.BasicAuth(api_key, "X")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def create_ticket(self, params: TicketCreationParams) -> TicketResponse:
        payload = {
            "subject": params.subject,
            "description": params.body,
            "email": params.email,
            "name": params.name,
            "priority": int(params.priority),
            "status": _DEFAULT_STATUS,
            "source": _DEFAULT_SOURCE,
            "tags": list(params.tags),
            "custom_fields": dict(params.custom_fields),
        }
        logger.info("freshdesk_create_ticket", subject=params.subject)
        data = await self._request("POST", "/tickets", json=payload)
        response = self._to_ticket_response(data)
        logger.info("freshdesk_ticket_created", ticket_id=response.ticket_id, status=response.status.value)
        return response

    async def get_ticket(self, ticket_id: str) -> TicketResponse:
        data = await self._request("GET", f"/tickets/{ticket_id}")
        return self._to_ticket_response(data)

    async def update_ticket(self, ticket_id: str, updates: dict[str, Any]) -> TicketResponse:
        data = await self._request("PUT", f"/tickets/{ticket_id}", json=updates)
        logger.info("freshdesk_ticket_updated", ticket_id=ticket_id, fields=sorted(updates))
        return self._to_ticket_response(data)

    def get_provider_name(self) -> str:
        return "freshdesk"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{path}",
                json=json,
                auth=self._auth,
            )
        except httpx.HTTPError as exc:
            logger.error("freshdesk_request_failed", method=method, path=path, error=str(exc))
            raise TicketingError(
                message=f"Freshdesk API Error (500): {exc}",
                provider_name=self.get_provider_name(),
                status_code=500,
            ) from exc

        if response.is_error:
            detail = self._error_message(response)
            logger.error(
                "freshdesk_api_error",
                method=method,
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
            raise TicketingError(
                message=f"Freshdesk API Error ({response.status_code}): {detail}",
                provider_name=self.get_provider_name(),
                status_code=response.status_code,
            )
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error occurred"
        if isinstance(body, dict):
            if body.get("message"):
                return str(body["message"])
            errors = body.get("errors")
            if errors:
                return "; ".join(
                    f"{e.get('field', '?')}: {e.get('message', e.get('code', ''))}" for e in errors
                )
        return "Unknown error occurred"

    def _to_ticket_response(self, data: dict[str, Any]) -> TicketResponse:
        ticket_id = str(data.get("id", ""))
        return TicketResponse(
            ticket_id=ticket_id,
            ticket_url=f"https://{self._domain}/a/tickets/{ticket_id}" if ticket_id else None,
            status=map_freshdesk_status(data.get("status")),
            original_response=data,
        )
