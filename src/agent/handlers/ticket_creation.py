"""Ticket creation handler.

Two sub-states:

    collecting-info   extracted ticket fields are incomplete or invalid;
                      reply with a question asking only for what is missing
    ready-to-submit   every field is present; create the ticket and confirm

Ticket fields are re-extracted from the recent conversation on every turn,
so answers given across several messages accumulate naturally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.agent.handlers.base import IHandler, history_with_query
from src.models.conversation import AgentRequest, AgentResponse
from src.models.llm import GenerationParams, LLMMessage
from src.models.ticketing import (
    TicketCreationParams,
    TicketInfo,
    TicketPlatform,
    TicketPriority,
    TicketResponse,
)
from src.utils.errors import SupportDeskError

if TYPE_CHECKING:
    from src.providers.ticketing.registry import TicketingRegistry
    from src.services.model_invocation import ModelInvocationLayer

logger = structlog.get_logger(logger_name=__name__)

EXTRACTION_FAILED_FIELD = "Failed to extract ticket information"
TICKET_TAG = "ai-assistant-created"
CREATION_FAILED_MESSAGE = (
    "I'm sorry, but I encountered an issue while creating your ticket. "
    "Would you like to try again or speak with a human agent?"
)

_EXTRACTION_PROMPT = """\
Extract information for creating a support ticket from this conversation.

User Query: "{query}"

Extract the following information from the query and conversation history:
- User's full name
- User's email address
- A concise subject line that summarizes the issue
- A detailed description of the issue that provides all relevant context
- Priority level (1=Low, 2=Medium, 3=High, 4=Urgent)

If any field is missing or insufficient, set is_complete to false and list the missing fields
in missing_fields. If all required information is present, set is_complete to true.
Never invent a name or email address that the user did not give.

Guidelines for setting priority:
- Low (1): General questions, minor issues with workarounds
- Medium (2): Functional problems that impact experience but don't prevent core functions
- High (3): Issues preventing important functionality or requiring prompt attention
- Urgent (4): Critical problems affecting multiple users or presenting security risks"""

_CLARIFY_PROMPT = """\
You are a helpful assistant creating a support ticket.
The user wants to create a ticket but some information is missing.

Current information:
Name: {name}
Email: {email}
Subject: {subject}
Description: {body}

Missing fields: {missing}

Write a BRIEF, friendly message asking for ONLY the missing information.
Be conversational and natural, not like a form.
Do not ask for information that is already provided."""

_CONFIRM_PROMPT = """\
You are a helpful assistant who has just created a support ticket for a user.

Ticket information:
- Ticket ID: {ticket_id}
- Subject: {subject}
- Customer: {name}
- Email: {email}
- Priority: {priority}

Write a BRIEF, friendly confirmation message informing the user that their ticket has been created.
Include the ticket ID and when they can expect to hear back based on priority.
Be conversational and warm but concise (max 3 sentences)."""


class TicketCreationHandler(IHandler):
    """Collects ticket details over the conversation, then files the ticket."""

    def __init__(
        self,
        model: ModelInvocationLayer,
        ticketing: TicketingRegistry,
        platform: TicketPlatform = TicketPlatform.FRESHDESK,
        history_window: int = 5,
        clarify_temperature: float = 0.7,
        clarify_max_tokens: int = 250,
        confirm_max_tokens: int = 200,
    ) -> None:
        self._model = model
        self._ticketing = ticketing
        self._platform = platform
        self._history_window = history_window
        self._clarify_params = GenerationParams(temperature=clarify_temperature, max_tokens=clarify_max_tokens)
        self._confirm_params = GenerationParams(temperature=clarify_temperature, max_tokens=confirm_max_tokens)

    async def handle(self, request: AgentRequest) -> AgentResponse:
        info = await self.extract_ticket_info(request)
        missing = info.effective_missing_fields()
        if not info.is_complete or missing:
            message = await self._ask_for_missing(info, missing)
            return AgentResponse(
                message=message,
                metadata={"ticket_state": "collecting_info", "missing_fields": missing},
            )

        params = TicketCreationParams(
            name=info.name,
            email=info.email,
            subject=info.subject,
            body=info.body,
            priority=TicketPriority(info.priority),
            tags=[TICKET_TAG],
        )
        try:
            ticket = await self._ticketing.create_ticket(params, self._platform)
        except SupportDeskError as exc:
            logger.error("ticket_creation_failed", error=str(exc), subject=info.subject)
            return AgentResponse(
                message=CREATION_FAILED_MESSAGE,
                metadata={"ticket_state": "failed"},
            )

        logger.info("ticket_created", ticket_id=ticket.ticket_id, status=ticket.status.value)
        return AgentResponse(
            message=await self._confirm(ticket, params),
            metadata={
                "ticket_state": "created",
                "ticket_id": ticket.ticket_id,
                "ticket_status": ticket.status.value,
            },
        )

    async def extract_ticket_info(self, request: AgentRequest) -> TicketInfo:
        """Pull ticket fields out of the recent conversation; never raises."""
        try:
            info = await self._model.generate_structured(
                _EXTRACTION_PROMPT.format(query=request.query),
                history_with_query(request, window=self._history_window),
                TicketInfo,
                GenerationParams(temperature=0.0),
            )
        except Exception as exc:  # noqa: BLE001 - fall back to asking the user
            logger.error("ticket_info_extraction_failed", error=str(exc))
            return TicketInfo(is_complete=False, missing_fields=[EXTRACTION_FAILED_FIELD])

        logger.info("ticket_info_extracted", is_complete=info.is_complete, missing_fields=info.missing_fields)
        return info

    def get_handler_name(self) -> str:
        return "ticket_creation"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _ask_for_missing(self, info: TicketInfo, missing: list[str]) -> str:
        prompt = _CLARIFY_PROMPT.format(
            name=info.name or "Missing",
            email=info.email or "Missing",
            subject=info.subject or "Missing",
            body=info.body or "Missing",
            missing=", ".join(missing),
        )
        try:
            return await self._model.generate_text(
                prompt,
                [LLMMessage(role="user", content="Generate a message asking for the missing ticket information")],
                self._clarify_params,
            )
        except Exception as exc:  # noqa: BLE001 - canned question instead
            logger.error("ticket_clarification_failed", error=str(exc))
            message = "I'd like to help you create a support ticket, but I need more information."
            if missing:
                message += f" Could you please provide: {', '.join(missing)}?"
            return message

    async def _confirm(self, ticket: TicketResponse, params: TicketCreationParams) -> str:
        prompt = _CONFIRM_PROMPT.format(
            ticket_id=ticket.ticket_id,
            subject=params.subject,
            name=params.name,
            email=params.email,
            priority=params.priority.label,
        )
        try:
            return await self._model.generate_text(
                prompt,
                [LLMMessage(role="user", content="Generate a ticket creation confirmation message")],
                self._confirm_params,
            )
        except Exception as exc:  # noqa: BLE001 - the ticket exists; confirm plainly
            logger.error("ticket_confirmation_failed", error=str(exc), ticket_id=ticket.ticket_id)
            return (
                f"Your support ticket #{ticket.ticket_id} has been created. "
                f"Our team will get back to you at {params.email}."
            )
