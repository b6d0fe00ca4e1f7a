"""Live-agent hand-off handler."""

from __future__ import annotations

import structlog

from src.agent.handlers.base import IHandler
from src.models.conversation import AgentRequest, AgentResponse

logger = structlog.get_logger(logger_name=__name__)

HANDOFF_MESSAGE = "Connecting you with a human agent who can help."


class LiveAgentHandler(IHandler):
    """Hands the conversation to a human; no model call is made."""

    async def handle(self, request: AgentRequest) -> AgentResponse:
        logger.info(
            "live_agent_handoff",
            conversation_id=request.conversation_id,
            query_preview=request.query[:50],
        )
        return AgentResponse(message=HANDOFF_MESSAGE, metadata={"handoff": True})

    def get_handler_name(self) -> str:
        return "live_agent"
