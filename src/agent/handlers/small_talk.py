"""Small-talk handler: short, friendly replies with optional on-topic facts.

Retrieval here is best effort: whatever context the retrieval service finds
is folded into the prompt, and an empty result changes nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.agent.handlers.base import (
    IHandler,
    create_enhanced_system_prompt,
    history_with_query,
    lead_continuation,
    persona_prompt,
)
from src.models.conversation import AgentRequest, AgentResponse
from src.models.llm import GenerationParams

if TYPE_CHECKING:
    from src.agent.tools.base import ToolRegistry
    from src.services.model_invocation import ModelInvocationLayer
    from src.services.retrieval_service import RetrievalService

logger = structlog.get_logger(logger_name=__name__)


class SmallTalkHandler(IHandler):
    def __init__(
        self,
        model: ModelInvocationLayer,
        retrieval: RetrievalService,
        tools: ToolRegistry,
        assistant_name: str = "Support Assistant",
        temperature: float = 0.7,
        max_tokens: int = 150,
        retrieval_limit: int = 5,
    ) -> None:
        self._model = model
        self._retrieval = retrieval
        self._tools = tools
        self._assistant_name = assistant_name
        self._params = GenerationParams(temperature=temperature, max_tokens=max_tokens)
        self._retrieval_limit = retrieval_limit

    async def handle(self, request: AgentRequest) -> AgentResponse:
        retrieved = await self._retrieval.retrieve(
            request.query, request.knowledge_base_id, limit=self._retrieval_limit
        )
        context = retrieved.relevant_context
        logger.debug("small_talk_context", used_context=bool(context))

        system_prompt = create_enhanced_system_prompt(persona_prompt(self._assistant_name), context)
        run = await self._model.generate_with_tools(
            system_prompt,
            history_with_query(request),
            self._tools,
            self._params,
        )
        return AgentResponse(
            message=lead_continuation(run),
            metadata={
                "used_context": bool(context),
                "tools": [inv.tool_name for inv in run.invocations],
            },
        )

    def get_handler_name(self) -> str:
        return "small_talk"
