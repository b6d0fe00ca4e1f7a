"""Knowledge handler: answers questions from the knowledge base only.

When retrieval finds nothing the handler says so outright instead of
letting the model improvise an answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.agent.handlers.base import IHandler, history_with_query, lead_continuation, persona_prompt
from src.models.conversation import AgentRequest, AgentResponse
from src.models.llm import GenerationParams

if TYPE_CHECKING:
    from src.agent.tools.base import ToolRegistry
    from src.services.model_invocation import ModelInvocationLayer
    from src.services.retrieval_service import RetrievalService

logger = structlog.get_logger(logger_name=__name__)

NO_ANSWER_MESSAGE = (
    "I'm sorry, but I can't answer that question because I don't have any information about it "
    "in my knowledge base. Is there something else I can help you with, or would you like to "
    "speak with a human agent?"
)

_KNOWLEDGE_RULES = """

**Knowledge Base Interaction:**
- Only answer questions based on the provided context. If the context doesn't provide enough
  information, clearly state that you cannot provide an answer.
- Never invent facts, prices, dates or links that are not in the context.

**Context from Knowledge Base:**
"""


class KnowledgeHandler(IHandler):
    def __init__(
        self,
        model: ModelInvocationLayer,
        retrieval: RetrievalService,
        tools: ToolRegistry,
        assistant_name: str = "Support Assistant",
        temperature: float = 0.3,
        max_tokens: int | None = 1000,
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
        if not retrieved.has_relevant_information:
            logger.info("knowledge_no_relevant_information", knowledge_base_id=request.knowledge_base_id)
            return AgentResponse(message=NO_ANSWER_MESSAGE, metadata={"has_relevant_information": False})

        system_prompt = persona_prompt(self._assistant_name) + _KNOWLEDGE_RULES + retrieved.relevant_context
        run = await self._model.generate_with_tools(
            system_prompt,
            history_with_query(request),
            self._tools,
            self._params,
        )
        return AgentResponse(
            message=lead_continuation(run),
            metadata={
                "has_relevant_information": True,
                "sources": [
                    {"document_id": r.document_id, "chunk_id": r.chunk_id, "score": round(r.score, 4)}
                    for r in retrieved.results
                ],
                "tools": [inv.tool_name for inv in run.invocations],
            },
        )

    def get_handler_name(self) -> str:
        return "knowledge"
