"""Conversation orchestrator: classify once, dispatch once.

Each inbound message moves through three states:

    received  ->  classified (one IntentType)  ->  response emitted

The transition from ``classified`` to a handler is a single exhaustive
``match`` over :class:`IntentType`; the handler's response is final and the
intent is never re-evaluated within the same turn.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, assert_never

import structlog

from src.models.conversation import AgentRequest, AgentResponse, IntentType

if TYPE_CHECKING:
    from src.agent.handlers.base import IHandler
    from src.services.intent_classifier import IntentClassifier

logger = structlog.get_logger(logger_name=__name__)

APOLOGY_MESSAGE = (
    "I'm sorry, but I ran into a problem while handling your message. "
    "Please try again in a moment, or ask to speak with a human agent."
)


class ConversationOrchestrator:
    """Routes one user message to the handler for its intent.

    Parameters
    ----------
    classifier:
        Produces the intent tag; never raises.
    live_agent, small_talk, knowledge, transaction, ticket:
        One handler per intent.  ``FAQ`` is answered by *knowledge*.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        live_agent: IHandler,
        small_talk: IHandler,
        knowledge: IHandler,
        transaction: IHandler,
        ticket: IHandler,
    ) -> None:
        self._classifier = classifier
        self._live_agent = live_agent
        self._small_talk = small_talk
        self._knowledge = knowledge
        self._transaction = transaction
        self._ticket = ticket

    def handler_for(self, intent: IntentType) -> IHandler:
        match intent:
            case IntentType.AGENT_REQUEST:
                return self._live_agent
            case IntentType.SMALL_TALK:
                return self._small_talk
            case IntentType.FAQ:
                return self._knowledge
            case IntentType.TRANSACTION:
                return self._transaction
            case IntentType.TICKET_CREATION:
                return self._ticket
            case _:
                assert_never(intent)

    async def process(self, request: AgentRequest) -> AgentResponse:
        """Answer one user message.  Always returns a natural-language message."""
        start = time.perf_counter()
        classification = await self._classifier.classify(request.query, request.previous_messages)
        handler = self.handler_for(classification.intent_type)

        try:
            response = await handler.handle(request)
        except Exception as exc:  # noqa: BLE001 - the user always gets a reply
            logger.exception(
                "handler_failed",
                handler=handler.get_handler_name(),
                intent=classification.intent_type.value,
                error=str(exc),
            )
            response = AgentResponse(message=APOLOGY_MESSAGE, metadata={"error": True})

        metadata = dict(response.metadata or {})
        metadata["intent"] = classification.intent_type.value
        metadata["reasoning"] = classification.reasoning
        metadata["handler"] = handler.get_handler_name()

        logger.info(
            "message_processed",
            conversation_id=request.conversation_id,
            intent=classification.intent_type.value,
            handler=handler.get_handler_name(),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return AgentResponse(message=response.message, metadata=metadata)
