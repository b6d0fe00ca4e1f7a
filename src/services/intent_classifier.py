"""Intent classifier: decides which handler answers a user message.

Asks the model for an :class:`IntentClassification` (structured output)
from the query plus the last few turns of history.  Classification never
raises.  If the model call fails or its output does not validate, the
result degrades to ``FAQ`` so the orchestrator always has a tag to route on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.conversation import ConversationMessage, IntentClassification, IntentType
from src.models.llm import GenerationParams, LLMMessage

if TYPE_CHECKING:
    from src.services.model_invocation import ModelInvocationLayer

logger = structlog.get_logger(logger_name=__name__)

CLASSIFICATION_FAILED_REASONING = "classification failed, defaulting to FAQ"

_SYSTEM_PROMPT = """\
You classify the intent of messages sent to a customer-support assistant.
Choose exactly one intent:

- AGENT_REQUEST: the user explicitly asks for a human or live agent, shows
  clear frustration or anger, or repeatedly says the assistant is not helping.
- TRANSACTION: the user wants to perform an account action such as
  registering, cancelling, or changing a booking or enrollment.
- TICKET_CREATION: the user reports a problem that needs follow-up by the
  support team, or asks to open, file or log a support ticket.
- FAQ: the user asks a question about the organisation, its products,
  services, programs, policies or procedures.
- SMALL_TALK: greetings, thanks, pleasantries and other casual conversation.

Guidelines:
1. AGENT_REQUEST takes priority over every other intent.
2. Use the conversation history to resolve short follow-ups ("yes", "the
   second one") to the intent of the ongoing exchange.
3. When unsure between FAQ and SMALL_TALK, prefer FAQ.

Give a one-sentence reasoning for your choice."""


def format_history(messages: list[ConversationMessage]) -> str:
    return "\n".join(f"{m.role.value}: {m.content}" for m in messages)


class IntentClassifier:
    """Structured-output intent classification with a safe default."""

    def __init__(self, model: ModelInvocationLayer, history_window: int = 6) -> None:
        self._model = model
        self._history_window = max(0, history_window)

    async def classify(
        self,
        query: str,
        history: list[ConversationMessage],
    ) -> IntentClassification:
        recent = history[-self._history_window :] if self._history_window else []
        prompt = (
            f'User Query: "{query}"\n\n'
            f"Recent conversation history:\n{format_history(recent) or '(none)'}"
        )
        try:
            result = await self._model.generate_structured(
                _SYSTEM_PROMPT,
                [LLMMessage(role="user", content=prompt)],
                IntentClassification,
                GenerationParams(temperature=0.0),
            )
        except Exception as exc:  # noqa: BLE001 - classification must never raise
            logger.error("intent_classification_failed", error=str(exc))
            return IntentClassification(
                reasoning=CLASSIFICATION_FAILED_REASONING,
                intent_type=IntentType.FAQ,
            )

        logger.info(
            "intent_classified",
            intent=result.intent_type.value,
            reasoning=result.reasoning[:120],
        )
        return result
