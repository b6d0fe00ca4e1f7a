"""Transaction handler: points users at the right self-service page.

Sub-classifies the request into registration, cancellation or modification
and answers with a canned, intent-specific instruction carrying the
configured link.  Anything it cannot place is offered a human agent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

import structlog

from src.agent.handlers.base import IHandler
from src.models.conversation import (
    AgentRequest,
    AgentResponse,
    TransactionClassification,
    TransactionType,
)
from src.models.llm import GenerationParams, LLMMessage
from src.services.intent_classifier import format_history

if TYPE_CHECKING:
    from src.services.model_invocation import ModelInvocationLayer

logger = structlog.get_logger(logger_name=__name__)

UNSURE_MESSAGE = (
    "I'm not sure how to process that transaction. "
    "Would you like me to connect you with a human agent who can help?"
)

_SYSTEM_PROMPT = """\
Classify the transaction the user is asking for.

Classification rules:
- REGISTRATION: the user wants to register, sign up, join, enroll, or participate
- CANCELLATION: the user wants to cancel, withdraw, stop, or end their participation
- MODIFICATION: the user wants to change, modify, update, or alter an existing registration
- OTHER: the request doesn't clearly fit any of the above categories"""


class TransactionHandler(IHandler):
    def __init__(
        self,
        model: ModelInvocationLayer,
        registration_url: str,
        cancellation_url: str,
        modification_url: str,
        history_window: int = 4,
    ) -> None:
        self._model = model
        self._registration_url = registration_url
        self._cancellation_url = cancellation_url
        self._modification_url = modification_url
        self._history_window = history_window

    async def handle(self, request: AgentRequest) -> AgentResponse:
        transaction_type = await self.classify(request)
        return AgentResponse(
            message=self.message_for(transaction_type),
            metadata={"transaction_type": transaction_type.value},
        )

    async def classify(self, request: AgentRequest) -> TransactionType:
        """Sub-classify the request; ``OTHER`` when the model cannot be reached."""
        recent = request.previous_messages[-self._history_window :] if self._history_window else []
        prompt = (
            f'User Query: "{request.query}"\n\n'
            f"Recent conversation:\n{format_history(recent) or '(none)'}"
        )
        try:
            result = await self._model.generate_structured(
                _SYSTEM_PROMPT,
                [LLMMessage(role="user", content=prompt)],
                TransactionClassification,
                GenerationParams(temperature=0.0),
            )
        except Exception as exc:  # noqa: BLE001 - degrade to OTHER
            logger.error("transaction_classification_failed", error=str(exc))
            return TransactionType.OTHER

        logger.info("transaction_classified", transaction_type=result.transaction_type.value)
        return result.transaction_type

    def message_for(self, transaction_type: TransactionType) -> str:
        match transaction_type:
            case TransactionType.REGISTRATION:
                return (
                    f"To register, please visit {self._registration_url}. You'll need to provide your "
                    "contact information and choose the option that suits you. Would you like any "
                    "specific information about the registration process?"
                )
            case TransactionType.CANCELLATION:
                return (
                    f"To cancel your registration, please visit {self._cancellation_url} and follow the "
                    "instructions. You'll need your registration ID and email. Please note that a "
                    "cancellation policy may apply depending on timing."
                )
            case TransactionType.MODIFICATION:
                return (
                    f"To modify your registration details, please visit {self._modification_url} and "
                    "log in with your registration ID and email. From there you can update your "
                    "information or change your options if available."
                )
            case TransactionType.OTHER:
                return UNSURE_MESSAGE
            case _:
                assert_never(transaction_type)

    def get_handler_name(self) -> str:
        return "transaction"
