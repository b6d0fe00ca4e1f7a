"""Conversation models: messages, intents, and the agent request/response pair."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(BaseModel):
    """One turn in a conversation, appended in arrival order."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] | None = None


class IntentType(str, Enum):
    """Closed set of intents the orchestrator routes on."""

    AGENT_REQUEST = "AGENT_REQUEST"
    TRANSACTION = "TRANSACTION"
    TICKET_CREATION = "TICKET_CREATION"
    FAQ = "FAQ"
    SMALL_TALK = "SMALL_TALK"


class IntentClassification(BaseModel):
    """Classifier verdict for one inbound user message.

    Also used as the structured-output schema handed to the model, so the
    field descriptions double as instructions.
    """

    model_config = ConfigDict(frozen=True)

    reasoning: str = Field(description="Explanation of why this classification was chosen.")
    intent_type: IntentType = Field(description="The type of intent detected in the user query.")


class TransactionType(str, Enum):
    REGISTRATION = "REGISTRATION"
    CANCELLATION = "CANCELLATION"
    MODIFICATION = "MODIFICATION"
    OTHER = "OTHER"


class TransactionClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction_type: TransactionType = Field(
        description="The type of transaction requested by the user."
    )


class AgentRequest(BaseModel):
    """The unit of work passed through the orchestrator."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(min_length=1)
    previous_messages: list[ConversationMessage] = Field(default_factory=list)
    knowledge_base_id: str = Field(min_length=1)
    conversation_id: str | None = None


class AgentResponse(BaseModel):
    """The unit of work returned to the caller: always a natural-language message."""

    model_config = ConfigDict(frozen=True)

    message: str
    metadata: dict[str, Any] | None = None
