"""supportDesk domain models — re-exports all public model classes.

Submodules by concern:
    - documents.py    — documents, chunks, embedding records, search results
    - conversation.py — messages, intents, agent request/response
    - tools.py        — tagged tool outcomes and invocation records
    - ticketing.py    — ticket parameters, statuses, extracted ticket info
    - llm.py          — provider-neutral model-call shapes
"""

from __future__ import annotations

from src.models.conversation import (
    AgentRequest,
    AgentResponse,
    ConversationMessage,
    IntentClassification,
    IntentType,
    MessageRole,
    TransactionClassification,
    TransactionType,
)
from src.models.documents import (
    Chunk,
    Document,
    DocumentStatus,
    EmbeddingRecord,
    EmbeddingResult,
    IngestionOutcome,
    RetrievalResult,
    SearchResult,
)
from src.models.llm import GenerationParams, LLMMessage, LLMToolResponse, ToolCall, ToolSpec
from src.models.ticketing import (
    TicketCreationParams,
    TicketInfo,
    TicketPlatform,
    TicketPriority,
    TicketResponse,
    TicketStatus,
)
from src.models.tools import (
    ToolDuplicate,
    ToolFailure,
    ToolInvocation,
    ToolOutcome,
    ToolRunResult,
    ToolSuccess,
    ToolValidationError,
)

__all__ = [
    "AgentRequest",
    "AgentResponse",
    "Chunk",
    "ConversationMessage",
    "Document",
    "DocumentStatus",
    "EmbeddingRecord",
    "EmbeddingResult",
    "GenerationParams",
    "IngestionOutcome",
    "IntentClassification",
    "IntentType",
    "LLMMessage",
    "LLMToolResponse",
    "MessageRole",
    "RetrievalResult",
    "SearchResult",
    "TicketCreationParams",
    "TicketInfo",
    "TicketPlatform",
    "TicketPriority",
    "TicketResponse",
    "TicketStatus",
    "ToolCall",
    "ToolDuplicate",
    "ToolFailure",
    "ToolInvocation",
    "ToolOutcome",
    "ToolRunResult",
    "ToolSpec",
    "ToolSuccess",
    "ToolValidationError",
    "TransactionClassification",
    "TransactionType",
]
