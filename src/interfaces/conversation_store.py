"""Abstract base class for conversation-history persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.conversation import ConversationMessage


# Concrete implementation: SQLiteConversationStore (src/providers/conversations/)
class IConversationStore(ABC):
    """Append-only message log keyed by conversation id.

    Messages are returned in the order they were appended and are never
    reordered.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables if needed."""

    @abstractmethod
    async def append_messages(
        self,
        conversation_id: str,
        knowledge_base_id: str,
        messages: list[ConversationMessage],
    ) -> int:
        """Append *messages* in order.  Returns the number written."""

    @abstractmethod
    async def get_messages(self, conversation_id: str) -> list[ConversationMessage]:
        """Return every message of the conversation in arrival order."""
