"""Conversation history stores."""

from src.providers.conversations.sqlite_conversation_store import SQLiteConversationStore

__all__ = ["SQLiteConversationStore"]
