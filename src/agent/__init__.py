"""Conversational agent: orchestrator, intent handlers and model-callable tools."""

from src.agent.orchestrator import ConversationOrchestrator

__all__ = ["ConversationOrchestrator"]
