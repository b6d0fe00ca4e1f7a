"""Intent handlers: one per intent tag, each returning exactly one response."""

from src.agent.handlers.base import IHandler
from src.agent.handlers.knowledge import KnowledgeHandler
from src.agent.handlers.live_agent import LiveAgentHandler
from src.agent.handlers.small_talk import SmallTalkHandler
from src.agent.handlers.ticket_creation import TicketCreationHandler
from src.agent.handlers.transaction import TransactionHandler

__all__ = [
    "IHandler",
    "KnowledgeHandler",
    "LiveAgentHandler",
    "SmallTalkHandler",
    "TicketCreationHandler",
    "TransactionHandler",
]
