"""Handler contract and helpers shared by the intent handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import assert_never

from src.models.conversation import AgentRequest, AgentResponse, ConversationMessage
from src.models.llm import LLMMessage
from src.models.tools import ToolDuplicate, ToolFailure, ToolRunResult, ToolSuccess, ToolValidationError


class IHandler(ABC):
    """Produces the single response for one intent category."""

    @abstractmethod
    async def handle(self, request: AgentRequest) -> AgentResponse:
        """Answer *request*.  Must always return a natural-language message."""

    @abstractmethod
    def get_handler_name(self) -> str:
        """Return an identifier such as ``"knowledge"``."""


def to_llm_messages(messages: list[ConversationMessage]) -> list[LLMMessage]:
    return [LLMMessage(role=m.role.value, content=m.content) for m in messages if m.content.strip()]


def history_with_query(request: AgentRequest, window: int | None = None) -> list[LLMMessage]:
    """Conversation for the model, making sure it ends with the current query."""
    history = request.previous_messages
    if window:
        history = history[-window:]
    messages = to_llm_messages(history)
    if not messages or messages[-1].role != "user" or messages[-1].content != request.query:
        messages.append(LLMMessage(role="user", content=request.query))
    return messages


def persona_prompt(assistant_name: str) -> str:
    return f"""\
You are {assistant_name}, a friendly and professional customer support assistant.

**General Guidelines:**
- Be concise, conversational, and personable.
- Keep responses brief and friendly, avoiding detailed or technical information unless specifically asked.
- Redirect unrelated queries back to knowledge base topics with good humour.
- Avoid engaging in political discussions or expressing political opinions.

**Sign-ups:**
- If the user wants to sign up, register their interest, or be contacted, collect their first name
  and email address (one at a time), then call the `create_lead` tool exactly once.

**Response Formatting:**
- Use new lines to separate different thoughts or topics.
- Use **bold** text for emphasis on important words or phrases.

Current date: {date.today().isoformat()}"""


def create_enhanced_system_prompt(base_prompt: str, context: str) -> str:
    """Append retrieved knowledge-base context to *base_prompt* (no-op when empty)."""
    if not context or not context.strip():
        return base_prompt
    return (
        f"{base_prompt}\n\n--- KNOWLEDGE BASE CONTEXT ---\n{context}\n--- END CONTEXT ---\n\n"
        "Use the above context information to help answer the user's question, but respond in a "
        "natural, conversational way. Only use this information if it's relevant to the user's question."
    )


def lead_continuation(run: ToolRunResult) -> str:
    """Reply for a tool-augmented turn, one distinct message per lead outcome.

    When no tool ran the model's own answer is used.
    """
    outcome = run.last_outcome
    match outcome:
        case None:
            return run.text
        case ToolSuccess():
            return (
                "You're all set! I've registered your details and our team will be in touch "
                "by email shortly. Is there anything else I can help you with?"
            )
        case ToolDuplicate():
            return (
                "It looks like you're already registered with that email address, so there's no need "
                "to sign up again. Would you like me to connect you with a human agent to update "
                "your existing registration instead?"
            )
        case ToolValidationError(missing_field=field):
            label = field.replace("_", " ")
            return f"I just need a valid {label} to complete your registration. Could you share it with me?"
        case ToolFailure():
            return (
                "I'm sorry, I couldn't complete your registration right now. "
                "Would you like to try again in a moment or speak with a human agent?"
            )
        case _:
            assert_never(outcome)
