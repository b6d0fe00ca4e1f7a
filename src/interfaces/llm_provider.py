"""Abstract base class for language-model providers.

One configured provider serves as the primary model and another as the
fallback; the model invocation layer
(:class:`~src.services.model_invocation.ModelInvocationLayer`) decides
which one handles each attempt.  Every provider must support three kinds
of call: free text, schema-constrained structured output, and
tool-capable generation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel

from src.models.llm import GenerationParams, LLMMessage, LLMToolResponse, ToolSpec

_SchemaT = TypeVar("_SchemaT", bound=BaseModel)


# Concrete implementations: OpenAILLMProvider (primary), AnthropicLLMProvider (fallback)
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for a single language-model endpoint."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        params: GenerationParams | None = None,
    ) -> str:
        """Generate a free-text reply.

        Parameters
        ----------
        system_prompt:
            Instruction text that sets the model's behaviour.
        messages:
            Conversation history, oldest first.
        params:
            Sampling parameters; provider defaults apply when ``None``.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns no text.  ``transient`` is set
            for timeouts, rate limits and overloaded upstreams.
        """

    @abstractmethod
    async def complete_structured(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        schema: type[_SchemaT],
        params: GenerationParams | None = None,
    ) -> _SchemaT:
        """Generate an object that validates against *schema*.

        Raises
        ------
        src.utils.errors.LLMError
            If the call fails or the output does not validate.
        """

    @abstractmethod
    async def complete_with_tools(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        tools: list[ToolSpec],
        params: GenerationParams | None = None,
        tool_choice: str = "auto",
    ) -> LLMToolResponse:
        """Run one round of tool-capable generation.

        The response carries either text, requested tool calls, or both.
        Tool execution is the caller's job; this method never runs tools.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"openai"`` or ``"anthropic"``."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model this provider sends requests to."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
