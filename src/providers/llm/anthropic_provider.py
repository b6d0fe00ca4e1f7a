"""Anthropic LLM provider adapter (fallback model).

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Key differences from the OpenAI adapter:
    - The system prompt is a top-level parameter; ``system`` messages in
      the history are folded into it.
    - ``max_tokens`` is mandatory on every request.
    - Structured output is produced by forcing a single tool whose input
      schema is the pydantic model, then validating the tool input.
    - Tool results go back as ``tool_result`` blocks inside a user turn,
      and consecutive user turns must be merged.
"""

from __future__ import annotations

from typing import Any, TypeVar

import anthropic
import structlog
from pydantic import BaseModel, ValidationError

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.llm import GenerationParams, LLMMessage, LLMToolResponse, ToolCall, ToolSpec
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_SchemaT = TypeVar("_SchemaT", bound=BaseModel)

_DEFAULT_MAX_TOKENS = 1024

_TRANSIENT_ERRORS = (
    anthropic.APITimeoutError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API.

    Uses ``fallback_llm_anthropic_model_name`` (default
    ``claude-3-5-sonnet-20241022``).
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )
        self._model = settings.fallback_llm_anthropic_model_name

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        params: GenerationParams | None = None,
    ) -> str:
        response = await self._create(system_prompt, messages, params)
        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        return "\n".join(text_blocks)

    async def complete_structured(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        schema: type[_SchemaT],
        params: GenerationParams | None = None,
    ) -> _SchemaT:
        tool_name = f"emit_{schema.__name__.lower()}"
        response = await self._create(
            system_prompt,
            messages,
            params,
            tools=[
                {
                    "name": tool_name,
                    "description": f"Return the result as a {schema.__name__} object.",
                    "input_schema": schema.model_json_schema(),
                }
            ],
            tool_choice={"type": "tool", "name": tool_name},
        )
        payload = next(
            (block.input for block in response.content if block.type == "tool_use"),
            None,
        )
        if payload is None:
            raise LLMError(
                message=f"Anthropic returned no {schema.__name__} object",
                provider_name=self.get_provider_name(),
            )
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise LLMError(
                message=f"Anthropic returned malformed {schema.__name__}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def complete_with_tools(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        tools: list[ToolSpec],
        params: GenerationParams | None = None,
        tool_choice: str = "auto",
    ) -> LLMToolResponse:
        extra: dict[str, Any] = {}
        if tools:
            extra["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]
            extra["tool_choice"] = {"type": "any" if tool_choice == "required" else "auto"}
        response = await self._create(system_prompt, messages, params, **extra)
        texts = [block.text for block in response.content if block.type == "text"]
        calls = [
            ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
            for block in response.content
            if block.type == "tool_use"
        ]
        return LLMToolResponse(
            text="\n".join(texts),
            tool_calls=calls,
            finish_reason=response.stop_reason,
        )

    def get_provider_name(self) -> str:
        return "anthropic"

    def get_model_name(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _create(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        params: GenerationParams | None,
        **extra: Any,
    ) -> Any:
        system, wire_messages = self._to_wire_messages(system_prompt, messages)
        kwargs = self._sampling_kwargs(params)
        if system:
            kwargs["system"] = system
        try:
            response = await self._client.messages.create(
                model=self._model,
                messages=wire_messages,
                **kwargs,
                **extra,
            )
        except _TRANSIENT_ERRORS as exc:
            raise LLMError(
                message=f"Anthropic transient API error: {exc}",
                provider_name=self.get_provider_name(),
                transient=True,
            ) from exc
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return response

    @staticmethod
    def _to_wire_messages(
        system_prompt: str,
        messages: list[LLMMessage],
    ) -> tuple[str, list[dict[str, Any]]]:
        system_parts = [system_prompt] if system_prompt else []
        wire: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
                continue
            if msg.role == "tool":
                role = "user"
                blocks: list[dict[str, Any]] = [
                    {"type": "tool_result", "tool_use_id": msg.tool_call_id, "content": msg.content}
                ]
            elif msg.role == "assistant" and msg.tool_calls:
                role = "assistant"
                blocks = [{"type": "text", "text": msg.content}] if msg.content else []
                blocks.extend(
                    {"type": "tool_use", "id": c.id, "name": c.name, "input": c.arguments}
                    for c in msg.tool_calls
                )
            else:
                role = msg.role
                blocks = [{"type": "text", "text": msg.content}]

            # The Messages API requires alternating roles.
            if wire and wire[-1]["role"] == role:
                wire[-1]["content"].extend(blocks)
            else:
                wire.append({"role": role, "content": blocks})

        return "\n\n".join(system_parts), wire

    @staticmethod
    def _sampling_kwargs(params: GenerationParams | None) -> dict[str, Any]:
        max_tokens = params.max_tokens if params and params.max_tokens else _DEFAULT_MAX_TOKENS
        kwargs: dict[str, Any] = {"max_tokens": max_tokens}
        if params is None:
            return kwargs
        # Penalties and seed have no Messages API equivalent and are dropped.
        for key in ("temperature", "top_p", "top_k"):
            value = getattr(params, key)
            if value is not None:
                kwargs[key] = value
        return kwargs
