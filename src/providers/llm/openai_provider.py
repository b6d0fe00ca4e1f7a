"""OpenAI LLM provider adapter (primary model).

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured the client talks to that
OpenAI-compatible endpoint instead.

Wire-format notes:
    - System prompt travels as the first ``system`` message.
    - Structured output uses ``response_format`` with a JSON schema built
      from the pydantic model, then validates the returned JSON.
    - Tool calls come back as ``message.tool_calls`` with JSON-encoded
      argument strings.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

import openai
import structlog
from pydantic import BaseModel, ValidationError

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.llm import GenerationParams, LLMMessage, LLMToolResponse, ToolCall, ToolSpec
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_SchemaT = TypeVar("_SchemaT", bound=BaseModel)

# SDK exceptions that indicate a temporary upstream problem.
_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by the OpenAI chat completions API.

    Uses ``primary_llm_openai_model_name`` (default ``gpt-4o-mini``).
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        client_kwargs: dict[str, Any] = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(settings.llm_timeout_seconds, connect=5.0),
            # Retries are owned by the model invocation layer.
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.primary_llm_openai_model_name
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

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
        content = response.choices[0].message.content
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        return content

    async def complete_structured(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        schema: type[_SchemaT],
        params: GenerationParams | None = None,
    ) -> _SchemaT:
        response = await self._create(
            system_prompt,
            messages,
            params,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "schema": schema.model_json_schema(),
                },
            },
        )
        content = response.choices[0].message.content or ""
        try:
            return schema.model_validate_json(content)
        except ValidationError as exc:
            raise LLMError(
                message=f"{self._provider_label} returned malformed {schema.__name__}: {exc}",
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
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in tools
            ]
            extra["tool_choice"] = tool_choice
        response = await self._create(system_prompt, messages, params, **extra)
        choice = response.choices[0]
        calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=self._parse_arguments(call.function.arguments),
            )
            for call in (choice.message.tool_calls or [])
        ]
        return LLMToolResponse(
            text=choice.message.content or "",
            tool_calls=calls,
            finish_reason=choice.finish_reason,
        )

    def get_provider_name(self) -> str:
        return self._provider_label

    def get_model_name(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
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
        """Send one chat completion request and wrap SDK errors."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=self._to_wire_messages(system_prompt, messages),
                **self._sampling_kwargs(params),
                **extra,
            )
        except _TRANSIENT_ERRORS as exc:
            raise LLMError(
                message=f"{self._provider_label} transient API error: {exc}",
                provider_name=self.get_provider_name(),
                transient=True,
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return response

    @staticmethod
    def _to_wire_messages(system_prompt: str, messages: list[LLMMessage]) -> list[dict[str, Any]]:
        wire: list[dict[str, Any]] = []
        if system_prompt:
            wire.append({"role": "system", "content": system_prompt})
        for msg in messages:
            if msg.role == "tool":
                wire.append(
                    {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}
                )
            elif msg.role == "assistant" and msg.tool_calls:
                wire.append(
                    {
                        "role": "assistant",
                        "content": msg.content or None,
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {
                                    "name": call.name,
                                    "arguments": json.dumps(call.arguments),
                                },
                            }
                            for call in msg.tool_calls
                        ],
                    }
                )
            else:
                wire.append({"role": msg.role, "content": msg.content})
        return wire

    @staticmethod
    def _sampling_kwargs(params: GenerationParams | None) -> dict[str, Any]:
        if params is None:
            return {}
        # top_k has no chat-completions equivalent and is dropped.
        candidates = {
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "presence_penalty": params.presence_penalty,
            "frequency_penalty": params.frequency_penalty,
            "seed": params.seed,
        }
        return {key: value for key, value in candidates.items() if value is not None}

    @staticmethod
    def _parse_arguments(raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("openai_tool_arguments_unparseable", raw=raw[:200])
            return {}
        return parsed if isinstance(parsed, dict) else {}
