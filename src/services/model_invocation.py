"""Model invocation layer: one retry/fallback contract for every LLM call.

Attempt 1 goes to the **primary** provider; every later attempt (up to
``max_retries + 1`` in total) goes to the **fallback** provider.  Only
failures that look transient (timeouts, rate limits, overloaded upstreams)
earn another attempt; anything else stops immediately.  When the attempts
run out the caller gets a :class:`ModelInvocationError`, never an empty
reply.

Attempts run strictly one after another.  In tool-augmented generation
only the model round-trips are retried; tools execute between rounds,
exactly once per requested call, so a retry can never repeat a side effect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel

from src.models.llm import GenerationParams, LLMMessage, LLMToolResponse
from src.models.tools import ToolFailure, ToolInvocation, ToolRunResult, describe_outcome
from src.utils.errors import LLMError, ToolExecutionError
from src.utils.retry import AttemptResult, capture, retry_bounded

if TYPE_CHECKING:
    from src.agent.tools.base import ToolRegistry
    from src.interfaces.llm_provider import ILLMProvider

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")
_SchemaT = TypeVar("_SchemaT", bound=BaseModel)


class ModelInvocationLayer:
    """Primary/fallback wrapper around two :class:`ILLMProvider` instances.

    Parameters
    ----------
    primary:
        Provider used for the first attempt of every call.
    fallback:
        Provider used for every retry.  When ``None`` the primary is retried.
    max_retries:
        Additional attempts after the first (default 1, i.e. two in total).
    timeout_seconds:
        Wall-clock budget per attempt; expiry counts as a transient failure.
    max_tool_steps:
        Upper bound on model/tool rounds in :meth:`generate_with_tools`.
    """

    def __init__(
        self,
        primary: ILLMProvider,
        fallback: ILLMProvider | None = None,
        max_retries: int = 1,
        timeout_seconds: float | None = 60.0,
        max_tool_steps: int = 10,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._max_attempts = max(0, max_retries) + 1
        self._timeout = timeout_seconds
        self._max_tool_steps = max(1, max_tool_steps)

    @property
    def primary(self) -> ILLMProvider:
        return self._primary

    @property
    def fallback(self) -> ILLMProvider | None:
        return self._fallback

    def provider_for(self, attempt: int) -> ILLMProvider:
        """Attempt 1 -> primary; any later attempt -> fallback."""
        if attempt <= 1 or self._fallback is None:
            return self._primary
        return self._fallback

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def generate_text(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        params: GenerationParams | None = None,
    ) -> str:
        """Free-text generation."""

        async def call(provider: ILLMProvider) -> str:
            text = await provider.complete(system_prompt, messages, params)
            if not text or not text.strip():
                raise LLMError(message="Model returned an empty response", provider_name=provider.get_provider_name())
            return text

        return await self._invoke("generate_text", call)

    async def generate_structured(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        schema: type[_SchemaT],
        params: GenerationParams | None = None,
    ) -> _SchemaT:
        """Generation constrained to *schema*; returns a validated instance."""

        async def call(provider: ILLMProvider) -> _SchemaT:
            return await provider.complete_structured(system_prompt, messages, schema, params)

        return await self._invoke(f"generate_structured[{schema.__name__}]", call)

    async def generate_with_tools(
        self,
        system_prompt: str,
        messages: list[LLMMessage],
        tools: ToolRegistry,
        params: GenerationParams | None = None,
        max_steps: int | None = None,
    ) -> ToolRunResult:
        """Let the model call tools until it answers in text.

        Each round asks the model (with retry/fallback) for either a text
        answer or tool calls.  Requested tools run once each and their
        outcomes are appended to the history for the next round.  After
        ``max_steps`` rounds the model is asked for a final answer with
        tools disabled.
        """
        if len(tools) == 0:
            text = await self.generate_text(system_prompt, messages, params)
            return ToolRunResult(text=text, invocations=[], steps=1)

        specs = tools.specs()
        history = list(messages)
        invocations: list[ToolInvocation] = []
        steps_allowed = max_steps or self._max_tool_steps

        for step in range(1, steps_allowed + 1):
            response = await self._tool_round(system_prompt, history, specs, params, tool_choice="auto")
            if not response.tool_calls:
                return self._finish(response.text, invocations, step)

            history.append(LLMMessage(role="assistant", content=response.text, tool_calls=response.tool_calls))
            for call in response.tool_calls:
                try:
                    outcome = await tools.get(call.name).run(call.arguments)
                except ToolExecutionError as exc:
                    outcome = ToolFailure(reason=exc.message)
                invocations.append(ToolInvocation(tool_name=call.name, arguments=call.arguments, result=outcome))
                history.append(
                    LLMMessage(role="tool", content=describe_outcome(outcome), tool_call_id=call.id)
                )

        logger.warning("tool_step_limit_reached", max_steps=steps_allowed, invocations=len(invocations))
        response = await self._tool_round(system_prompt, history, specs, params, tool_choice="none")
        return self._finish(response.text, invocations, steps_allowed + 1)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _tool_round(
        self,
        system_prompt: str,
        history: list[LLMMessage],
        specs: list[Any],
        params: GenerationParams | None,
        tool_choice: str,
    ) -> LLMToolResponse:
        # Snapshot the history so a retried attempt sees the same input.
        snapshot = list(history)

        async def call(provider: ILLMProvider) -> LLMToolResponse:
            response = await provider.complete_with_tools(system_prompt, snapshot, specs, params, tool_choice=tool_choice)
            if not response.tool_calls and not response.text.strip():
                raise LLMError(message="Model returned neither text nor tool calls", provider_name=provider.get_provider_name())
            return response

        return await self._invoke("generate_with_tools", call)

    @staticmethod
    def _finish(text: str, invocations: list[ToolInvocation], steps: int) -> ToolRunResult:
        return ToolRunResult(text=text.strip(), invocations=invocations, steps=steps)

    async def _invoke(self, operation: str, call: Callable[[ILLMProvider], Awaitable[_T]]) -> _T:
        async def attempt(n: int) -> AttemptResult[_T]:
            provider = self.provider_for(n)
            logger.debug(
                "model_attempt",
                operation=operation,
                attempt=n,
                provider=provider.get_provider_name(),
                model=provider.get_model_name(),
            )
            return await capture(
                lambda: call(provider),
                provider_name=provider.get_provider_name(),
                timeout=self._timeout,
            )

        return await retry_bounded(attempt, max_attempts=self._max_attempts, operation=operation)
