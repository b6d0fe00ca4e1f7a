"""Unit tests for LLM provider adapters — OpenAI (primary) and Anthropic (fallback)."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import BaseModel

from src.config.settings import Settings
from src.models.llm import GenerationParams, LLMMessage, ToolCall, ToolSpec
from src.utils.errors import EmbeddingError, LLMError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "anthropic_api_key": "test-anthropic",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class _Verdict(BaseModel):
    intent: str
    reasoning: str


_LOOKUP_TOOL = ToolSpec(
    name="create_lead",
    description="Register a sales lead.",
    parameters={"type": "object", "properties": {"email": {"type": "string"}}},
)

_REQUEST = httpx.Request("POST", "https://api.example.test")


def _openai_response(content: str | None = "LLM response text", tool_calls=None, finish_reason="stop"):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(total_tokens=100),
    )


def _anthropic_response(*blocks, stop_reason="end_turn"):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=50, output_tokens=50),
    )


def _text_block(text: str):
    return SimpleNamespace(type="text", text=text)


def _tool_block(block_id: str, name: str, payload: dict):
    return SimpleNamespace(type="tool_use", id=block_id, name=name, input=payload)


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def client(self) -> AsyncMock:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response())
        return mock_client

    @pytest.fixture()
    def provider(self, client: AsyncMock):
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=client):
            return OpenAILLMProvider(_settings())

    def test_names(self, provider) -> None:
        assert provider.get_provider_name() == "openai"
        assert provider.get_model_name() == "gpt-4o-mini"

    def test_base_url_changes_label(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI") as ctor:
            provider = OpenAILLMProvider(_settings(openai_base_url="http://localhost:8080/v1"))

        assert provider.get_provider_name() == "openai-compatible"
        assert ctor.call_args.kwargs["base_url"] == "http://localhost:8080/v1"
        assert ctor.call_args.kwargs["max_retries"] == 0

    def test_is_available_with_key(self, provider) -> None:
        assert provider.is_available() is True

    def test_is_available_without_key(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI"):
            provider = OpenAILLMProvider(_settings(openai_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, provider, client: AsyncMock) -> None:
        result = await provider.complete(
            "system prompt",
            [LLMMessage(role="user", content="user prompt")],
            GenerationParams(temperature=0.3, max_tokens=200, top_k=5),
        )

        assert result == "LLM response text"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}
        assert kwargs["messages"][1] == {"role": "user", "content": "user prompt"}
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 200
        assert "top_k" not in kwargs

    @pytest.mark.asyncio
    async def test_complete_empty_content_raises(self, provider, client: AsyncMock) -> None:
        client.chat.completions.create.return_value = _openai_response(content="")

        with pytest.raises(LLMError):
            await provider.complete("system", [LLMMessage(role="user", content="hi")])

    @pytest.mark.asyncio
    async def test_api_error_is_not_transient(self, provider, client: AsyncMock) -> None:
        import openai

        client.chat.completions.create.side_effect = openai.APIError(
            message="Bad request", request=_REQUEST, body=None
        )

        with pytest.raises(LLMError) as exc_info:
            await provider.complete("system", [LLMMessage(role="user", content="hi")])
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, provider, client: AsyncMock) -> None:
        import openai

        client.chat.completions.create.side_effect = openai.APIConnectionError(request=_REQUEST)

        with pytest.raises(LLMError) as exc_info:
            await provider.complete("system", [LLMMessage(role="user", content="hi")])
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_complete_structured(self, provider, client: AsyncMock) -> None:
        client.chat.completions.create.return_value = _openai_response(
            content=json.dumps({"intent": "FAQ", "reasoning": "asks a question"})
        )

        verdict = await provider.complete_structured(
            "classify", [LLMMessage(role="user", content="how do refunds work?")], _Verdict
        )

        assert verdict == _Verdict(intent="FAQ", reasoning="asks a question")
        response_format = client.chat.completions.create.call_args.kwargs["response_format"]
        assert response_format["type"] == "json_schema"
        assert response_format["json_schema"]["name"] == "_Verdict"

    @pytest.mark.asyncio
    async def test_complete_structured_malformed(self, provider, client: AsyncMock) -> None:
        client.chat.completions.create.return_value = _openai_response(content='{"intent": 1}')

        with pytest.raises(LLMError):
            await provider.complete_structured("classify", [LLMMessage(role="user", content="x")], _Verdict)

    @pytest.mark.asyncio
    async def test_complete_with_tools_parses_calls(self, provider, client: AsyncMock) -> None:
        call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="create_lead", arguments='{"email": "a@b.com"}'),
        )
        broken = SimpleNamespace(id="call_2", function=SimpleNamespace(name="create_lead", arguments="{oops"))
        client.chat.completions.create.return_value = _openai_response(
            content=None, tool_calls=[call, broken], finish_reason="tool_calls"
        )

        response = await provider.complete_with_tools(
            "system", [LLMMessage(role="user", content="sign me up")], [_LOOKUP_TOOL]
        )

        assert response.text == ""
        assert response.finish_reason == "tool_calls"
        assert response.tool_calls[0] == ToolCall(id="call_1", name="create_lead", arguments={"email": "a@b.com"})
        assert response.tool_calls[1].arguments == {}
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["tools"][0]["function"]["name"] == "create_lead"
        assert kwargs["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_tool_history_wire_format(self, provider, client: AsyncMock) -> None:
        history = [
            LLMMessage(role="user", content="sign me up"),
            LLMMessage(
                role="assistant",
                tool_calls=[ToolCall(id="call_1", name="create_lead", arguments={"email": "a@b.com"})],
            ),
            LLMMessage(role="tool", tool_call_id="call_1", content="created"),
        ]

        await provider.complete_with_tools("", history, [])

        kwargs = client.chat.completions.create.call_args.kwargs
        assert "tools" not in kwargs
        wire = kwargs["messages"]
        assert wire[0] == {"role": "user", "content": "sign me up"}
        assert wire[1]["content"] is None
        assert json.loads(wire[1]["tool_calls"][0]["function"]["arguments"]) == {"email": "a@b.com"}
        assert wire[2] == {"role": "tool", "tool_call_id": "call_1", "content": "created"}


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def client(self) -> AsyncMock:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response(_text_block("Anthropic response")))
        return mock_client

    @pytest.fixture()
    def provider(self, client: AsyncMock):
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=client):
            return AnthropicLLMProvider(_settings())

    def test_names(self, provider) -> None:
        assert provider.get_provider_name() == "anthropic"
        assert provider.get_model_name() == "claude-3-5-sonnet-20241022"

    def test_is_available_without_key(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic"):
            provider = AnthropicLLMProvider(_settings(anthropic_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, provider, client: AsyncMock) -> None:
        result = await provider.complete(
            "system",
            [
                LLMMessage(role="system", content="extra rules"),
                LLMMessage(role="user", content="hello"),
            ],
        )

        assert result == "Anthropic response"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system\n\nextra rules"
        assert kwargs["max_tokens"] == 1024
        assert kwargs["messages"] == [{"role": "user", "content": [{"type": "text", "text": "hello"}]}]

    @pytest.mark.asyncio
    async def test_sampling_params_mapped(self, provider, client: AsyncMock) -> None:
        await provider.complete(
            "",
            [LLMMessage(role="user", content="hello")],
            GenerationParams(temperature=0.0, max_tokens=50, seed=7, presence_penalty=0.5),
        )

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.0
        assert "seed" not in kwargs
        assert "presence_penalty" not in kwargs
        assert "system" not in kwargs

    @pytest.mark.asyncio
    async def test_complete_without_text_raises(self, provider, client: AsyncMock) -> None:
        client.messages.create.return_value = _anthropic_response()

        with pytest.raises(LLMError):
            await provider.complete("system", [LLMMessage(role="user", content="hello")])

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, provider, client: AsyncMock) -> None:
        import anthropic

        client.messages.create.side_effect = anthropic.APIConnectionError(request=_REQUEST)

        with pytest.raises(LLMError) as exc_info:
            await provider.complete("system", [LLMMessage(role="user", content="hello")])
        assert exc_info.value.transient is True
        assert exc_info.value.provider_name == "anthropic"

    @pytest.mark.asyncio
    async def test_complete_structured_forces_tool(self, provider, client: AsyncMock) -> None:
        client.messages.create.return_value = _anthropic_response(
            _tool_block("tu_1", "emit__verdict", {"intent": "SMALL_TALK", "reasoning": "greeting"}),
            stop_reason="tool_use",
        )

        verdict = await provider.complete_structured(
            "classify", [LLMMessage(role="user", content="hi there")], _Verdict
        )

        assert verdict.intent == "SMALL_TALK"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["tool_choice"] == {"type": "tool", "name": "emit__verdict"}
        assert kwargs["tools"][0]["input_schema"] == _Verdict.model_json_schema()

    @pytest.mark.asyncio
    async def test_complete_structured_without_tool_block(self, provider, client: AsyncMock) -> None:
        with pytest.raises(LLMError):
            await provider.complete_structured("classify", [LLMMessage(role="user", content="hi")], _Verdict)

    @pytest.mark.asyncio
    async def test_complete_with_tools(self, provider, client: AsyncMock) -> None:
        client.messages.create.return_value = _anthropic_response(
            _text_block("Let me register that."),
            _tool_block("tu_1", "create_lead", {"email": "a@b.com"}),
            stop_reason="tool_use",
        )

        response = await provider.complete_with_tools(
            "system", [LLMMessage(role="user", content="sign me up")], [_LOOKUP_TOOL], tool_choice="required"
        )

        assert response.text == "Let me register that."
        assert response.tool_calls == [ToolCall(id="tu_1", name="create_lead", arguments={"email": "a@b.com"})]
        assert response.finish_reason == "tool_use"
        assert client.messages.create.call_args.kwargs["tool_choice"] == {"type": "any"}

    @pytest.mark.asyncio
    async def test_tool_results_merge_into_user_turn(self, provider, client: AsyncMock) -> None:
        history = [
            LLMMessage(role="user", content="sign me up"),
            LLMMessage(
                role="assistant",
                tool_calls=[
                    ToolCall(id="tu_1", name="create_lead", arguments={"email": "a@b.com"}),
                    ToolCall(id="tu_2", name="create_lead", arguments={"email": "c@d.com"}),
                ],
            ),
            LLMMessage(role="tool", tool_call_id="tu_1", content="created"),
            LLMMessage(role="tool", tool_call_id="tu_2", content="duplicate"),
        ]

        await provider.complete_with_tools("system", history, [_LOOKUP_TOOL])

        wire = client.messages.create.call_args.kwargs["messages"]
        assert [turn["role"] for turn in wire] == ["user", "assistant", "user"]
        assert [block["type"] for block in wire[1]["content"]] == ["tool_use", "tool_use"]
        assert [block["tool_use_id"] for block in wire[2]["content"]] == ["tu_1", "tu_2"]


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def client(self) -> AsyncMock:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock()
        return mock_client

    @pytest.fixture()
    def provider(self, client: AsyncMock):
        from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        with patch("src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI", return_value=client):
            return OpenAIEmbeddingProvider(_settings())

    def test_dimension_by_model(self) -> None:
        from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        with patch("src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"):
            small = OpenAIEmbeddingProvider(_settings())
            large = OpenAIEmbeddingProvider(_settings(openai_embedding_model="text-embedding-3-large"))

        assert small.get_dimension() == 1536
        assert large.get_dimension() == 3072
        assert small.get_provider_name() == "openai_embedding"

    @pytest.mark.asyncio
    async def test_embed_preserves_input_order(self, provider, client: AsyncMock) -> None:
        client.embeddings.create.return_value = SimpleNamespace(
            data=[
                SimpleNamespace(index=1, embedding=[0.0, 1.0]),
                SimpleNamespace(index=0, embedding=[1.0, 0.0]),
            ],
            usage=SimpleNamespace(total_tokens=4),
        )

        vectors = await provider.embed(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert client.embeddings.create.call_args.kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_embed_empty_input_skips_api(self, provider, client: AsyncMock) -> None:
        assert await provider.embed([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_count_mismatch(self, provider, client: AsyncMock) -> None:
        client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(index=0, embedding=[1.0])], usage=None
        )

        with pytest.raises(EmbeddingError):
            await provider.embed(["a", "b"])

    @pytest.mark.asyncio
    async def test_embed_api_error(self, provider, client: AsyncMock) -> None:
        import openai

        client.embeddings.create.side_effect = openai.APIError(message="boom", request=_REQUEST, body=None)

        with pytest.raises(EmbeddingError):
            await provider.embed_single("hello")

