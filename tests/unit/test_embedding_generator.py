"""Unit tests for EmbeddingGenerator batching, failure isolation and query cache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.providers.cache.memory_cache import MemoryCacheProvider
from src.services.ingestion.embedding_generator import EmbeddingGenerator
from src.utils.errors import EmbeddingError


class _FailingBatchProvider:
    """Wraps an embedder and fails every call whose first text matches."""

    def __init__(self, inner, fail_on: str) -> None:
        self._inner = inner
        self._fail_on = fail_on

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if texts and texts[0] == self._fail_on:
            raise EmbeddingError(message="rate limit exceeded", provider_name="hashing")
        return await self._inner.embed(texts)


class TestGenerateAndStore:
    @pytest.mark.asyncio
    async def test_all_batches_succeed(self, embedding_provider, memory_vector_store, chunk_factory) -> None:
        generator = EmbeddingGenerator(embedding_provider, memory_vector_store, batch_size=2)
        result = await generator.generate_and_store("kb-1", "doc-1", chunk_factory(5))

        assert result.success is True
        assert (result.total, result.successful, result.failed) == (5, 5, 0)
        assert len(embedding_provider.calls) == 3
        assert await memory_vector_store.count("kb-1") == 5

    @pytest.mark.asyncio
    async def test_one_failing_batch_is_isolated(self, embedding_provider, memory_vector_store, chunk_factory) -> None:
        chunks = chunk_factory(7)
        batch_size = 3
        # Batches: [1,2,3] [4,5,6] [7]; fail the second.
        provider = _FailingBatchProvider(embedding_provider, fail_on=chunks[3].text)
        generator = EmbeddingGenerator(provider, memory_vector_store, batch_size=batch_size)

        result = await generator.generate_and_store("kb-1", "doc-1", chunks)

        assert result.success is False
        assert result.failed == batch_size
        assert result.successful == len(chunks) - batch_size
        assert result.successful + result.failed == result.total
        assert len(result.errors) == 1 and result.errors[0].startswith("batch 2:")
        assert await memory_vector_store.count("kb-1") == len(chunks) - batch_size

    @pytest.mark.asyncio
    async def test_partial_accounting_holds_with_concurrency(
        self, embedding_provider, memory_vector_store, chunk_factory
    ) -> None:
        chunks = chunk_factory(10)
        provider = _FailingBatchProvider(embedding_provider, fail_on=chunks[8].text)
        generator = EmbeddingGenerator(provider, memory_vector_store, batch_size=4, concurrency=3)

        result = await generator.generate_and_store("kb-1", "doc-1", chunks)

        # Batches of 4, 4, 2; the last one fails.
        assert (result.successful, result.failed, result.success) == (8, 2, False)

    @pytest.mark.asyncio
    async def test_vector_count_mismatch_fails_the_batch(self, memory_vector_store, chunk_factory) -> None:
        provider = AsyncMock()
        provider.embed = AsyncMock(return_value=[[1.0, 0.0]])
        provider.get_provider_name = lambda: "broken"
        generator = EmbeddingGenerator(provider, memory_vector_store, batch_size=2)

        result = await generator.generate_and_store("kb-1", "doc-1", chunk_factory(2))

        assert result.failed == 2
        assert "Expected 2 vectors" in result.errors[0]

    @pytest.mark.asyncio
    async def test_no_chunks_is_a_trivial_success(self, embedding_provider, memory_vector_store) -> None:
        generator = EmbeddingGenerator(embedding_provider, memory_vector_store)
        result = await generator.generate_and_store("kb-1", "doc-1", [])

        assert result.success is True
        assert result.total == 0
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_records_use_deterministic_ids(self, embedding_provider, memory_vector_store, chunk_factory) -> None:
        generator = EmbeddingGenerator(embedding_provider, memory_vector_store)
        chunks = chunk_factory(2)

        await generator.generate_and_store("kb-1", "doc-1", chunks)
        await generator.generate_and_store("kb-1", "doc-1", chunks)

        # Re-embedding overwrites rather than duplicates.
        assert await memory_vector_store.count("kb-1") == 2

    @pytest.mark.asyncio
    async def test_batches_run_concurrently_up_to_limit(self, memory_vector_store, chunk_factory) -> None:
        in_flight = 0
        peak = 0

        class _SlowProvider:
            def get_provider_name(self) -> str:
                return "slow"

            async def embed(self, texts: list[str]) -> list[list[float]]:
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return [[1.0, 0.0] for _ in texts]

        generator = EmbeddingGenerator(_SlowProvider(), memory_vector_store, batch_size=1, concurrency=2)
        result = await generator.generate_and_store("kb-1", "doc-1", chunk_factory(6))

        assert result.success is True
        assert peak == 2

    def test_rejects_non_positive_batch_size(self, embedding_provider, memory_vector_store) -> None:
        with pytest.raises(ValueError):
            EmbeddingGenerator(embedding_provider, memory_vector_store, batch_size=0)


class TestEmbedQuery:
    @pytest.mark.asyncio
    async def test_query_vectors_are_cached(self, embedding_provider, memory_vector_store) -> None:
        generator = EmbeddingGenerator(
            embedding_provider,
            memory_vector_store,
            query_cache=MemoryCacheProvider(max_size=8, ttl=60),
        )

        first = await generator.embed_query("refund policy")
        second = await generator.embed_query("refund policy")

        assert first == second
        assert len(embedding_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_without_cache_every_query_is_embedded(self, embedding_provider, memory_vector_store) -> None:
        generator = EmbeddingGenerator(embedding_provider, memory_vector_store)

        await generator.embed_query("hello")
        await generator.embed_query("hello")

        assert len(embedding_provider.calls) == 2
