"""Shared pytest fixtures for the supportDesk test suite."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fitz
import numpy as np
import pytest
import pytest_asyncio

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.models.documents import Chunk, EmbeddingRecord
from src.providers.documents.sqlite_document_store import SQLiteDocumentStore
from src.providers.vector_store.memory_vector_store import InMemoryVectorStore

_WORD_RE = re.compile(r"[a-z0-9]+")


# ---------------------------------------------------------------------------
# Fake embedding provider
# ---------------------------------------------------------------------------


class HashingEmbeddingProvider(IEmbeddingProvider):
    """Deterministic bag-of-words embedder.

    Every lower-cased word is hashed into one of ``dimension`` buckets, so
    texts sharing vocabulary land close together under cosine similarity.
    Good enough to make "semantically close" queries rank their source
    chunk first without any network access.
    """

    def __init__(self, dimension: int = 64) -> None:
        self._dimension = dimension
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hashing"

    def is_available(self) -> bool:
        return True

    def _vector(self, text: str) -> list[float]:
        vector = np.zeros(self._dimension)
        for word in _WORD_RE.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        if not vector.any():
            vector[0] = 1.0
        return vector.tolist()


@pytest.fixture
def embedding_provider() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture
def memory_vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest_asyncio.fixture
async def document_store(tmp_path: Path) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(db_path=tmp_path / "documents.db")
    await store.initialize()
    return store


# ---------------------------------------------------------------------------
# LLM provider mocks
# ---------------------------------------------------------------------------


def make_llm_provider(name: str = "openai", model: str = "gpt-4o-mini") -> MagicMock:
    """Return a ``MagicMock(spec=ILLMProvider)`` with async completion methods."""
    provider = MagicMock(spec=ILLMProvider)
    provider.complete = AsyncMock(return_value="ok")
    provider.complete_structured = AsyncMock()
    provider.complete_with_tools = AsyncMock()
    provider.get_provider_name.return_value = name
    provider.get_model_name.return_value = model
    provider.is_available.return_value = True
    return provider


@pytest.fixture
def llm_factory():
    return make_llm_provider


@pytest.fixture
def primary_llm() -> MagicMock:
    return make_llm_provider("openai", "gpt-4o-mini")


@pytest.fixture
def fallback_llm() -> MagicMock:
    return make_llm_provider("anthropic", "claude-3-5-sonnet-20241022")


# ---------------------------------------------------------------------------
# Documents and chunks
# ---------------------------------------------------------------------------


def build_pdf(pages: list[str]) -> bytes:
    """Build a PDF in memory with one page per entry (empty string = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 770), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_factory():
    return build_pdf


def make_chunks(count: int, prefix: str = "page") -> list[Chunk]:
    return [
        Chunk(chunk_id=f"{prefix}_{i}", text=f"Chunk number {i} about refunds and shipping.", source_document_id="doc-1")
        for i in range(1, count + 1)
    ]


def make_record(
    knowledge_base_id: str,
    document_id: str,
    chunk_id: str,
    vector: list[float],
    text: str = "",
) -> EmbeddingRecord:
    return EmbeddingRecord(
        knowledge_base_id=knowledge_base_id,
        document_id=document_id,
        chunk_id=chunk_id,
        text=text or f"{knowledge_base_id}/{document_id}/{chunk_id}",
        vector=vector,
    )


FIFTY_WORD_PAGE = (
    "Our refund policy allows customers to return unused products within thirty days "
    "of delivery for a full refund. Refunds are issued to the original payment method "
    "within five business days after the returned item is inspected. Shipping costs "
    "for returns are covered by the customer unless the product arrived damaged or defective."
)


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Minimal resolved configuration used by factory tests."""
    return {
        "retrieval": {"limit": 5, "num_candidates_factor": 10},
        "classifier": {"history_window": 6},
        "handlers": {
            "small_talk": {"temperature": 0.7, "max_tokens": 150},
            "knowledge": {"temperature": 0.3, "max_tokens": 1000},
            "transaction": {"history_window": 4},
            "ticket": {
                "history_window": 5,
                "clarify_temperature": 0.7,
                "clarify_max_tokens": 250,
                "confirm_max_tokens": 200,
            },
        },
    }


@pytest.fixture
def chunk_factory():
    return make_chunks


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def fifty_word_page() -> str:
    return FIFTY_WORD_PAGE


@pytest.fixture
def mock_model() -> MagicMock:
    """A ``ModelInvocationLayer`` stand-in with async generate_* methods."""
    from src.services.model_invocation import ModelInvocationLayer

    model = MagicMock(spec=ModelInvocationLayer)
    model.generate_text = AsyncMock(return_value="ok")
    model.generate_structured = AsyncMock()
    model.generate_with_tools = AsyncMock()
    return model
