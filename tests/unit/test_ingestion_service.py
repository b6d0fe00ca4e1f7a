"""Unit tests for IngestionService status handling."""

from __future__ import annotations

import pytest

from src.models.documents import DocumentStatus
from src.services.ingestion.chunk_extractor import PdfChunkExtractor
from src.services.ingestion.document_fetcher import DocumentFetcher
from src.services.ingestion.embedding_generator import EmbeddingGenerator
from src.services.ingestion.ingestion_service import (
    NO_EXTRACTABLE_TEXT,
    PARTIAL_EMBEDDING_FAILURE,
    IngestionService,
)
from src.services.retrieval_service import RetrievalService
from src.utils.errors import DocumentNotFoundError, EmbeddingError, InvalidRequestError


class _FlakyEmbedder:
    """Fails every embed call while ``failing`` is true."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.failing = True

    def get_provider_name(self) -> str:
        return "flaky"

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if self.failing and any("Page two" in t for t in texts):
            raise EmbeddingError(message="upstream 500", provider_name="flaky")
        return await self._inner.embed(texts)

    async def embed_single(self, text: str) -> list[float]:
        return await self._inner.embed_single(text)


def _service(document_store, vector_store, embedder, batch_size: int = 1) -> IngestionService:
    return IngestionService(
        document_store=document_store,
        fetcher=DocumentFetcher(),
        chunk_extractor=PdfChunkExtractor(),
        embedding_generator=EmbeddingGenerator(embedder, vector_store, batch_size=batch_size),
        vector_store=vector_store,
    )


@pytest.fixture
def write_pdf(tmp_path, pdf_factory):
    def _write(pages: list[str], name: str = "guide.pdf") -> str:
        path = tmp_path / name
        path.write_bytes(pdf_factory(pages))
        return str(path)

    return _write


class TestRegisterDocument:
    @pytest.mark.asyncio
    async def test_new_document_is_pending(self, document_store, memory_vector_store, embedding_provider) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)

        document = await service.register_document("kb-1", "https://files.example.com/docs/guide.pdf")

        assert document.status is DocumentStatus.PENDING
        assert document.file_name == "guide.pdf"
        assert (await service.get_document(document.id)).id == document.id

    @pytest.mark.asyncio
    async def test_blank_ids_are_rejected(self, document_store, memory_vector_store, embedding_provider) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)

        with pytest.raises(InvalidRequestError):
            await service.register_document(" ", "/tmp/x.pdf")

    @pytest.mark.asyncio
    async def test_unknown_document(self, document_store, memory_vector_store, embedding_provider) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)

        with pytest.raises(DocumentNotFoundError):
            await service.process_document("missing")


class TestProcessDocument:
    @pytest.mark.asyncio
    async def test_success_marks_processed(
        self, document_store, memory_vector_store, embedding_provider, write_pdf
    ) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", write_pdf(["Page one text.", "Page two text."]))

        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.PROCESSED
        assert outcome.chunk_count == 2
        assert (await service.get_document(document.id)).status is DocumentStatus.PROCESSED
        assert await memory_vector_store.count("kb-1") == 2

    @pytest.mark.asyncio
    async def test_any_failed_batch_marks_error(
        self, document_store, memory_vector_store, embedding_provider, write_pdf
    ) -> None:
        embedder = _FlakyEmbedder(embedding_provider)
        service = _service(document_store, memory_vector_store, embedder)
        document = await service.register_document("kb-1", write_pdf(["Page one text.", "Page two text."]))

        outcome = await service.process_document(document.id)

        stored = await service.get_document(document.id)
        assert stored.status is DocumentStatus.ERROR
        assert stored.error_message == PARTIAL_EMBEDDING_FAILURE
        assert outcome.embedding is not None
        assert (outcome.embedding.successful, outcome.embedding.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_reprocessing_repairs_partial_failure(
        self, document_store, memory_vector_store, embedding_provider, write_pdf
    ) -> None:
        embedder = _FlakyEmbedder(embedding_provider)
        service = _service(document_store, memory_vector_store, embedder)
        document = await service.register_document("kb-1", write_pdf(["Page one text.", "Page two text."]))
        await service.process_document(document.id)

        embedder.failing = False
        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.PROCESSED
        assert await memory_vector_store.count("kb-1") == 2

    @pytest.mark.asyncio
    async def test_blank_pdf_marks_error(
        self, document_store, memory_vector_store, embedding_provider, write_pdf
    ) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", write_pdf(["", ""]))

        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.ERROR
        assert outcome.error_message == NO_EXTRACTABLE_TEXT
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_blank_page_is_skipped_and_text_page_is_retrievable(
        self, document_store, memory_vector_store, embedding_provider, write_pdf, fifty_word_page
    ) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", write_pdf([fifty_word_page, ""]))

        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.PROCESSED
        assert outcome.embedding is not None
        assert outcome.embedding.successful == 1

        retrieval = RetrievalService(
            EmbeddingGenerator(embedding_provider, memory_vector_store), memory_vector_store
        )
        result = await retrieval.retrieve("how long do refunds take", "kb-1")

        assert result.has_relevant_information is True
        assert [r.chunk_id for r in result.results] == ["page_1"]

    @pytest.mark.asyncio
    async def test_unreadable_source_marks_error(
        self, document_store, memory_vector_store, embedding_provider, tmp_path
    ) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", str(tmp_path / "gone.pdf"))

        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.ERROR
        assert "Failed to read document" in (outcome.error_message or "")

    @pytest.mark.asyncio
    async def test_corrupt_pdf_marks_error(
        self, document_store, memory_vector_store, embedding_provider, tmp_path
    ) -> None:
        path = tmp_path / "corrupt.pdf"
        path.write_bytes(b"this is not a pdf")
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", str(path))

        outcome = await service.process_document(document.id)

        assert outcome.status is DocumentStatus.ERROR
        assert (await service.get_document(document.id)).error_message


class TestDeleteDocument:
    @pytest.mark.asyncio
    async def test_removes_record_and_vectors(
        self, document_store, memory_vector_store, embedding_provider, write_pdf
    ) -> None:
        service = _service(document_store, memory_vector_store, embedding_provider)
        document = await service.register_document("kb-1", write_pdf(["Only page."]))
        await service.process_document(document.id)

        removed = await service.delete_document(document.id)

        assert removed == 1
        assert await memory_vector_store.count("kb-1") == 0
        with pytest.raises(DocumentNotFoundError):
            await service.get_document(document.id)
