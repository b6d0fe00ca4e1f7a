"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **fetch -> extract -> embed -> store**.

The :class:`IngestionService` coordinates its collaborators (document
store, document fetcher, chunk extractor, embedding generator, vector
store) without any of them knowing about each other:

    1. DocumentFetcher -- loads the bytes behind ``source_locator``
    2. PdfChunkExtractor -- splits the bytes into page-level chunks
    3. EmbeddingGenerator -- embeds chunks batch by batch and stores them
    4. IDocumentStore -- records the outcome as the document's ``status``

Status semantics are all-or-nothing at the document level: any failed
embedding batch marks the document ``error`` even though the other batches
were stored.  Such a document is repaired by processing it again; every run
first purges the document's existing vectors, and record ids are derived
from ``(knowledge_base_id, document_id, chunk_id)``, so a rerun converges
on exactly one record per chunk.

All dependencies are injected via the constructor, so providers can be
swapped (e.g. ChromaDB -> in-memory store) without changing this class.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING

import structlog

from src.models.documents import Document, DocumentStatus, EmbeddingResult, IngestionOutcome
from src.utils.errors import (
    DocumentNotFoundError,
    ExtractionError,
    InvalidRequestError,
    SupportDeskError,
)

if TYPE_CHECKING:
    from src.interfaces.document_store import IDocumentStore
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.services.ingestion.chunk_extractor import PdfChunkExtractor
    from src.services.ingestion.document_fetcher import DocumentFetcher
    from src.services.ingestion.embedding_generator import EmbeddingGenerator

logger = structlog.get_logger(logger_name=__name__)

PARTIAL_EMBEDDING_FAILURE = "Partial or complete failure during embedding generation"
NO_EXTRACTABLE_TEXT = "Document contains no extractable text"


class IngestionService:
    """Runs documents through fetch -> extract -> embed -> store.

    Parameters
    ----------
    document_store:
        Persists Document records and their status.
    fetcher:
        Loads source bytes from a URL or local path.
    chunk_extractor:
        Turns PDF bytes into chunks.
    embedding_generator:
        Embeds chunks and writes them to the vector store.
    vector_store:
        Used directly only to purge a document's vectors.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        fetcher: DocumentFetcher,
        chunk_extractor: PdfChunkExtractor,
        embedding_generator: EmbeddingGenerator,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._document_store = document_store
        self._fetcher = fetcher
        self._chunk_extractor = chunk_extractor
        self._embedding_generator = embedding_generator
        self._vector_store = vector_store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register_document(
        self,
        knowledge_base_id: str,
        source_locator: str,
        file_name: str = "",
        file_size: int | None = None,
        user_id: str | None = None,
    ) -> Document:
        """Create a ``pending`` Document record for a source awaiting ingestion."""
        if not knowledge_base_id.strip():
            raise InvalidRequestError(message="knowledge_base_id is required")
        if not source_locator.strip():
            raise InvalidRequestError(message="source_locator is required")

        document = Document(
            id=uuid.uuid4().hex,
            knowledge_base_id=knowledge_base_id,
            source_locator=source_locator,
            file_name=file_name or source_locator.rstrip("/").rsplit("/", 1)[-1],
            file_size=file_size,
            user_id=user_id,
            status=DocumentStatus.PENDING,
        )
        return await self._document_store.create(document)

    async def get_document(self, document_id: str) -> Document:
        document = await self._document_store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(message=f"Document '{document_id}' not found")
        return document

    async def process_document(self, document_id: str) -> IngestionOutcome:
        """Ingest one registered document and record the result as its status.

        Never raises for pipeline failures: extraction and embedding
        problems end up in the returned outcome and in the Document's
        ``status`` / ``error_message``.

        Raises
        ------
        DocumentNotFoundError
            If *document_id* is unknown.
        """
        document = await self.get_document(document_id)
        start = time.monotonic()
        log = logger.bind(document_id=document.id, knowledge_base_id=document.knowledge_base_id)
        log.info("ingestion_started", source=document.source_locator)

        await self._document_store.update_status(document.id, DocumentStatus.PENDING)

        chunk_count = 0
        try:
            purged = await self._vector_store.delete_by_document(document.knowledge_base_id, document.id)
            if purged:
                log.info("ingestion_purged_previous_embeddings", count=purged)

            data = await self._fetcher.fetch(document.source_locator)
            # PyMuPDF is synchronous and CPU-bound.
            chunks = await asyncio.to_thread(
                self._chunk_extractor.extract,
                data,
                document.id,
                document.source_locator,
            )
            chunk_count = len(chunks)
            if not chunks:
                return await self._fail(document, NO_EXTRACTABLE_TEXT, chunk_count=0)

            embedding = await self._embedding_generator.generate_and_store(
                document.knowledge_base_id, document.id, chunks
            )
        except ExtractionError as exc:
            log.error("ingestion_extraction_failed", error=exc.message)
            return await self._fail(document, exc.message, chunk_count=chunk_count)
        except Exception as exc:
            log.exception("ingestion_failed", error=str(exc))
            message = exc.message if isinstance(exc, SupportDeskError) else str(exc)
            return await self._fail(document, message or type(exc).__name__, chunk_count=chunk_count)

        if not embedding.success:
            return await self._fail(
                document,
                PARTIAL_EMBEDDING_FAILURE,
                chunk_count=chunk_count,
                embedding=embedding,
            )

        await self._document_store.update_status(document.id, DocumentStatus.PROCESSED)
        log.info(
            "ingestion_completed",
            chunk_count=chunk_count,
            embedded=embedding.successful,
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return IngestionOutcome(
            document_id=document.id,
            status=DocumentStatus.PROCESSED,
            chunk_count=chunk_count,
            embedding=embedding,
        )

    async def delete_document(self, document_id: str) -> int:
        """Delete a document record and purge its embeddings.

        Returns the number of vector records removed.
        """
        document = await self.get_document(document_id)
        removed = await self._vector_store.delete_by_document(document.knowledge_base_id, document.id)
        await self._document_store.delete(document.id)
        logger.info("document_deleted", document_id=document.id, embeddings_removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fail(
        self,
        document: Document,
        message: str,
        chunk_count: int,
        embedding: EmbeddingResult | None = None,
    ) -> IngestionOutcome:
        await self._document_store.update_status(document.id, DocumentStatus.ERROR, message)
        logger.warning(
            "ingestion_marked_error",
            document_id=document.id,
            error_message=message,
            chunk_count=chunk_count,
        )
        return IngestionOutcome(
            document_id=document.id,
            status=DocumentStatus.ERROR,
            chunk_count=chunk_count,
            embedding=embedding,
            error_message=message,
        )
