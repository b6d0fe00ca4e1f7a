"""Embedding generation with per-batch failure isolation.

:class:`EmbeddingGenerator` turns a document's chunks into
:class:`EmbeddingRecord` objects and writes them to the vector store, one
fixed-size batch at a time.  A batch that fails (embedding API error,
dimension mismatch, store write failure) is logged and counted in
``failed``; the remaining batches still run, so one bad chunk cannot sink
a large document.  The caller decides what a partial result means for the
document as a whole.

The same provider embeds search queries through :meth:`embed_query`, so
query and corpus vectors always come from one model.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import structlog

from src.models.documents import Chunk, EmbeddingRecord, EmbeddingResult
from src.utils.concurrency import throttled_gather
from src.utils.errors import EmbeddingError

if TYPE_CHECKING:
    from src.interfaces.cache_provider import ICacheProvider
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_BATCH_SIZE = 20


class EmbeddingGenerator:
    """Embeds chunks in batches and persists them to the vector store.

    Parameters
    ----------
    embedding_provider:
        Produces vectors for chunk and query text.
    vector_store:
        Destination for the generated records.
    batch_size:
        Chunks per embedding request.
    concurrency:
        Maximum batches in flight at once; ``1`` runs them sequentially.
    query_cache:
        Optional cache memoising query vectors by text.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        concurrency: int = 1,
        query_cache: ICacheProvider | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._batch_size = batch_size
        self._concurrency = max(1, concurrency)
        self._query_cache = query_cache

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def generate_and_store(
        self,
        knowledge_base_id: str,
        document_id: str,
        chunks: list[Chunk],
    ) -> EmbeddingResult:
        """Embed and store *chunks*, isolating failures per batch."""
        total = len(chunks)
        if total == 0:
            return EmbeddingResult(success=True, total=0, successful=0, failed=0)

        batches = [chunks[i : i + self._batch_size] for i in range(0, total, self._batch_size)]
        logger.info(
            "embedding_generation_started",
            knowledge_base_id=knowledge_base_id,
            document_id=document_id,
            total_chunks=total,
            batch_count=len(batches),
        )

        # Each batch returns its own count; nothing shared is mutated across
        # batches, so they can run concurrently.
        outcomes = await throttled_gather(
            [
                self._store_batch(knowledge_base_id, document_id, batch, batch_no)
                for batch_no, batch in enumerate(batches, start=1)
            ],
            limit=self._concurrency,
        )

        successful = 0
        failed = 0
        errors: list[str] = []
        for batch_no, (batch, outcome) in enumerate(zip(batches, outcomes, strict=True), start=1):
            if isinstance(outcome, BaseException):
                failed += len(batch)
                errors.append(f"batch {batch_no}: {outcome}")
                logger.error(
                    "embedding_batch_failed",
                    document_id=document_id,
                    batch=batch_no,
                    batch_size=len(batch),
                    error=str(outcome),
                )
            else:
                successful += outcome

        result = EmbeddingResult(
            success=failed == 0,
            total=total,
            successful=successful,
            failed=failed,
            errors=errors,
        )
        logger.info(
            "embedding_generation_completed",
            knowledge_base_id=knowledge_base_id,
            document_id=document_id,
            total=total,
            successful=successful,
            failed=failed,
        )
        return result

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query with the corpus model, consulting the cache first."""
        key = self._cache_key(text)
        if self._query_cache is not None:
            cached = await self._query_cache.get(key)
            if cached is not None:
                return cached

        vector = await self._embedding_provider.embed_single(text)

        if self._query_cache is not None:
            await self._query_cache.set(key, vector)
        return vector

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _store_batch(
        self,
        knowledge_base_id: str,
        document_id: str,
        batch: list[Chunk],
        batch_no: int,
    ) -> int:
        vectors = await self._embedding_provider.embed([chunk.text for chunk in batch])
        if len(vectors) != len(batch):
            raise EmbeddingError(
                message=f"Expected {len(batch)} vectors, received {len(vectors)}",
                provider_name=self._embedding_provider.get_provider_name(),
            )

        records = [
            EmbeddingRecord(
                knowledge_base_id=knowledge_base_id,
                document_id=document_id,
                chunk_id=chunk.chunk_id,
                text=chunk.text,
                vector=vector,
            )
            for chunk, vector in zip(batch, vectors, strict=True)
        ]
        stored = await self._vector_store.upsert(records)
        logger.debug("embedding_batch_stored", document_id=document_id, batch=batch_no, count=stored)
        return len(records)

    def _cache_key(self, text: str) -> str:
        digest = hashlib.sha256(text.strip().encode("utf-8")).hexdigest()
        return f"query_embedding:{self._embedding_provider.get_provider_name()}:{digest}"
