"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Uses cosine distance; similarity is reported as ``1 - distance``.  All
vectors are pre-computed by the embedding generator, so the collection is
opened with a no-op embedding function.

Record layout:
    id        "{knowledge_base_id}:{document_id}:{chunk_id}"
    document  chunk text
    metadata  knowledge_base_id, document_id, chunk_id, seq
``seq`` is a monotonically increasing insertion stamp used to break score
ties deterministically.
"""

from __future__ import annotations

import os
import time
from typing import Any

# Must be set before chromadb is imported.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider, resolve_num_candidates
from src.models.documents import EmbeddingRecord, SearchResult
from src.utils.errors import VectorStoreError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Stops ChromaDB from loading its default ONNX embedding model."""

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "supportDesk stores pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence."""

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "supportdesk_embeddings",
        expected_dimension: int | None = None,
        batch_size: int = 500,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._batch_size = batch_size
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=_NoopEmbeddingFunction(),
        )
        if expected_dimension is not None:
            self._validate_embedding_dimensions(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Fail fast when stored vectors do not match the embedding model."""
        if self._collection.count() == 0:
            return
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return
        stored_dim = len(embeddings[0])
        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=expected_dim,
                collection=self._collection_name,
            )
            raise VectorStoreError(
                message=(
                    f"Embedding dimension mismatch: collection has {stored_dim}-dim vectors "
                    f"but the embedding model produces {expected_dim}-dim vectors."
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        """Upsert records in slices of ``batch_size`` to bound memory."""
        if not records:
            return 0

        stamp = time.time_ns()
        try:
            for start in range(0, len(records), self._batch_size):
                batch = records[start : start + self._batch_size]
                self._collection.upsert(
                    ids=[r.record_id for r in batch],
                    embeddings=[r.vector for r in batch],
                    documents=[r.text for r in batch],
                    metadatas=[
                        {
                            "knowledge_base_id": r.knowledge_base_id,
                            "document_id": r.document_id,
                            "chunk_id": r.chunk_id,
                            "seq": stamp + start + offset,
                        }
                        for offset, r in enumerate(batch)
                    ],
                )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(records))
        return len(records)

    async def similarity_search(
        self,
        query_vector: list[float],
        knowledge_base_id: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
        num_candidates: int | None = None,
    ) -> list[SearchResult]:
        candidates = resolve_num_candidates(limit, num_candidates)
        where = self._where(knowledge_base_id, document_ids)

        try:
            stored = self._collection.count()
            if stored == 0 or limit <= 0:
                return []
            results = self._collection.query(
                query_embeddings=[query_vector],
                n_results=min(candidates, stored),
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        hits: list[tuple[float, int, SearchResult]] = []
        for record_id, text, meta, distance in zip(
            results["ids"][0],
            results["documents"][0],
            results["metadatas"][0],
            results["distances"][0],
            strict=True,
        ):
            # The where clause already scopes the query; re-check anyway so a
            # backend filter bug can never leak another tenant's text.
            if meta.get("knowledge_base_id") != knowledge_base_id:
                continue
            score = 1.0 - float(distance)
            hits.append(
                (
                    score,
                    int(meta.get("seq", 0)),
                    SearchResult(
                        id=record_id,
                        document_id=str(meta.get("document_id", "")),
                        knowledge_base_id=knowledge_base_id,
                        chunk_id=str(meta.get("chunk_id", "")),
                        text=text or "",
                        score=score,
                    ),
                )
            )

        hits.sort(key=lambda hit: (-hit[0], hit[1]))
        ranked = [hit[2] for hit in hits[:limit]]
        logger.info(
            "chromadb_query",
            knowledge_base_id=knowledge_base_id,
            candidates=candidates,
            raw_results=len(results["ids"][0]),
            results_count=len(ranked),
            top_score=ranked[0].score if ranked else 0.0,
        )
        return ranked

    async def delete_by_document(self, knowledge_base_id: str, document_id: str) -> int:
        where = self._where(knowledge_base_id, [document_id])
        try:
            existing = self._collection.get(where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count:
                self._collection.delete(where=where)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_delete_by_document",
            knowledge_base_id=knowledge_base_id,
            document_id=document_id,
            deleted_count=count,
        )
        return count

    async def count(self, knowledge_base_id: str | None = None) -> int:
        try:
            if knowledge_base_id is None:
                return self._collection.count()
            existing = self._collection.get(
                where={"knowledge_base_id": knowledge_base_id},
                include=[],
            )
            return len(existing["ids"]) if existing["ids"] else 0
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:  # noqa: BLE001 - health check
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _where(knowledge_base_id: str, document_ids: list[str] | None) -> dict[str, Any]:
        """Build the mandatory tenant filter plus the optional document filter."""
        tenant = {"knowledge_base_id": knowledge_base_id}
        if not document_ids:
            return tenant
        return {"$and": [tenant, {"document_id": {"$in": list(document_ids)}}]}
