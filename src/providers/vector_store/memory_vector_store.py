"""In-process vector store backed by numpy.

Exact (brute-force) cosine search over records held in a dict, so
``num_candidates`` has no recall effect here beyond being validated.
Records keep their first insertion position when overwritten, which makes
tie-breaking deterministic.  Suitable for tests, demos and one-shot CLI
runs; use :class:`ChromaDBProvider` for anything that must persist.
"""

from __future__ import annotations

import numpy as np
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider, resolve_num_candidates
from src.models.documents import EmbeddingRecord, SearchResult
from src.utils.errors import VectorStoreError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    """Exact cosine-similarity store living in process memory."""

    def __init__(self) -> None:
        self._records: dict[str, EmbeddingRecord] = {}
        self._dimension: int | None = None

    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        for record in records:
            if self._dimension is None:
                self._dimension = len(record.vector)
            elif len(record.vector) != self._dimension:
                raise VectorStoreError(
                    message=(
                        f"Vector dimension {len(record.vector)} does not match "
                        f"store dimension {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )
            self._records[record.record_id] = record
        logger.debug("memory_vector_upsert", count=len(records), total=len(self._records))
        return len(records)

    async def similarity_search(
        self,
        query_vector: list[float],
        knowledge_base_id: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
        num_candidates: int | None = None,
    ) -> list[SearchResult]:
        resolve_num_candidates(limit, num_candidates)
        wanted_docs = set(document_ids) if document_ids else None
        pool = [
            record
            for record in self._records.values()
            if record.knowledge_base_id == knowledge_base_id
            and (wanted_docs is None or record.document_id in wanted_docs)
        ]
        if not pool or limit <= 0:
            return []

        matrix = np.asarray([record.vector for record in pool], dtype=float)
        query = np.asarray(query_vector, dtype=float)
        if matrix.shape[1] != query.shape[0]:
            raise VectorStoreError(
                message=f"Query dimension {query.shape[0]} does not match store dimension {matrix.shape[1]}",
                provider_name=self.get_provider_name(),
            )
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        # Stable sort on the negated score keeps insertion order among ties.
        order = np.argsort(-scores, kind="stable")[:limit]
        return [
            SearchResult(
                id=pool[i].record_id,
                document_id=pool[i].document_id,
                knowledge_base_id=pool[i].knowledge_base_id,
                chunk_id=pool[i].chunk_id,
                text=pool[i].text,
                score=float(scores[i]),
            )
            for i in order
        ]

    async def delete_by_document(self, knowledge_base_id: str, document_id: str) -> int:
        doomed = [
            key
            for key, record in self._records.items()
            if record.knowledge_base_id == knowledge_base_id and record.document_id == document_id
        ]
        for key in doomed:
            del self._records[key]
        return len(doomed)

    async def count(self, knowledge_base_id: str | None = None) -> int:
        if knowledge_base_id is None:
            return len(self._records)
        return sum(1 for r in self._records.values() if r.knowledge_base_id == knowledge_base_id)

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True
