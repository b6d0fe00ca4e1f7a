"""Abstract base class for vector-store providers.

Stores :class:`~src.models.documents.EmbeddingRecord` tuples and answers
nearest-neighbour queries.  Two rules bind every implementation:

* Search is always pre-filtered on ``knowledge_base_id``.  A record from
  another knowledge base must never be returned, whatever the scores.
* Results come back in strictly non-increasing score order; equal scores
  keep insertion order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.documents import EmbeddingRecord, SearchResult


# Concrete implementations: ChromaDBProvider (persistent), InMemoryVectorStore
# Located in: src/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG pipeline."""

    @abstractmethod
    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        """Insert or replace records keyed by (knowledge base, document, chunk).

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        src.utils.errors.VectorStoreError
            If the write fails.
        """

    @abstractmethod
    async def similarity_search(
        self,
        query_vector: list[float],
        knowledge_base_id: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
        num_candidates: int | None = None,
    ) -> list[SearchResult]:
        """Return the records closest to *query_vector*.

        Parameters
        ----------
        query_vector:
            Embedding of the query; must match the stored dimension.
        knowledge_base_id:
            Mandatory tenant filter.
        limit:
            Maximum number of results.
        document_ids:
            Optional restriction to a set of documents.
        num_candidates:
            Size of the approximate-search candidate pool.  Defaults to
            ``limit * 10`` and is always raised above ``limit``.

        Returns
        -------
        list[SearchResult]
            Ranked by descending ``score`` (cosine similarity).
        """

    @abstractmethod
    async def delete_by_document(self, knowledge_base_id: str, document_id: str) -> int:
        """Delete every record of one document.  Returns the number removed."""

    @abstractmethod
    async def count(self, knowledge_base_id: str | None = None) -> int:
        """Return the number of stored records, optionally for one knowledge base."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store can be queried."""


def resolve_num_candidates(limit: int, num_candidates: int | None) -> int:
    """Default the candidate pool to ``limit * 10`` and keep it above ``limit``."""
    if num_candidates is None:
        num_candidates = limit * 10
    return max(num_candidates, limit + 1)
