"""Retrieval service: query text in, ranked knowledge-base context out.

Embeds the query with the same model the corpus was embedded with, runs a
knowledge-base-scoped similarity search and joins the hit texts, in rank
order, into one context string for the handlers.

Finding nothing is not an error, and neither is a failing embedding or
vector-store call: :meth:`RetrievalService.retrieve` returns
``has_relevant_information=False`` and an empty context so the caller can
degrade gracefully.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.interfaces.vector_store_provider import resolve_num_candidates
from src.models.documents import RetrievalResult, SearchResult
from src.utils.errors import InvalidRequestError, SupportDeskError

if TYPE_CHECKING:
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.services.ingestion.embedding_generator import EmbeddingGenerator

logger = structlog.get_logger(logger_name=__name__)

_CONTEXT_SEPARATOR = "\n\n"


class RetrievalService:
    """Semantic search over one knowledge base at a time.

    Parameters
    ----------
    embedding_generator:
        Supplies query vectors (``embed_query``) from the corpus model.
    vector_store:
        The nearest-neighbour index.
    num_candidates_factor:
        Candidate pool size as a multiple of ``limit``.
    """

    def __init__(
        self,
        embedding_generator: EmbeddingGenerator,
        vector_store: IVectorStoreProvider,
        num_candidates_factor: int = 10,
    ) -> None:
        self._embedding_generator = embedding_generator
        self._vector_store = vector_store
        self._num_candidates_factor = max(1, num_candidates_factor)

    async def retrieve(
        self,
        query: str,
        knowledge_base_id: str,
        limit: int = 5,
        document_ids: list[str] | None = None,
    ) -> RetrievalResult:
        """Return the top *limit* chunks for *query* as a single context string.

        Embedding or vector-store failures are logged and reported as "no
        relevant information" rather than raised.
        """
        try:
            results = await self.search_by_text(
                query,
                knowledge_base_id,
                limit=limit,
                document_ids=document_ids,
            )
        except SupportDeskError as exc:
            logger.error("retrieval_failed", knowledge_base_id=knowledge_base_id, error=str(exc))
            results = []

        if not results:
            logger.info("retrieval_empty", knowledge_base_id=knowledge_base_id)
            return RetrievalResult(relevant_context="", has_relevant_information=False, results=[])

        context = _CONTEXT_SEPARATOR.join(r.text for r in results)
        logger.info(
            "retrieval_completed",
            knowledge_base_id=knowledge_base_id,
            results=len(results),
            top_score=round(results[0].score, 4),
        )
        return RetrievalResult(
            relevant_context=context,
            has_relevant_information=True,
            results=results,
        )

    async def search_by_text(
        self,
        query: str,
        knowledge_base_id: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
        num_candidates: int | None = None,
    ) -> list[SearchResult]:
        if not query.strip():
            raise InvalidRequestError(message="Search query must not be empty")
        vector = await self._embedding_generator.embed_query(query)
        return await self.search_by_vector(
            vector,
            knowledge_base_id,
            limit=limit,
            document_ids=document_ids,
            num_candidates=num_candidates,
        )

    async def search_by_vector(
        self,
        vector: list[float],
        knowledge_base_id: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
        num_candidates: int | None = None,
    ) -> list[SearchResult]:
        if not knowledge_base_id:
            raise InvalidRequestError(message="knowledge_base_id is required")
        if limit < 1:
            raise InvalidRequestError(message="limit must be at least 1")
        if not vector:
            raise InvalidRequestError(message="Query vector must not be empty")

        if num_candidates is None:
            num_candidates = limit * self._num_candidates_factor
        candidates = resolve_num_candidates(limit, num_candidates)

        results = await self._vector_store.similarity_search(
            vector,
            knowledge_base_id,
            limit=limit,
            document_ids=document_ids or None,
            num_candidates=candidates,
        )
        # Stores are expected to rank already; sort again so callers can rely
        # on descending order whatever the backend. sorted() is stable.
        ranked = sorted(
            (r for r in results if r.knowledge_base_id == knowledge_base_id),
            key=lambda r: r.score,
            reverse=True,
        )
        return ranked[:limit]
