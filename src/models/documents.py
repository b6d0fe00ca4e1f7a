"""Ingestion and retrieval data models.

Covers the lifecycle of an uploaded knowledge-base document and everything
derived from it:

    Document  --(Chunk Extractor)-->  Chunk[]
    Chunk[]   --(Embedding Generator)-->  EmbeddingRecord[]  (vector store)
    query     --(Retrieval Service)-->  SearchResult[] / RetrievalResult

A knowledge base is the tenant boundary: every EmbeddingRecord and every
SearchResult carries its ``knowledge_base_id`` and searches are always
scoped to exactly one knowledge base.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Processing status of a registered document."""

    PENDING = "pending"
    PROCESSED = "processed"
    ERROR = "error"


class Document(BaseModel):
    """A registered source document belonging to one knowledge base.

    Created when an upload is registered, then mutated by the ingestion
    pipeline (``status`` / ``error_message``).  ``status`` is the only
    signal a poller needs to know whether ingestion has finished.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    knowledge_base_id: str
    source_locator: str = Field(description="URL or filesystem path of the source bytes.")
    file_name: str = ""
    file_size: int | None = Field(default=None, ge=0)
    user_id: str | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Chunk(BaseModel):
    """A bounded unit of extracted document text with a stable identifier.

    Ephemeral: produced by the chunk extractor and consumed straight away
    by the embedding generator.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Stable id, e.g. 'page_3' or 'chunk_2'.")
    text: str
    source_document_id: str = ""


class EmbeddingRecord(BaseModel):
    """One stored vector, unique per (knowledge base, document, chunk)."""

    model_config = ConfigDict(frozen=True)

    knowledge_base_id: str
    document_id: str
    chunk_id: str
    text: str
    vector: list[float]

    @property
    def record_id(self) -> str:
        """Deterministic storage key; re-ingesting a chunk overwrites it."""
        return f"{self.knowledge_base_id}:{self.document_id}:{self.chunk_id}"


class EmbeddingResult(BaseModel):
    """Aggregate outcome of one ``generate_and_store`` run.

    ``success`` is true only when no chunk failed; ``successful`` and
    ``failed`` always add up to ``total``.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    total: int = Field(ge=0)
    successful: int = Field(ge=0)
    failed: int = Field(ge=0)
    errors: list[str] = Field(default_factory=list)


class SearchResult(BaseModel):
    """A single nearest-neighbour hit from the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    knowledge_base_id: str
    chunk_id: str
    text: str
    score: float


class RetrievalResult(BaseModel):
    """Context assembled for a handler from the top search hits.

    An empty result is not an error: ``has_relevant_information`` is simply
    false and ``relevant_context`` is empty.
    """

    model_config = ConfigDict(frozen=True)

    relevant_context: str = ""
    has_relevant_information: bool = False
    results: list[SearchResult] = Field(default_factory=list)


class IngestionOutcome(BaseModel):
    """Summary of one document ingestion run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: DocumentStatus
    chunk_count: int = 0
    embedding: EmbeddingResult | None = None
    error_message: str | None = None

    def to_summary(self) -> dict[str, Any]:
        """Shape used by the process endpoint and the CLI."""
        embedding = self.embedding
        return {
            "document_id": self.document_id,
            "status": self.status.value,
            "extraction": {"success": self.chunk_count > 0, "chunk_count": self.chunk_count},
            "embedding": (
                {
                    "success": embedding.success,
                    "total": embedding.total,
                    "successful": embedding.successful,
                    "failed": embedding.failed,
                }
                if embedding is not None
                else None
            ),
            "error_message": self.error_message,
        }
