"""Abstract base class for document-record persistence.

Documents are registered by the upload flow and mutated by the ingestion
pipeline; ``status`` is the only coordination point between the two.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.documents import Document, DocumentStatus


# Concrete implementation: SQLiteDocumentStore (src/providers/documents/)
class IDocumentStore(ABC):
    """Contract for storing and updating :class:`Document` records."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables if needed."""

    @abstractmethod
    async def create(self, document: Document) -> Document:
        """Persist a newly registered document and return it."""

    @abstractmethod
    async def get(self, document_id: str) -> Document | None:
        """Return the document or ``None`` when the id is unknown."""

    @abstractmethod
    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_message: str | None = None,
    ) -> Document:
        """Set ``status`` (and ``error_message``) and return the updated record.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If the id is unknown.
        """

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Remove the record.  Returns ``False`` when it did not exist."""

    @abstractmethod
    async def list_by_knowledge_base(self, knowledge_base_id: str) -> list[Document]:
        """Return all documents of one knowledge base, oldest first."""
