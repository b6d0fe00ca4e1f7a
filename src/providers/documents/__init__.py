"""Document record stores."""

from src.providers.documents.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore"]
