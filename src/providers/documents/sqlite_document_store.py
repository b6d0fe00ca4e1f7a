"""SQLite-backed document store.

Persists :class:`Document` records to a local SQLite database at
``data/documents.db``.  Uses ``aiosqlite`` for async I/O; every call opens
its own short-lived connection so the store is safe to share between the
API handlers and the ingestion workers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_store import IDocumentStore
from src.models.documents import Document, DocumentStatus
from src.utils.errors import DocumentNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id                 TEXT PRIMARY KEY,
    knowledge_base_id  TEXT NOT NULL,
    source_locator     TEXT NOT NULL,
    file_name          TEXT NOT NULL DEFAULT '',
    file_size          INTEGER,
    user_id            TEXT,
    status             TEXT NOT NULL,
    error_message      TEXT,
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_kb ON documents(knowledge_base_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(status);",
]

_COLUMNS = (
    "id, knowledge_base_id, source_locator, file_name, file_size, user_id, "
    "status, error_message, created_at, updated_at"
)


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed document persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    async def create(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                f"INSERT INTO documents ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    document.id,
                    document.knowledge_base_id,
                    document.source_locator,
                    document.file_name,
                    document.file_size,
                    document.user_id,
                    document.status.value,
                    document.error_message,
                    document.created_at.isoformat(),
                    document.updated_at.isoformat(),
                ),
            )
            await db.commit()
        logger.info(
            "document_registered",
            document_id=document.id,
            knowledge_base_id=document.knowledge_base_id,
        )
        return document

    async def get(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_document(dict(row)) if row else None

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_message: str | None = None,
    ) -> Document:
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE documents SET status = ?, error_message = ?, updated_at = ? WHERE id = ?",
                (status.value, error_message, now, document_id),
            )
            await db.commit()
            updated = cursor.rowcount

        if not updated:
            raise DocumentNotFoundError(message=f"Document '{document_id}' not found")

        logger.info(
            "document_status_updated",
            document_id=document_id,
            status=status.value,
            error_message=error_message,
        )
        document = await self.get(document_id)
        assert document is not None
        return document

    async def delete(self, document_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def list_by_knowledge_base(self, knowledge_base_id: str) -> list[Document]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE knowledge_base_id = ? "
                "ORDER BY created_at ASC",
                (knowledge_base_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_document(dict(r)) for r in rows]

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        return Document(
            id=row["id"],
            knowledge_base_id=row["knowledge_base_id"],
            source_locator=row["source_locator"],
            file_name=row["file_name"] or "",
            file_size=row["file_size"],
            user_id=row["user_id"],
            status=DocumentStatus(row["status"]),
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
