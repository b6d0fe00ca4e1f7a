"""SQLite-backed conversation store.

Append-only message log.  An ``AUTOINCREMENT`` primary key records arrival
order, and reads always ``ORDER BY seq`` so messages are never reordered.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.conversation_store import IConversationStore
from src.models.conversation import ConversationMessage, MessageRole

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS conversation_messages (
    seq                INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id    TEXT NOT NULL,
    knowledge_base_id  TEXT NOT NULL,
    role               TEXT NOT NULL,
    content            TEXT NOT NULL,
    timestamp          TEXT NOT NULL,
    metadata           TEXT
);
"""

_CREATE_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation "
    "ON conversation_messages(conversation_id, seq);"
)


class SQLiteConversationStore(IConversationStore):
    """SQLite-backed conversation history."""

    def __init__(self, db_path: str | Path = "data/conversations.db") -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.execute(_CREATE_INDEX_SQL)
            await db.commit()
        logger.info("conversation_db_initialized", path=str(self._db_path))

    async def append_messages(
        self,
        conversation_id: str,
        knowledge_base_id: str,
        messages: list[ConversationMessage],
    ) -> int:
        if not messages:
            return 0
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(
                "INSERT INTO conversation_messages "
                "(conversation_id, knowledge_base_id, role, content, timestamp, metadata) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (
                        conversation_id,
                        knowledge_base_id,
                        m.role.value,
                        m.content,
                        m.timestamp.isoformat(),
                        json.dumps(m.metadata) if m.metadata is not None else None,
                    )
                    for m in messages
                ],
            )
            await db.commit()
        logger.debug("conversation_messages_appended", conversation_id=conversation_id, count=len(messages))
        return len(messages)

    async def get_messages(self, conversation_id: str) -> list[ConversationMessage]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT role, content, timestamp, metadata FROM conversation_messages "
                "WHERE conversation_id = ? ORDER BY seq ASC",
                (conversation_id,),
            )
            rows = await cursor.fetchall()
        return [
            ConversationMessage(
                role=MessageRole(row["role"]),
                content=row["content"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                metadata=json.loads(row["metadata"]) if row["metadata"] else None,
            )
            for row in rows
        ]
