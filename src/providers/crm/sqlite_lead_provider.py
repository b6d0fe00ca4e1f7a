"""SQLite-backed lead registry.

Local stand-in for a CRM.  A unique index on the lower-cased email makes
lead creation idempotent per address: a second ``create_lead`` for the same
email raises :class:`CRMError` rather than inserting a twin, and the lead
tool checks ``find_lead_by_email`` first to report a duplicate.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.lead_provider import ILeadProvider
from src.utils.errors import CRMError

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS leads (
    id          TEXT PRIMARY KEY,
    first_name  TEXT NOT NULL,
    last_name   TEXT NOT NULL DEFAULT '',
    email       TEXT NOT NULL,
    source      TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_CREATE_INDEX_SQL = "CREATE UNIQUE INDEX IF NOT EXISTS idx_leads_email ON leads(lower(email));"


class SQLiteLeadProvider(ILeadProvider):
    """Lead registry persisted to ``data/leads.db``."""

    def __init__(self, db_path: str | Path = "data/leads.db", lead_source: str = "Website Chat") -> None:
        self._db_path = Path(db_path)
        self._lead_source = lead_source

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.execute(_CREATE_INDEX_SQL)
            await db.commit()
        logger.info("lead_db_initialized", path=str(self._db_path))

    async def find_lead_by_email(self, email: str) -> str | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT id FROM leads WHERE lower(email) = lower(?)",
                (email.strip(),),
            )
            row = await cursor.fetchone()
        return row[0] if row else None

    async def create_lead(self, first_name: str, last_name: str, email: str) -> str:
        lead_id = uuid.uuid4().hex
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    "INSERT INTO leads (id, first_name, last_name, email, source, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        lead_id,
                        first_name,
                        last_name,
                        email.strip(),
                        self._lead_source,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as exc:
            raise CRMError(
                message=f"A lead with email {email} already exists",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("lead_created", lead_id=lead_id, provider=self.get_provider_name())
        return lead_id

    def get_provider_name(self) -> str:
        return "sqlite"
