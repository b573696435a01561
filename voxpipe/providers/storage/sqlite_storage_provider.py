"""SQLite-backed storage provider.

Persists users, agents, integration credentials, synced call logs and
knowledge-document records to a local SQLite database using ``aiosqlite``.
Each operation opens its own connection, so concurrent sync tasks never
share a cursor.

``call_logs`` carries ``UNIQUE(organization_id, external_conversation_id)``:
a second insert of the same conversation is rejected with
:class:`~voxpipe.utils.errors.DuplicateRecordError` instead of producing a
double row when two sync runs overlap.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite
import structlog

from voxpipe.interfaces.storage_provider import IStorageProvider
from voxpipe.models.conversation import ConversationRecord, TranscriptTurn
from voxpipe.models.storage import Agent, Credential, StoredDocument, User
from voxpipe.utils.errors import DuplicateRecordError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/voxpipe.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS users (
    id               TEXT PRIMARY KEY,
    organization_id  TEXT NOT NULL,
    email            TEXT NOT NULL DEFAULT '',
    name             TEXT NOT NULL DEFAULT ''
);
""",
    """\
CREATE TABLE IF NOT EXISTS agents (
    id                 TEXT PRIMARY KEY,
    organization_id    TEXT NOT NULL,
    name               TEXT NOT NULL DEFAULT '',
    external_agent_id  TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS integrations (
    organization_id  TEXT NOT NULL,
    provider         TEXT NOT NULL,
    api_key          TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'ACTIVE',
    updated_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (organization_id, provider)
);
""",
    """\
CREATE TABLE IF NOT EXISTS call_logs (
    id                        INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_id           TEXT    NOT NULL,
    agent_id                  TEXT    NOT NULL,
    external_conversation_id  TEXT    NOT NULL,
    duration_seconds          REAL    NOT NULL DEFAULT 0,
    transcript                TEXT    NOT NULL DEFAULT '[]',
    audio_url                 TEXT    NOT NULL DEFAULT '',
    cost                      REAL    NOT NULL DEFAULT 0,
    status                    TEXT    NOT NULL DEFAULT 'completed',
    created_at                TEXT    NOT NULL,
    UNIQUE(organization_id, external_conversation_id)
);
""",
    """\
CREATE TABLE IF NOT EXISTS documents (
    id               TEXT PRIMARY KEY,
    organization_id  TEXT    NOT NULL,
    name             TEXT    NOT NULL,
    file_type        TEXT    NOT NULL DEFAULT 'unknown',
    agent_ids        TEXT    NOT NULL DEFAULT '[]',
    character_count  INTEGER NOT NULL DEFAULT 0,
    chunk_count      INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT    NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_agents_org ON agents(organization_id);",
    "CREATE INDEX IF NOT EXISTS idx_call_logs_org ON call_logs(organization_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_org ON documents(organization_id);",
]

_INSERT_CALL_LOG_SQL = """\
INSERT INTO call_logs (
    organization_id, agent_id, external_conversation_id, duration_seconds,
    transcript, audio_url, cost, status, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPSERT_INTEGRATION_SQL = """\
INSERT INTO integrations (organization_id, provider, api_key, status)
VALUES (?, ?, ?, ?)
ON CONFLICT(organization_id, provider)
DO UPDATE SET api_key    = excluded.api_key,
              status     = excluded.status,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""


class SQLiteStorageProvider(IStorageProvider):
    """SQLite-backed persistence for both pipelines."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                message=f"Cannot create database directory: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        async with self._connect() as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("storage_db_initialized", path=str(self._db_path))

    async def close(self) -> None:
        # Connections are opened per operation; nothing is held open.
        return None

    # -- Users / agents / credentials ------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, organization_id, email, name FROM users WHERE id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
        return User(**dict(row)) if row else None

    async def create_user(self, user: User) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO users (id, organization_id, email, name) VALUES (?, ?, ?, ?)",
                (user.id, user.organization_id, user.email, user.name),
            )
            await db.commit()

    async def get_agents(self, organization_id: str) -> list[Agent]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, organization_id, name, external_agent_id "
                "FROM agents WHERE organization_id = ? ORDER BY name, id",
                (organization_id,),
            )
            rows = await cursor.fetchall()
        return [Agent(**dict(r)) for r in rows]

    async def create_agent(self, agent: Agent) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO agents (id, organization_id, name, external_agent_id) "
                "VALUES (?, ?, ?, ?)",
                (agent.id, agent.organization_id, agent.name, agent.external_agent_id),
            )
            await db.commit()

    async def get_integration(self, organization_id: str, provider: str) -> Credential | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT organization_id, provider, api_key, status "
                "FROM integrations WHERE organization_id = ? AND provider = ?",
                (organization_id, provider),
            )
            row = await cursor.fetchone()
        return Credential(**dict(row)) if row else None

    async def upsert_integration(self, credential: Credential) -> None:
        async with self._connect() as db:
            await db.execute(
                _UPSERT_INTEGRATION_SQL,
                (
                    credential.organization_id,
                    credential.provider,
                    credential.api_key,
                    credential.status,
                ),
            )
            await db.commit()
        logger.info(
            "integration_saved",
            organization_id=credential.organization_id,
            provider=credential.provider,
            status=credential.status,
        )

    # -- Call logs --------------------------------------------------------

    async def get_call_log_by_external_id(
        self,
        external_conversation_id: str,
        organization_id: str,
    ) -> ConversationRecord | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM call_logs "
                "WHERE organization_id = ? AND external_conversation_id = ?",
                (organization_id, external_conversation_id),
            )
            row = await cursor.fetchone()
        return self._row_to_call_log(row) if row else None

    async def create_call_log(self, record: ConversationRecord) -> None:
        transcript = json.dumps([turn.model_dump() for turn in record.transcript])
        async with self._connect() as db:
            await db.execute(
                _INSERT_CALL_LOG_SQL,
                (
                    record.organization_id,
                    record.agent_id,
                    record.external_conversation_id,
                    record.duration_seconds,
                    transcript,
                    record.audio_url,
                    record.cost,
                    record.status,
                    record.created_at.isoformat(),
                ),
            )
            await db.commit()

    async def list_call_logs(self, organization_id: str) -> list[ConversationRecord]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM call_logs WHERE organization_id = ? ORDER BY created_at DESC",
                (organization_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_call_log(r) for r in rows]

    # -- Documents --------------------------------------------------------

    async def create_document(self, document: StoredDocument) -> None:
        created_at = document.created_at or datetime.now().astimezone()
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO documents (id, organization_id, name, file_type, agent_ids, "
                "character_count, chunk_count, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    document.id,
                    document.organization_id,
                    document.name,
                    document.file_type,
                    json.dumps(document.agent_ids),
                    document.character_count,
                    document.chunk_count,
                    created_at.isoformat(),
                ),
            )
            await db.commit()

    async def get_document(self, document_id: str, organization_id: str) -> StoredDocument | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM documents WHERE id = ? AND organization_id = ?",
                (document_id, organization_id),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def list_documents(self, organization_id: str) -> list[StoredDocument]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM documents WHERE organization_id = ? ORDER BY created_at DESC",
                (organization_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_document(r) for r in rows]

    async def update_document_agents(
        self,
        document_id: str,
        organization_id: str,
        agent_ids: list[str],
    ) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE documents SET agent_ids = ? WHERE id = ? AND organization_id = ?",
                (json.dumps(agent_ids), document_id, organization_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_document(self, document_id: str, organization_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM documents WHERE id = ? AND organization_id = ?",
                (document_id, organization_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    def get_provider_name(self) -> str:
        return "sqlite"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection, translating driver errors into StorageError."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.IntegrityError as exc:
            raise DuplicateRecordError(
                message=f"Uniqueness constraint rejected write: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"SQLite operation failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    @staticmethod
    def _row_to_call_log(row: Any) -> ConversationRecord:
        data = dict(row)
        turns = json.loads(data.get("transcript") or "[]")
        return ConversationRecord(
            organization_id=data["organization_id"],
            agent_id=data["agent_id"],
            external_conversation_id=data["external_conversation_id"],
            duration_seconds=data["duration_seconds"],
            transcript=[TranscriptTurn(**turn) for turn in turns],
            audio_url=data["audio_url"],
            cost=data["cost"],
            status=data["status"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    @staticmethod
    def _row_to_document(row: Any) -> StoredDocument:
        data = dict(row)
        data["agent_ids"] = json.loads(data.get("agent_ids") or "[]")
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return StoredDocument(**data)
