"""
Document Store for the suggestion engine
========================================

SQLite persistence (via aiosqlite) for the editor's external collaborators:
- Documents: {id, owner_id, title, content, timestamp}
- User settings: preferred tone and writing goals per owner
- Applied suggestions: a log of accepted suggestions for personalization

The editing core never talks to the store directly; it only loads text in
and saves text out through the HTTP routes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiosqlite
from pydantic import AliasChoices, BaseModel, Field

# Use optimized JSON (orjson backed)
import json_utils as json

from config import config
from suggest_edit.models import UserSettings

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150


class StoredDocument(BaseModel):
    """A persisted document."""
    model_config = {"populate_by_name": True}

    id: str
    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "ownerId"))
    title: str
    content: str
    timestamp: datetime

    @property
    def excerpt(self) -> str:
        if len(self.content) <= EXCERPT_LENGTH:
            return self.content
        return self.content[:EXCERPT_LENGTH] + "..."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore:
    """Manages the SQLite database for documents, settings and the applied log"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.STORAGE.db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Open the connection and create the schema"""
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA synchronous=NORMAL")
        await self._create_schema()
        await self._conn.commit()
        logger.info(f"Document store ready at {self.db_path}")

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("DocumentStore not initialized. Call initialize() first")
        return self._conn

    async def _create_schema(self):
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_documents_owner
                ON documents(owner_id, timestamp DESC);

            CREATE TABLE IF NOT EXISTS user_settings (
                owner_id TEXT PRIMARY KEY,
                preferred_tone TEXT NOT NULL,
                writing_goals_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS applied_suggestions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                suggestion_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                original TEXT,
                suggested TEXT,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_applied_owner
                ON applied_suggestions(owner_id, doc_id);
        """)

    # ---------- Documents ----------

    @staticmethod
    def _row_to_document(row: Any) -> StoredDocument:
        return StoredDocument(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            content=row["content"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    async def create_document(self, owner_id: str, title: str, content: str) -> StoredDocument:
        document = StoredDocument(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            title=title,
            content=content,
            timestamp=_now(),
        )
        await self.conn.execute(
            "INSERT INTO documents (id, owner_id, title, content, timestamp) VALUES (?, ?, ?, ?, ?)",
            (document.id, document.owner_id, document.title, document.content, document.timestamp.isoformat()),
        )
        await self.conn.commit()
        return document

    async def get_document(self, doc_id: str) -> Optional[StoredDocument]:
        async with self.conn.execute(
            "SELECT id, owner_id, title, content, timestamp FROM documents WHERE id = ?",
            (doc_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def update_document(
        self,
        doc_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Optional[StoredDocument]:
        """Update title and/or content; bumps the timestamp. None if missing."""
        document = await self.get_document(doc_id)
        if document is None:
            return None

        updated = document.model_copy(
            update={
                "title": document.title if title is None else title,
                "content": document.content if content is None else content,
                "timestamp": _now(),
            }
        )
        await self.conn.execute(
            "UPDATE documents SET title = ?, content = ?, timestamp = ? WHERE id = ?",
            (updated.title, updated.content, updated.timestamp.isoformat(), doc_id),
        )
        await self.conn.commit()
        return updated

    def document_saver(self, doc_id: str):
        """Save callback for an editor autosaver; raises LookupError once the document is gone."""

        async def _save(title: str, content: str) -> StoredDocument:
            document = await self.update_document(doc_id, title=title, content=content)
            if document is None:
                raise LookupError(f"Document {doc_id} not found")
            return document

        return _save

    async def delete_document(self, doc_id: str) -> bool:
        cursor = await self.conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
        await self.conn.commit()
        return cursor.rowcount > 0

    async def list_documents(self, owner_id: str) -> List[StoredDocument]:
        """Documents of one owner, most recently saved first"""
        async with self.conn.execute(
            "SELECT id, owner_id, title, content, timestamp FROM documents "
            "WHERE owner_id = ? ORDER BY timestamp DESC",
            (owner_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_document(row) for row in rows]

    # ---------- User settings ----------

    async def get_settings(self, owner_id: str) -> UserSettings:
        """Stored settings, or the defaults when the owner never saved any"""
        async with self.conn.execute(
            "SELECT preferred_tone, writing_goals_json FROM user_settings WHERE owner_id = ?",
            (owner_id,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return UserSettings(
                preferred_tone=config.DEFAULT_PREFERRED_TONE,
                writing_goals=list(config.DEFAULT_WRITING_GOALS),
            )

        try:
            goals = json.loads(row["writing_goals_json"])
        except json.JSONDecodeError:
            logger.warning(f"Corrupt writing goals for {owner_id}, using defaults")
            goals = list(config.DEFAULT_WRITING_GOALS)
        return UserSettings(
            preferred_tone=row["preferred_tone"] or config.DEFAULT_PREFERRED_TONE,
            writing_goals=goals or list(config.DEFAULT_WRITING_GOALS),
        )

    async def save_settings(self, owner_id: str, settings: UserSettings) -> UserSettings:
        await self.conn.execute(
            "INSERT INTO user_settings (owner_id, preferred_tone, writing_goals_json, updated_at) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(owner_id) DO UPDATE SET preferred_tone = excluded.preferred_tone, "
            "writing_goals_json = excluded.writing_goals_json, updated_at = excluded.updated_at",
            (owner_id, settings.preferred_tone, json.dumps(settings.writing_goals), _now().isoformat()),
        )
        await self.conn.commit()
        return settings

    # ---------- Applied suggestions ----------

    async def log_applied_suggestion(
        self,
        owner_id: str,
        doc_id: str,
        suggestion_id: str,
        kind: str,
        original: Optional[str] = None,
        suggested: Optional[str] = None,
    ) -> int:
        cursor = await self.conn.execute(
            "INSERT INTO applied_suggestions "
            "(owner_id, doc_id, suggestion_id, kind, original, suggested, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (owner_id, doc_id, suggestion_id, kind, original, suggested, _now().isoformat()),
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def applied_suggestions(self, owner_id: str, doc_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = (
            "SELECT doc_id, suggestion_id, kind, original, suggested, timestamp "
            "FROM applied_suggestions WHERE owner_id = ?"
        )
        params: List[Any] = [owner_id]
        if doc_id is not None:
            query += " AND doc_id = ?"
            params.append(doc_id)
        query += " ORDER BY id"

        async with self.conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]
