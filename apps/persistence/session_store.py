"""Client-local session snapshots.

The orchestrator writes a snapshot after every completed turn and reads back
only the last conversation id on startup.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from essaycoach.core.stages import SKELETON_FIELDS

LAST_CONVERSATION_KEY = "last_conversation_id"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    conversation_id TEXT PRIMARY KEY,
    stage TEXT NOT NULL,
    payload TEXT NOT NULL,
    saved_at TIMESTAMP NOT NULL
);
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


class SessionSnapshot(BaseModel):
    """What gets persisted for one conversation."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(..., alias="conversationId")
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    stage: str
    skeleton: Dict[str, Optional[str]] = Field(default_factory=dict)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="savedAt")

    @property
    def completion_percent(self) -> int:
        filled = sum(1 for name in SKELETON_FIELDS if (self.skeleton.get(name) or "").strip())
        return round(filled / len(SKELETON_FIELDS) * 100)


class SessionPersistence(Protocol):
    """Port the orchestrator depends on."""

    def load_conversation_id(self) -> Optional[str]: ...

    def save_snapshot(self, snapshot: SessionSnapshot) -> None: ...


class InMemorySessionStore:
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self, conversation_id: str | None = None) -> None:
        self.snapshots: Dict[str, SessionSnapshot] = {}
        self.last_conversation_id = conversation_id

    def load_conversation_id(self) -> Optional[str]:
        return self.last_conversation_id

    def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        self.snapshots[snapshot.conversation_id] = snapshot
        self.last_conversation_id = snapshot.conversation_id

    def get_snapshot(self, conversation_id: str) -> Optional[SessionSnapshot]:
        return self.snapshots.get(conversation_id)

    def list_snapshots(self, limit: int = 50, offset: int = 0) -> List[SessionSnapshot]:
        ordered = sorted(self.snapshots.values(), key=lambda item: item.saved_at, reverse=True)
        return ordered[offset : offset + limit]


class SQLiteSessionStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        """Create a connection, ensuring the parent directory exists."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as con:
            con.executescript(SCHEMA_SQL)

    def load_conversation_id(self) -> Optional[str]:
        with self._connect() as con:
            row = con.execute("SELECT value FROM settings WHERE key = ?", (LAST_CONVERSATION_KEY,)).fetchone()
        return row[0] if row and row[0] else None

    def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        payload = snapshot.model_dump_json(by_alias=True)
        with self._connect() as con:
            con.execute(
                "INSERT OR REPLACE INTO snapshots (conversation_id, stage, payload, saved_at) VALUES (?, ?, ?, ?)",
                (snapshot.conversation_id, snapshot.stage, payload, snapshot.saved_at.isoformat()),
            )
            con.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (LAST_CONVERSATION_KEY, snapshot.conversation_id),
            )
            con.commit()

    def get_snapshot(self, conversation_id: str) -> Optional[SessionSnapshot]:
        with self._connect() as con:
            row = con.execute(
                "SELECT payload FROM snapshots WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
        if row is None:
            return None
        return SessionSnapshot.model_validate_json(row[0])

    def list_snapshots(self, limit: int = 50, offset: int = 0) -> List[SessionSnapshot]:
        with self._connect() as con:
            rows = con.execute(
                "SELECT payload FROM snapshots ORDER BY saved_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [SessionSnapshot.model_validate_json(row[0]) for row in rows]


__all__ = [
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "SessionPersistence",
    "SessionSnapshot",
]
