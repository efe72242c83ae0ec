"""
Lightweight SQLite document store for agent configs and chat history.

Two logical collections, each row holding one JSON document:
  agents        (agent_id PK, doc)
  chat_history  ((agent_id, user_email) PK, doc, created_at, updated_at)

One ChatDB is created per process and injected into the API; the connection is
opened on first use and closed on shutdown.
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from app.core.config import CHAT_DB_PATH, DEFAULT_AGENT_ID
from app.core.errors import DatastoreError

logger = logging.getLogger(__name__)

# Project root
_ROOT = Path(__file__).resolve().parent.parent.parent

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS agents (
        agent_id INTEGER PRIMARY KEY,
        doc TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_history (
        agent_id INTEGER NOT NULL,
        user_email TEXT NOT NULL,
        doc TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (agent_id, user_email)
    )
    """,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve(path: str | Path) -> str:
    if str(path) == ":memory:":
        return ":memory:"
    p = Path(path)
    if not p.is_absolute():
        p = _ROOT / p
    p.parent.mkdir(parents=True, exist_ok=True)
    return str(p)


class ChatDB:
    """SQLite-backed document store. Safe to share across request threads."""

    def __init__(self, path: str | Path = CHAT_DB_PATH) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    # --- lifecycle ---

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            resolved = _resolve(self.path)
            conn = sqlite3.connect(resolved, check_same_thread=False)
            for stmt in _SCHEMA:
                conn.execute(stmt)
            conn.commit()
            self._conn = conn
            logger.info("[chat_db] opened path=%s", resolved)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("[chat_db] closed path=%s", self.path)

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        """Serialize access and commit (or roll back) one unit of work."""
        with self._lock:
            try:
                conn = self._connection()
                with conn:
                    yield conn
            except sqlite3.Error as e:
                logger.error("[chat_db] sqlite error: %s", e)
                raise DatastoreError(f"Datastore error: {e}") from e

    # --- agents ---

    def list_agents(self) -> list[dict[str, Any]]:
        """Return all stored agent documents ordered by id."""
        with self._tx() as conn:
            rows = conn.execute("SELECT doc FROM agents ORDER BY agent_id ASC").fetchall()
        return [json.loads(row[0]) for row in rows]

    def get_agent(self, agent_id: int) -> dict[str, Any] | None:
        with self._tx() as conn:
            row = conn.execute("SELECT doc FROM agents WHERE agent_id = ?", (agent_id,)).fetchone()
        return json.loads(row[0]) if row else None

    def max_agent_id(self) -> int:
        with self._tx() as conn:
            row = conn.execute("SELECT MAX(agent_id) FROM agents").fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    def insert_agent(self, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new agent with the next free id (never the reserved default id).
        Returns the stored document including AgentID and createdAt.
        """
        with self._tx() as conn:
            row = conn.execute("SELECT MAX(agent_id) FROM agents").fetchone()
            current = int(row[0]) if row and row[0] is not None else 0
            agent_id = max(current, DEFAULT_AGENT_ID) + 1
            doc = dict(fields)
            doc["AgentID"] = agent_id
            doc["createdAt"] = _now()
            conn.execute(
                "INSERT INTO agents (agent_id, doc) VALUES (?, ?)",
                (agent_id, json.dumps(doc)),
            )
        logger.info("[chat_db] inserted agent_id=%d", agent_id)
        return doc

    def update_agent(self, agent_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Merge fields into the stored document. Returns the new document or None if missing."""
        with self._tx() as conn:
            row = conn.execute("SELECT doc FROM agents WHERE agent_id = ?", (agent_id,)).fetchone()
            if row is None:
                return None
            doc = json.loads(row[0])
            doc.update(fields)
            doc["AgentID"] = agent_id
            doc["updatedAt"] = _now()
            conn.execute("UPDATE agents SET doc = ? WHERE agent_id = ?", (json.dumps(doc), agent_id))
        logger.info("[chat_db] updated agent_id=%d", agent_id)
        return doc

    def delete_agent_with_history(self, agent_id: int) -> int | None:
        """
        Delete the agent and every user's history with it in one transaction.
        Returns history records removed, or None (nothing deleted) if the agent is missing.
        """
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM agents WHERE agent_id = ?", (agent_id,))
            if cur.rowcount != 1:
                return None
            cur = conn.execute("DELETE FROM chat_history WHERE agent_id = ?", (agent_id,))
            removed = cur.rowcount
        logger.info("[chat_db] deleted agent_id=%d histories=%d", agent_id, removed)
        return removed

    # --- chat history ---

    def get_history(self, agent_id: int, user_email: str) -> list[dict[str, Any]] | None:
        """Return the stored message list for (agent, user), or None when no record exists."""
        with self._tx() as conn:
            row = conn.execute(
                "SELECT doc FROM chat_history WHERE agent_id = ? AND user_email = ?",
                (agent_id, user_email),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row[0]).get("chatHistory") or []

    def upsert_history(self, agent_id: int, user_email: str, messages: list[dict[str, Any]]) -> None:
        """Replace-or-insert the whole history for (agent, user). Last write wins."""
        now = _now()
        doc = {"agentId": agent_id, "userEmail": user_email, "chatHistory": messages}
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO chat_history (agent_id, user_email, doc, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (agent_id, user_email)
                DO UPDATE SET doc = excluded.doc, updated_at = excluded.updated_at
                """,
                (agent_id, user_email, json.dumps(doc), now, now),
            )
        logger.info("[chat_db] upsert_history agent_id=%d messages=%d", agent_id, len(messages))

    def append_history(
        self, agent_id: int, user_email: str, messages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Append messages to the stored history (creating it if needed). Returns the full history."""
        with self._lock:
            current = self.get_history(agent_id, user_email) or []
            updated = current + list(messages)
            self.upsert_history(agent_id, user_email, updated)
        return updated
