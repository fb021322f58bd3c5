"""
Conversation Store — append-only, hash-chained conversation memory.

Behavioral Contract:
- Append-only. No record is ever modified or deleted.
- Each record is hashed and chained to the previous record.
- Queryable by id and by room, oldest first.
- Any storage error surfaces as PersistenceFailure.
"""

import hashlib
import json
import sqlite3
import threading
from typing import List, Optional

from hyperfy_agent.errors import PersistenceFailure
from hyperfy_agent.models.memory import ConversationRecord


def _compute_signature(record: ConversationRecord) -> str:
    record_dict = record.model_dump(mode="json")
    # Zero out signature before hashing (it's what we're computing)
    record_dict["signature"] = ""
    record_bytes = json.dumps(record_dict, sort_keys=True, default=str).encode()
    return hashlib.sha256(record_bytes).hexdigest()


class ConversationStore:
    """
    SQLite-backed conversation memory.
    Uses an in-memory database unless a path is given.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the memories table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                room_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                agent_id TEXT NOT NULL,
                action TEXT,
                signature TEXT NOT NULL,
                prior_record_hash TEXT,
                record_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_memories_room_id ON memories(room_id)
        """)
        self._conn.commit()

    def append(self, record: ConversationRecord) -> ConversationRecord:
        """
        Durably store a record and return it with its integrity fields set.

        Raises PersistenceFailure if the record cannot be written, including
        when a record with the same id already exists.
        """
        with self._lock:
            try:
                prior_hash = self._get_latest_hash()
                chained = record.model_copy(update={"prior_record_hash": prior_hash, "signature": ""})
                stored = chained.model_copy(update={"signature": _compute_signature(chained)})

                self._conn.execute(
                    """
                    INSERT INTO memories (
                        id, room_id, user_id, agent_id, action,
                        signature, prior_record_hash, record_json, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        stored.id,
                        stored.room_id,
                        stored.user_id,
                        stored.agent_id,
                        stored.content.action,
                        stored.signature,
                        stored.prior_record_hash,
                        stored.model_dump_json(),
                        stored.created_at.isoformat(),
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise PersistenceFailure(
                    f"Could not store conversation record {record.id}: {exc}",
                    record_id=record.id,
                ) from exc
        return stored

    def _get_latest_hash(self) -> Optional[str]:
        """Get the signature of the most recent record."""
        row = self._conn.execute(
            "SELECT signature FROM memories ORDER BY rowid DESC LIMIT 1"
        ).fetchone()
        return row["signature"] if row else None

    def _deserialize(self, row: sqlite3.Row) -> ConversationRecord:
        return ConversationRecord.model_validate_json(row["record_json"])

    def get_by_id(self, record_id: str) -> Optional[ConversationRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT record_json FROM memories WHERE id = ?", (record_id,)
            ).fetchone()
        return self._deserialize(row) if row else None

    def query_by_room(self, room_id: str, limit: Optional[int] = None) -> List[ConversationRecord]:
        """Records of a room, oldest first. With `limit`, only the most recent ones."""
        with self._lock:
            if limit is None:
                rows = self._conn.execute(
                    "SELECT record_json FROM memories WHERE room_id = ? ORDER BY rowid",
                    (room_id,),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT record_json FROM memories WHERE room_id = ? ORDER BY rowid DESC LIMIT ?",
                    (room_id, limit),
                ).fetchall()
                rows.reverse()
        return [self._deserialize(r) for r in rows]

    def verify_chain_integrity(self) -> bool:
        """Verify no records have been tampered with."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT record_json, signature FROM memories ORDER BY rowid"
            ).fetchall()

        for i, row in enumerate(rows):
            record = self._deserialize(row)
            if record.signature != _compute_signature(record):
                return False
            expected_prior = rows[i - 1]["signature"] if i > 0 else None
            if record.prior_record_hash != expected_prior:
                return False
        return True

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) as cnt FROM memories").fetchone()
        return row["cnt"]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
