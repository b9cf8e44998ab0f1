"""SQLite storage adapter.

Implements the core ledger and queue store ports using a simple SQLite
database.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.models import PostItem, QueueEntry, QueueStatus


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the LedgerStorePort and QueueStorePort contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - reposts: dedup ledger keyed by (source_name, message_id)
        - post_queue: publish-ready posts with a status lifecycle
        """

        with self._connect() as conn:
            # reposts records every ingested message so restarts and duplicate
            # deliveries are skipped before anything is queued.
            # Fields:
            # - source_name: chat id for observed chats, "ingest" for pushes
            # - message_id: message id within that source
            # - content_hash: fingerprint kept for auditing
            # - created_at: first time the pair was recorded
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reposts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_name TEXT NOT NULL,
                    message_id INTEGER NOT NULL,
                    content_hash TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMP NOT NULL,
                    UNIQUE (source_name, message_id)
                )
                """
            )
            # post_queue holds normalized posts until the scheduler publishes
            # them. Rows are never deleted by the relay.
            # Fields:
            # - message_data: JSON payload of the normalized post
            # - status: pending | posted | failed
            # - created_at: enqueue time, drives FIFO order
            # - posted_at: time of the publish attempt
            # - error_message: publish error for failed rows
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS post_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_data TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'posted', 'failed')),
                    created_at TIMESTAMP NOT NULL,
                    posted_at TIMESTAMP,
                    error_message TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_post_queue_status_created "
                "ON post_queue (status, created_at)"
            )

    def has_repost(self, source_name: str, message_id: int) -> bool:
        """Check if a (source, message id) pair has already been recorded."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM reposts WHERE source_name = ? AND message_id = ? LIMIT 1",
                (source_name, message_id),
            ).fetchone()
        return row is not None

    def upsert_repost(self, source_name: str, message_id: int, content_hash: str) -> None:
        """Insert a ledger record, refreshing the hash if the pair exists."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO reposts (source_name, message_id, content_hash, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(source_name, message_id) DO UPDATE SET content_hash = excluded.content_hash
                """,
                (source_name, message_id, content_hash, now.isoformat()),
            )

    def insert_entry(self, item: PostItem, created_at: datetime) -> int:
        """Append a pending queue row and return its id."""

        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO post_queue (message_data, status, created_at) VALUES (?, ?, ?)",
                (
                    json.dumps(item.to_payload(), ensure_ascii=False),
                    QueueStatus.PENDING.value,
                    created_at.isoformat(),
                ),
            )
            return int(cur.lastrowid)

    def select_pending(self, limit: int) -> list[QueueEntry]:
        """Return up to ``limit`` pending rows, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM post_queue
                WHERE status = ?
                ORDER BY created_at ASC, id ASC
                LIMIT ?
                """,
                (QueueStatus.PENDING.value, limit),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def update_status(
        self,
        entry_id: int,
        status: QueueStatus,
        posted_at: datetime,
        error_message: Optional[str] = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE post_queue SET status = ?, posted_at = ?, error_message = ? WHERE id = ?",
                (status.value, posted_at.isoformat(), error_message, entry_id),
            )

    def count_by_status(self) -> dict[str, int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM post_queue GROUP BY status"
            ).fetchall()
        return {row["status"]: int(row["n"]) for row in rows}

    def select_entries(self, status: Optional[QueueStatus], limit: int) -> list[QueueEntry]:
        """Return the newest rows, optionally filtered by status."""

        query = "SELECT * FROM post_queue"
        params: list[object] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> QueueEntry:
        return QueueEntry(
            id=int(row["id"]),
            item=PostItem.from_payload(json.loads(row["message_data"])),
            status=QueueStatus(row["status"]),
            created_at=_parse_ts(row["created_at"]),
            posted_at=_parse_ts(row["posted_at"]),
            error_message=row["error_message"],
        )
