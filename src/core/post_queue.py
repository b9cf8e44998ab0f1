"""Durable post queue (core domain).

Entries move pending -> posted | failed. Both terminal states are final; the
core never re-queues a failed entry.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from core.models import PostItem, QueueEntry, QueueStats, QueueStatus
from core.ports import QueueStorePort

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostQueue:
    def __init__(self, store: QueueStorePort) -> None:
        self._store = store

    async def enqueue(self, item: PostItem) -> int:
        """Append a pending entry. Errors are logged and re-raised."""

        try:
            entry_id = await asyncio.to_thread(self._store.insert_entry, item, _utcnow())
        except Exception:
            LOGGER.exception("Failed to add %s post to queue", item.kind.value)
            raise
        LOGGER.info("Added message to queue. Type: %s", item.kind.value)
        return entry_id

    async def peek_pending(self, limit: int) -> list[QueueEntry]:
        """Return up to ``limit`` pending entries, oldest first."""

        if limit <= 0:
            return []
        try:
            return await asyncio.to_thread(self._store.select_pending, limit)
        except Exception:
            LOGGER.exception("Failed to fetch pending messages")
            return []

    async def mark_posted(self, entry_id: int) -> None:
        await self._set_status(entry_id, QueueStatus.POSTED, None)

    async def mark_failed(self, entry_id: int, message: str) -> None:
        await self._set_status(entry_id, QueueStatus.FAILED, message or "Unknown error")

    async def _set_status(self, entry_id: int, status: QueueStatus, error: Optional[str]) -> None:
        try:
            await asyncio.to_thread(self._store.update_status, entry_id, status, _utcnow(), error)
        except Exception:
            LOGGER.exception("Failed to mark message %s as %s", entry_id, status.value)

    async def stats(self) -> QueueStats:
        """Counts per status. Errors answer zeros; this is observability only."""

        try:
            counts = await asyncio.to_thread(self._store.count_by_status)
        except Exception:
            LOGGER.exception("Failed to fetch queue stats")
            return QueueStats()
        return QueueStats(
            pending=int(counts.get(QueueStatus.PENDING.value, 0)),
            posted=int(counts.get(QueueStatus.POSTED.value, 0)),
            failed=int(counts.get(QueueStatus.FAILED.value, 0)),
        )

    async def list_entries(self, status: Optional[QueueStatus] = None, limit: int = 100) -> list[QueueEntry]:
        try:
            return await asyncio.to_thread(self._store.select_entries, status, limit)
        except Exception:
            LOGGER.exception("Failed to list queue entries")
            return []
