"""Dedup ledger (core domain).

Records (source, message id) pairs already ingested so a restart or a
duplicate delivery does not publish the same message twice. Ledger failures
are logged and degrade to "not a duplicate"; they never block ingest.
"""

from __future__ import annotations

import asyncio
import logging

from core.ports import LedgerStorePort

LOGGER = logging.getLogger(__name__)


class DedupLedger:
    def __init__(self, store: LedgerStorePort) -> None:
        self._store = store

    async def is_duplicate(self, source_name: str, message_id: int) -> bool:
        """Return True iff a record exists for this exact pair."""

        try:
            return await asyncio.to_thread(self._store.has_repost, str(source_name), int(message_id))
        except Exception:
            LOGGER.exception("Ledger lookup failed for %s/%s", source_name, message_id)
            return False

    async def mark(self, source_name: str, message_id: int, fingerprint: str) -> None:
        """Upsert a record. Repeating the same pair only refreshes the fingerprint."""

        try:
            await asyncio.to_thread(
                self._store.upsert_repost,
                str(source_name),
                int(message_id),
                fingerprint or "",
            )
        except Exception:
            LOGGER.exception("Ledger write failed for %s/%s", source_name, message_id)
