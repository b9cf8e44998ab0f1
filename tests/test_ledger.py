from __future__ import annotations

import asyncio

from adapters.sqlite_storage import SQLiteStorage
from core.ledger import DedupLedger


def _count_reposts(storage: SQLiteStorage, source_name: str, message_id: int) -> int:
    with storage._connect() as conn:
        row = conn.execute(
            "SELECT COUNT(*) FROM reposts WHERE source_name = ? AND message_id = ?",
            (source_name, message_id),
        ).fetchone()
    return int(row[0])


class BrokenStore:
    def has_repost(self, source_name: str, message_id: int) -> bool:
        raise RuntimeError("db locked")

    def upsert_repost(self, source_name: str, message_id: int, content_hash: str) -> None:
        raise RuntimeError("db locked")


def test_mark_then_duplicate(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "relay.db"))
    storage.init_db()
    ledger = DedupLedger(storage)

    async def scenario() -> tuple[bool, bool, bool]:
        before = await ledger.is_duplicate("-1001", 5)
        await ledger.mark("-1001", 5, "abc")
        after = await ledger.is_duplicate("-1001", 5)
        other_source = await ledger.is_duplicate("ingest", 5)
        return before, after, other_source

    before, after, other_source = asyncio.run(scenario())

    assert before is False
    assert after is True
    assert other_source is False


def test_mark_is_idempotent(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "relay.db"))
    storage.init_db()
    ledger = DedupLedger(storage)

    async def scenario() -> None:
        await ledger.mark("ingest", 1, "first")
        await ledger.mark("ingest", 1, "second")

    asyncio.run(scenario())

    assert _count_reposts(storage, "ingest", 1) == 1
    assert storage.has_repost("ingest", 1)
    with storage._connect() as conn:
        row = conn.execute("SELECT content_hash FROM reposts").fetchone()
    assert row["content_hash"] == "second"


def test_store_errors_are_absorbed() -> None:
    ledger = DedupLedger(BrokenStore())

    async def scenario() -> bool:
        await ledger.mark("ingest", 1, "hash")
        return await ledger.is_duplicate("ingest", 1)

    assert asyncio.run(scenario()) is False
