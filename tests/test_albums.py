from __future__ import annotations

import asyncio

from core.albums import AlbumAggregator, AlbumBatch
from core.models import AlbumItem, MediaRef, SourceMeta


def _item(name: str, caption: "str | None" = None) -> AlbumItem:
    return AlbumItem(kind="photo", media=MediaRef(file_id=name), caption=caption)


class Collector:
    def __init__(self) -> None:
        self.batches: list[AlbumBatch] = []

    async def __call__(self, batch: AlbumBatch) -> None:
        self.batches.append(batch)


def test_fragments_flush_once_after_quiet_period() -> None:
    collector = Collector()

    async def scenario() -> None:
        albums = AlbumAggregator(0.2, collector)
        source = SourceMeta(title="Crypto Talk")
        albums.add("g1", _item("a", "first"), text="first", source=source)
        await asyncio.sleep(0.05)
        albums.add("g1", _item("b"), text="ignored", source=SourceMeta(title="Other"))
        await asyncio.sleep(0.05)
        albums.add("g1", _item("c"))

        # Still inside the quiet period of the last fragment.
        await asyncio.sleep(0.1)
        assert collector.batches == []
        assert albums.pending == 1

        await asyncio.sleep(0.25)
        assert albums.pending == 0

    asyncio.run(scenario())

    assert len(collector.batches) == 1
    batch = collector.batches[0]
    assert batch.grouping_id == "g1"
    assert batch.text == "first"
    assert batch.source.title == "Crypto Talk"
    assert [item.media.file_id for item in batch.items] == ["a", "b", "c"]


def test_separate_groups_flush_independently() -> None:
    collector = Collector()

    async def scenario() -> None:
        albums = AlbumAggregator(0.02, collector)
        albums.add("g1", _item("a"))
        albums.add("g2", _item("b"))
        await asyncio.sleep(0.08)

    asyncio.run(scenario())

    assert sorted(batch.grouping_id for batch in collector.batches) == ["g1", "g2"]


def test_buffer_without_items_is_discarded() -> None:
    collector = Collector()

    async def scenario() -> None:
        albums = AlbumAggregator(0.01, collector)
        albums.add("g1", None, text="caption only")
        await asyncio.sleep(0.05)
        assert albums.pending == 0

    asyncio.run(scenario())

    assert collector.batches == []


def test_flush_error_is_logged_and_buffer_released() -> None:
    calls: list[str] = []

    async def failing(batch: AlbumBatch) -> None:
        calls.append(batch.grouping_id)
        raise RuntimeError("queue down")

    async def scenario() -> None:
        albums = AlbumAggregator(0.01, failing)
        albums.add("g1", _item("a"))
        await asyncio.sleep(0.05)
        assert albums.pending == 0

        # The same grouping id starts a fresh album afterwards.
        albums.add("g1", _item("b"))
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert calls == ["g1", "g1"]


def test_close_cancels_pending_flushes() -> None:
    collector = Collector()

    async def scenario() -> None:
        albums = AlbumAggregator(0.05, collector)
        albums.add("g1", _item("a"))
        albums.close()
        assert albums.pending == 0
        await asyncio.sleep(0.08)

    asyncio.run(scenario())

    assert collector.batches == []
