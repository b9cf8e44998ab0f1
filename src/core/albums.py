"""Album aggregation (core domain).

Fragments of one album arrive as separate messages sharing a grouping id and
nothing marks the last one. We buffer fragments per grouping id and flush
after a quiet period with no new fragment. Every fragment cancels the pending
flush and arms a new one, so at most one flush task exists per id.

Fragment order is arrival order. The transport does not expose the original
sequence number, so this is the closest approximation available.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from core.models import AlbumItem, SourceMeta

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlbumBatch:
    """A completed album handed to the enqueue path."""

    grouping_id: str
    source: SourceMeta
    text: str
    items: tuple[AlbumItem, ...]


@dataclass
class _AlbumBuffer:
    source: SourceMeta
    text: str
    items: list[AlbumItem] = field(default_factory=list)
    task: Optional[asyncio.Task] = None


FlushCallback = Callable[[AlbumBatch], Awaitable[None]]


class AlbumAggregator:
    """Collapse fragments sharing a grouping id into one album."""

    def __init__(self, quiet_period: float, on_flush: FlushCallback, name: str = "albums") -> None:
        self._quiet_period = max(float(quiet_period), 0.0)
        self._on_flush = on_flush
        self._name = name
        self._buffers: dict[str, _AlbumBuffer] = {}

    @property
    def pending(self) -> int:
        return len(self._buffers)

    def add(
        self,
        grouping_id: str,
        item: Optional[AlbumItem],
        *,
        text: str = "",
        source: SourceMeta = SourceMeta(),
    ) -> None:
        """Buffer one fragment and (re)arm the flush timer.

        ``item`` may be None when the fragment carried no usable media; it
        still extends the quiet period.
        """

        key = str(grouping_id)
        buffer = self._buffers.get(key)
        if buffer is None:
            # The first fragment seeds the album caption and provenance.
            buffer = _AlbumBuffer(source=source, text=text or "")
            self._buffers[key] = buffer
        if item is not None:
            buffer.items.append(item)

        if buffer.task is not None:
            buffer.task.cancel()
        buffer.task = asyncio.get_running_loop().create_task(self._flush_later(key, buffer))

    async def _flush_later(self, key: str, buffer: _AlbumBuffer) -> None:
        await asyncio.sleep(self._quiet_period)
        if self._buffers.get(key) is not buffer:
            return
        # Remove before flushing so a reused grouping id starts fresh.
        del self._buffers[key]
        if not buffer.items:
            return
        batch = AlbumBatch(
            grouping_id=key,
            source=buffer.source,
            text=buffer.text,
            items=tuple(buffer.items),
        )
        try:
            await self._on_flush(batch)
        except Exception:
            # The buffer is gone already, so the album is lost here.
            LOGGER.exception("Album flush failed for %s group %s", self._name, key)

    def close(self) -> None:
        """Cancel every pending flush and drop buffered albums."""

        for key, buffer in list(self._buffers.items()):
            if buffer.task is not None:
                buffer.task.cancel()
            LOGGER.info("Dropping unflushed album %s (%s items)", key, len(buffer.items))
        self._buffers.clear()
