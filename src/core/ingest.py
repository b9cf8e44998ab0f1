"""Core ingest pipeline.

This module is integration-agnostic. It only relies on ports for storage and
media download, enabling other transports without changes here.

Both inbound channels run through the same steps:
1) Fast-exit for out-of-scope messages
2) Message-level idempotency via the dedup ledger
3) Ledger write with the content fingerprint (before enqueue)
4) Album fragments go to the aggregator, singles are classified
5) Normalized post is enqueued for the scheduler
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional

from core.albums import AlbumAggregator, AlbumBatch
from core.filters import AllowList
from core.fingerprint import fingerprint
from core.ledger import DedupLedger
from core.models import AlbumItem, InboundMessage, MediaRef, PostItem, PostKind
from core.ports import MediaFetcherPort
from core.post_queue import PostQueue

LOGGER = logging.getLogger(__name__)

INGEST_SOURCE_NAME = "ingest"


class IngestOutcome(str, Enum):
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"
    BUFFERED = "buffered"
    ENQUEUED = "enqueued"
    UNSUPPORTED = "unsupported"
    DROPPED = "dropped"


def classify(message: InboundMessage) -> Optional[PostKind]:
    """Return the post kind for a single (non-album) message, if supported."""

    media = message.media
    if media is not None:
        if media.kind == "photo":
            return PostKind.PHOTO
        if media.kind == "video":
            return PostKind.VIDEO
        if media.kind == "animation":
            return PostKind.ANIMATION
        mime_type = (media.mime_type or "").lower()
        if mime_type.startswith("video/"):
            return PostKind.VIDEO
        if mime_type == "image/gif":
            return PostKind.ANIMATION
    if message.body.strip():
        return PostKind.TEXT
    return None


def media_filename(kind: PostKind, message: InboundMessage) -> str:
    if kind == PostKind.VIDEO:
        return f"video_{message.message_id}.mp4"
    if kind == PostKind.ANIMATION:
        mime_type = message.media.mime_type if message.media else ""
        extension = "gif" if mime_type == "image/gif" else "mp4"
        return f"gif_{message.message_id}.{extension}"
    return f"photo_{message.message_id}.jpg"


class IngestPipeline:
    """Turns inbound messages into deduplicated, queued posts."""

    def __init__(
        self,
        allow_list: AllowList,
        ledger: DedupLedger,
        queue: PostQueue,
        fetcher: MediaFetcherPort,
        observed_quiet_period: float = 1.5,
        forwarded_quiet_period: float = 1.2,
        admin_user_ids: Iterable[int] = (),
    ) -> None:
        self._allow_list = allow_list
        self._ledger = ledger
        self._queue = queue
        self._fetcher = fetcher
        self._admin_user_ids = {int(user_id) for user_id in admin_user_ids}
        self.observed_albums = AlbumAggregator(observed_quiet_period, self._enqueue_album, name="observed")
        self.forwarded_albums = AlbumAggregator(forwarded_quiet_period, self._enqueue_album, name="forwarded")

    async def handle_observed(self, message: InboundMessage) -> IngestOutcome:
        """Process a message seen in a monitored chat."""

        if not message.body.strip() and message.media is None:
            return IngestOutcome.SKIPPED
        if not self._allow_list.is_allowed(message.source):
            return IngestOutcome.SKIPPED
        return await self._ingest(str(message.chat_id), message, self.observed_albums)

    async def handle_forwarded(self, message: InboundMessage) -> IngestOutcome:
        """Process a message pushed to the bot in a private chat."""

        if not message.is_private:
            return IngestOutcome.SKIPPED
        if self._admin_user_ids and message.sender_id not in self._admin_user_ids:
            LOGGER.info("Ignoring push ingest from unlisted user %s", message.sender_id)
            return IngestOutcome.SKIPPED
        LOGGER.info(
            "DM ingest received: hasMedia=%s kind=%s isAlbum=%s",
            message.media is not None,
            message.media.kind if message.media else "text",
            bool(message.grouping_id),
        )
        return await self._ingest(INGEST_SOURCE_NAME, message, self.forwarded_albums)

    async def _ingest(
        self,
        source_name: str,
        message: InboundMessage,
        albums: AlbumAggregator,
    ) -> IngestOutcome:
        # Message-level idempotency: a pair we already recorded is never
        # ingested twice, even after a restart.
        if await self._ledger.is_duplicate(source_name, message.message_id):
            LOGGER.info("Dedup skip for %s/%s", source_name, message.message_id)
            return IngestOutcome.DUPLICATE
        await self._ledger.mark(source_name, message.message_id, fingerprint(message))

        if message.grouping_id:
            item = await self._album_item(message)
            albums.add(message.grouping_id, item, text=message.body, source=message.source)
            return IngestOutcome.BUFFERED

        kind = classify(message)
        if kind is None:
            return IngestOutcome.UNSUPPORTED

        try:
            if kind == PostKind.TEXT:
                post = PostItem(source=message.source, kind=kind, text=message.body)
            else:
                media = await self._media_ref(kind, message)
                post = PostItem(source=message.source, kind=kind, text=message.caption, media=media)
            await self._queue.enqueue(post)
        except Exception:
            LOGGER.exception("Dropping message %s/%s", source_name, message.message_id)
            return IngestOutcome.DROPPED
        return IngestOutcome.ENQUEUED

    async def _album_item(self, message: InboundMessage) -> Optional[AlbumItem]:
        kind = classify(message)
        if kind not in (PostKind.PHOTO, PostKind.VIDEO, PostKind.ANIMATION):
            return None
        try:
            media = await self._media_ref(kind, message)
        except Exception:
            LOGGER.exception("Failed to fetch album fragment %s", message.message_id)
            return None
        return AlbumItem(kind=kind.value, media=media, caption=message.caption or None)

    async def _media_ref(self, kind: PostKind, message: InboundMessage) -> MediaRef:
        media = message.media
        if media is not None and media.reference:
            return MediaRef(file_id=media.reference)
        data = await self._fetcher.download(message)
        return MediaRef(data=data, filename=media_filename(kind, message))

    async def _enqueue_album(self, batch: AlbumBatch) -> None:
        post = PostItem(source=batch.source, kind=PostKind.ALBUM, text=batch.text, album=batch.items)
        await self._queue.enqueue(post)

    def close(self) -> None:
        self.observed_albums.close()
        self.forwarded_albums.close()
