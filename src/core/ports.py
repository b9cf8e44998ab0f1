"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage and transport adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from core.models import InboundMessage, MediaRef, PostItem, QueueEntry, QueueStatus


class LedgerStorePort(Protocol):
    """Dedup ledger operations. Implementations may block; the core offloads them."""

    def has_repost(self, source_name: str, message_id: int) -> bool:
        ...

    def upsert_repost(self, source_name: str, message_id: int, content_hash: str) -> None:
        ...


class QueueStorePort(Protocol):
    """Durable post queue operations."""

    def insert_entry(self, item: PostItem, created_at: datetime) -> int:
        ...

    def select_pending(self, limit: int) -> list[QueueEntry]:
        ...

    def update_status(
        self,
        entry_id: int,
        status: QueueStatus,
        posted_at: datetime,
        error_message: Optional[str] = None,
    ) -> None:
        ...

    def count_by_status(self) -> dict[str, int]:
        ...

    def select_entries(self, status: Optional[QueueStatus], limit: int) -> list[QueueEntry]:
        ...


class MediaSenderPort(Protocol):
    """Outbound transport bound to a single destination."""

    async def send_text(self, text: str) -> Any:
        ...

    async def send_photo(self, media: MediaRef, caption: str) -> Any:
        ...

    async def send_video(self, media: MediaRef, caption: str) -> Any:
        ...

    async def send_animation(self, media: MediaRef, caption: str) -> Any:
        ...

    async def send_media_group(self, items: Sequence[tuple[str, MediaRef, Optional[str]]]) -> Any:
        ...


class MediaFetcherPort(Protocol):
    """Download the media payload attached to an inbound message."""

    async def download(self, message: InboundMessage) -> bytes:
        ...


class PublisherPort(Protocol):
    async def publish(self, item: PostItem) -> Any:
        ...
