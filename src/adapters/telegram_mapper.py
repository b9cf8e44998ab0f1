"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from telethon import utils
from telethon.tl.custom import Message
from telethon.tl.types import (
    Document,
    DocumentAttributeAnimated,
    DocumentAttributeVideo,
    MessageMediaDocument,
    MessageMediaPhoto,
    Photo,
    PhotoCachedSize,
    PhotoSize,
    PhotoSizeProgressive,
)

from core.models import InboundMedia, InboundMessage, PhotoSize as CorePhotoSize, SourceMeta

LOGGER = logging.getLogger(__name__)


class PeerResolver:
    """Resolve chat title/username for a chat id, with a chat_id cache."""

    def __init__(self, client) -> None:
        self._client = client
        self._cache: dict[int, SourceMeta] = {}

    async def resolve(self, message: Message) -> SourceMeta:
        chat_id = message.chat_id
        if chat_id in self._cache:
            return self._cache[chat_id]
        try:
            entity = getattr(message, "chat", None) or await self._client.get_entity(message.peer_id)
        except Exception:
            LOGGER.debug("Failed to resolve chat %s", chat_id, exc_info=True)
            return SourceMeta()
        meta = SourceMeta(
            title=str(getattr(entity, "title", None) or getattr(entity, "first_name", None) or ""),
            username=str(getattr(entity, "username", None) or ""),
        )
        self._cache[chat_id] = meta
        return meta


def _size_bytes(size: Any) -> int:
    if isinstance(size, PhotoSize):
        return int(size.size or 0)
    if isinstance(size, PhotoCachedSize):
        return len(size.bytes or b"")
    if isinstance(size, PhotoSizeProgressive):
        return int(max(size.sizes or [0]))
    return 0


def _photo_sizes(photo: Photo) -> tuple[CorePhotoSize, ...]:
    return tuple(
        CorePhotoSize(unique_id=f"{photo.id}:{size.type}", file_size=_size_bytes(size))
        for size in (photo.sizes or [])
        if isinstance(size, (PhotoSize, PhotoCachedSize, PhotoSizeProgressive))
    )


def _document_kind(document: Document) -> str:
    attributes = document.attributes or []
    if any(isinstance(attr, DocumentAttributeAnimated) for attr in attributes):
        return "animation"
    if any(isinstance(attr, DocumentAttributeVideo) for attr in attributes):
        return "video"
    return "document"


def extract_media(message: Message, with_reference: bool) -> Optional[InboundMedia]:
    """Describe photo/document media; link previews and the like are ignored.

    ``with_reference`` packs a resendable file id. Only the bot client can
    resend what it received, so observed messages are downloaded instead.
    """

    media = getattr(message, "media", None)
    reference = utils.pack_bot_file_id(media) if with_reference and media is not None else None

    if isinstance(media, MessageMediaPhoto) and isinstance(media.photo, Photo):
        photo = media.photo
        return InboundMedia(
            kind="photo",
            unique_id=str(photo.id),
            mime_type="image/jpeg",
            reference=reference,
            photo_sizes=_photo_sizes(photo),
        )
    if isinstance(media, MessageMediaDocument) and isinstance(media.document, Document):
        document = media.document
        return InboundMedia(
            kind=_document_kind(document),
            unique_id=str(document.id),
            mime_type=str(document.mime_type or ""),
            reference=reference,
        )
    return None


def _build(message: Message, source: SourceMeta, with_reference: bool) -> InboundMessage:
    media = extract_media(message, with_reference)
    body = getattr(message, "raw_text", None) or ""
    grouped_id = getattr(message, "grouped_id", None)
    return InboundMessage(
        message_id=message.id,
        chat_id=message.chat_id,
        source=source,
        text="" if media else body,
        caption=body if media else "",
        grouping_id=str(grouped_id) if grouped_id else None,
        media=media,
        is_private=bool(getattr(message, "is_private", False)),
        sender_id=getattr(message, "sender_id", None),
        raw=message,
    )


async def build_observed_message(message: Message, resolver: PeerResolver) -> InboundMessage:
    """Build a core InboundMessage from a message seen by the user client."""

    source = await resolver.resolve(message)
    return _build(message, source, with_reference=False)


def forward_source(message: Message, default_title: str = "") -> SourceMeta:
    """Provenance of a message forwarded to the bot: original chat, then sender."""

    forward = getattr(message, "forward", None)
    chat = getattr(forward, "chat", None) if forward else None
    sender = getattr(forward, "sender", None) if forward else None
    fwd_from = getattr(message, "fwd_from", None)

    title = (
        getattr(chat, "title", None)
        or getattr(sender, "first_name", None)
        or getattr(fwd_from, "from_name", None)
        or default_title
        or "unknown"
    )
    username = getattr(chat, "username", None) or getattr(sender, "username", None) or ""
    return SourceMeta(title=str(title), username=str(username))


def build_forwarded_message(message: Message, default_title: str = "") -> InboundMessage:
    """Build a core InboundMessage from a message pushed to the bot."""

    return _build(message, forward_source(message, default_title), with_reference=True)


class TelethonMediaFetcher:
    """Download media through the client that received the message."""

    async def download(self, message: InboundMessage) -> bytes:
        raw = message.raw
        if raw is None:
            raise ValueError(f"Message {message.message_id} has no transport handle")
        data = await raw.download_media(file=bytes)
        if not data:
            raise ValueError(f"Message {message.message_id} has no downloadable media")
        return data
