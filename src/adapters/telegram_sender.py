"""Telethon outbound adapter.

Sends posts to the destination through the bot client. Media is either a
packed file id the bot received earlier or an in-memory payload with a name.
"""

from __future__ import annotations

import io
import os
from typing import Any, Optional, Sequence, Union

from telethon.tl.types import DocumentAttributeAnimated

from core.models import MediaRef


_GROUP_EXTENSIONS = {"photo": ".jpg", "video": ".mp4"}


def _as_input(media: MediaRef, kind: Optional[str] = None) -> Union[str, io.BytesIO]:
    if media.file_id is not None:
        return media.file_id
    # Telethon infers the media type from the file name.
    name = media.filename or "file"
    extension = _GROUP_EXTENSIONS.get(kind or "")
    if extension and not name.lower().endswith(extension):
        name = f"{os.path.splitext(name)[0]}{extension}"
    buffer = io.BytesIO(media.data or b"")
    buffer.name = name
    return buffer


class TelethonMediaSender:
    """MediaSenderPort implementation bound to one destination.

    Text and captions are sent with ``parse_mode=None`` so Markdown-looking
    characters reach the channel exactly as written.
    """

    def __init__(self, client, destination: Union[str, int]) -> None:
        self._client = client
        self._destination = destination

    async def send_text(self, text: str) -> Any:
        return await self._client.send_message(
            self._destination,
            text,
            parse_mode=None,
            link_preview=True,
        )

    async def send_photo(self, media: MediaRef, caption: str) -> Any:
        return await self._client.send_file(
            self._destination,
            _as_input(media),
            caption=caption,
            parse_mode=None,
        )

    async def send_video(self, media: MediaRef, caption: str) -> Any:
        return await self._client.send_file(
            self._destination,
            _as_input(media),
            caption=caption,
            parse_mode=None,
            supports_streaming=True,
        )

    async def send_animation(self, media: MediaRef, caption: str) -> Any:
        attributes = None if media.is_uploaded else [DocumentAttributeAnimated()]
        return await self._client.send_file(
            self._destination,
            _as_input(media),
            caption=caption,
            parse_mode=None,
            attributes=attributes,
        )

    async def send_media_group(self, items: Sequence[tuple[str, MediaRef, Optional[str]]]) -> Any:
        # The fragment kind decides how a raw payload is sent; a fragment
        # mapped to photo must not go out as a gif or document.
        files = [_as_input(media, kind) for kind, media, _ in items]
        captions = [caption or "" for _, _, caption in items]
        return await self._client.send_file(
            self._destination,
            files,
            caption=captions,
            parse_mode=None,
            force_document=False,
            supports_streaming=any(kind == "video" for kind, _, _ in items),
        )
