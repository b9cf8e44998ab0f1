"""Publisher: emit one normalized post to the destination.

Text posts go out verbatim with no footer so pasted text stays exact. Every
media caption gets the provenance footer. Transport errors propagate to the
caller; an unsupported post shape is reported through ``PublishOutcome``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.captions import append_footer, build_footer, rewrite_caption
from core.config import FooterConfig
from core.models import PostItem, PostKind
from core.ports import MediaSenderPort

LOGGER = logging.getLogger(__name__)

ALBUM_KINDS = {PostKind.PHOTO.value, PostKind.VIDEO.value}


@dataclass(frozen=True)
class PublishOutcome:
    ok: bool
    response: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, response: Any) -> "PublishOutcome":
        return cls(ok=True, response=response)

    @classmethod
    def rejected(cls, error: str) -> "PublishOutcome":
        return cls(ok=False, error=error)


class Publisher:
    def __init__(
        self,
        sender: MediaSenderPort,
        footer: FooterConfig,
        log_success: bool = True,
        destination_label: str = "",
    ) -> None:
        self._sender = sender
        self._footer = footer
        self._log_success = log_success
        self._destination_label = destination_label

    def caption_for(self, item: PostItem, caption: Optional[str]) -> str:
        footer = build_footer(item.source, self._footer)
        return append_footer(rewrite_caption(caption or ""), footer)

    async def publish(self, item: PostItem) -> PublishOutcome:
        """Send one post. Raises on transport errors."""

        try:
            outcome = await self._dispatch(item)
        except Exception:
            LOGGER.error("Error reposting from %s", item.source.label())
            raise
        if outcome.ok and self._log_success:
            LOGGER.info("Reposted from %s -> %s", item.source.label(), self._destination_label or "destination")
        return outcome

    async def _dispatch(self, item: PostItem) -> PublishOutcome:
        if item.kind == PostKind.TEXT:
            return PublishOutcome.success(await self._sender.send_text(item.text or ""))

        if item.kind in (PostKind.PHOTO, PostKind.VIDEO, PostKind.ANIMATION):
            caption = self.caption_for(item, item.text)
            if item.kind == PostKind.PHOTO:
                response = await self._sender.send_photo(item.media, caption)
            elif item.kind == PostKind.VIDEO:
                response = await self._sender.send_video(item.media, caption)
            else:
                response = await self._sender.send_animation(item.media, caption)
            return PublishOutcome.success(response)

        if item.kind == PostKind.ALBUM:
            if not item.album:
                return PublishOutcome.rejected("Album has no media items")
            footer_index = _footer_index(item)
            group = []
            for index, fragment in enumerate(item.album):
                kind = fragment.kind if fragment.kind in ALBUM_KINDS else PostKind.PHOTO.value
                caption = fragment.caption
                if index == footer_index:
                    caption = self.caption_for(item, caption) or None
                group.append((kind, fragment.media, caption))
            return PublishOutcome.success(await self._sender.send_media_group(group))

        return PublishOutcome.rejected(f"Unsupported type: {item.kind}")


def _footer_index(item: PostItem) -> int:
    """One footer per album: on the first captioned fragment, else the first."""

    for index, fragment in enumerate(item.album):
        if fragment.caption:
            return index
    return 0
