"""Content fingerprinting (core domain).

The fingerprint is a secondary identity used to audit dedup records. The
dedup key itself is (source, message id).
"""

from __future__ import annotations

import hashlib
from typing import List, Optional

from core.models import InboundMedia, InboundMessage


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _largest_photo_id(media: InboundMedia) -> Optional[str]:
    if media.photo_sizes:
        best = max(media.photo_sizes, key=lambda size: size.file_size or 0)
        if best.unique_id:
            return best.unique_id
    return media.unique_id or None


def fingerprint_parts(message: InboundMessage) -> List[str]:
    """Return the identity parts in priority order.

    Media unique ids come first because they survive re-forwarding, text and
    caption follow, and the message id is the last resort.
    """

    parts: List[str] = []
    if message.grouping_id:
        parts.append(f"group:{message.grouping_id}")

    media = message.media
    if media is not None:
        if media.kind == "photo":
            photo_id = _largest_photo_id(media)
            if photo_id:
                parts.append(f"p:{photo_id}")
        elif media.unique_id:
            prefix = {"video": "v", "animation": "g"}.get(media.kind, "d")
            parts.append(f"{prefix}:{media.unique_id}")

    if message.text:
        parts.append(f"t:{message.text}")
    if message.caption:
        parts.append(f"c:{message.caption}")
    if not parts:
        parts.append(f"id:{message.message_id or 0}")
    return parts


def fingerprint(message: InboundMessage) -> str:
    """Return a deterministic hex digest for an inbound message. Never fails."""

    return sha256_hex("|".join(fingerprint_parts(message)))
