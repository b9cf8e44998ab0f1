"""Caption helpers shared by the publisher."""

from __future__ import annotations

from core.config import FooterConfig
from core.models import SourceMeta

MEDIA_CAPTION_LIMIT = 1024
FOOTER_PREFIX = "\n\n📢 This post is related to "


def build_footer(source: SourceMeta, config: FooterConfig) -> str:
    """Return the provenance footer for a source, or "" when disabled/unknown."""

    if not config.enabled:
        return ""
    override = (config.handle_override or "").strip().lstrip("@").strip()
    if override:
        return f"{FOOTER_PREFIX}@{override}"
    username = (source.username or "").strip().lstrip("@")
    if username:
        return f"{FOOTER_PREFIX}@{username}"
    title = (source.title or "").strip()
    return f"{FOOTER_PREFIX}{title}" if title else ""


def append_footer(caption: str, footer: str, limit: int = MEDIA_CAPTION_LIMIT) -> str:
    """Attach ``footer`` to ``caption`` without ever cutting the caption.

    When the combined caption would not fit the limit the footer is dropped.
    """

    base = caption or ""
    if not footer:
        return base
    combined = f"{base}{footer}"
    if limit and len(combined) > limit:
        return base
    return combined


def rewrite_caption(text: str) -> str:
    # Rewriting hook; captions are relayed unchanged.
    return text or ""
