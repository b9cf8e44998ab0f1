"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple


class PostKind(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    ANIMATION = "animation"
    ALBUM = "album"


class QueueStatus(str, Enum):
    PENDING = "pending"
    POSTED = "posted"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceMeta:
    """Provenance of a post. Display only, never used for identity."""

    title: str = ""
    username: str = ""

    def label(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.title or "unknown"


@dataclass(frozen=True)
class MediaRef:
    """Either a pre-uploaded file reference or a raw payload with a filename."""

    file_id: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)
    filename: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.file_id is None) == (self.data is None):
            raise ValueError("MediaRef needs exactly one of file_id or data")

    @property
    def is_uploaded(self) -> bool:
        return self.file_id is not None

    def to_payload(self) -> dict[str, Any]:
        if self.file_id is not None:
            return {"file_id": self.file_id}
        return {
            "filename": self.filename,
            "data": base64.b64encode(self.data or b"").decode("ascii"),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MediaRef":
        if payload.get("file_id"):
            return cls(file_id=str(payload["file_id"]))
        return cls(
            data=base64.b64decode(payload.get("data") or ""),
            filename=payload.get("filename"),
        )


@dataclass(frozen=True)
class AlbumItem:
    """One fragment of an album, keeping its own caption."""

    kind: str
    media: MediaRef
    caption: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.kind, "media": self.media.to_payload(), "caption": self.caption}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AlbumItem":
        return cls(
            kind=str(payload.get("type") or PostKind.PHOTO.value),
            media=MediaRef.from_payload(payload.get("media") or {}),
            caption=payload.get("caption"),
        )


@dataclass(frozen=True)
class PostItem:
    """Normalized, publish-ready post moved through the queue end to end.

    ``media`` is set for single-media kinds, ``album`` for albums and neither
    for plain text.
    """

    source: SourceMeta
    kind: PostKind
    text: str = ""
    media: Optional[MediaRef] = None
    album: Tuple[AlbumItem, ...] = ()

    def __post_init__(self) -> None:
        if self.kind == PostKind.TEXT:
            valid = self.media is None and not self.album
        elif self.kind == PostKind.ALBUM:
            valid = self.media is None and bool(self.album)
        else:
            valid = self.media is not None and not self.album
        if not valid:
            raise ValueError(f"Inconsistent media for post kind {self.kind.value}")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "source": {"title": self.source.title, "username": self.source.username},
            "type": self.kind.value,
            "text": self.text,
        }
        if self.media is not None:
            payload["media"] = self.media.to_payload()
        if self.album:
            payload["album"] = [item.to_payload() for item in self.album]
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PostItem":
        source = payload.get("source") or {}
        media = payload.get("media")
        return cls(
            source=SourceMeta(
                title=str(source.get("title") or ""),
                username=str(source.get("username") or ""),
            ),
            kind=PostKind(payload.get("type")),
            text=payload.get("text") or "",
            media=MediaRef.from_payload(media) if media else None,
            album=tuple(AlbumItem.from_payload(entry) for entry in payload.get("album") or []),
        )


@dataclass(frozen=True)
class QueueEntry:
    """One row of the durable post queue."""

    id: int
    item: PostItem
    status: QueueStatus
    created_at: datetime
    posted_at: Optional[datetime] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    posted: int = 0
    failed: int = 0


@dataclass(frozen=True)
class PhotoSize:
    unique_id: str
    file_size: int = 0


@dataclass(frozen=True)
class InboundMedia:
    """Media attached to an inbound message, as seen by the transport.

    ``kind`` is one of photo, video, animation or document. ``reference`` is a
    pre-uploaded id the outbound client can resend without downloading.
    """

    kind: str
    unique_id: str = ""
    mime_type: str = ""
    reference: Optional[str] = None
    photo_sizes: Tuple[PhotoSize, ...] = ()


@dataclass(frozen=True)
class InboundMessage:
    """Minimal, transport-independent view of one inbound event."""

    message_id: int
    chat_id: int
    source: SourceMeta
    text: str = ""
    caption: str = ""
    grouping_id: Optional[str] = None
    media: Optional[InboundMedia] = None
    is_private: bool = False
    sender_id: Optional[int] = None
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def body(self) -> str:
        return self.caption or self.text
