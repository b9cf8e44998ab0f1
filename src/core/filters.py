"""Source allow-list matching (core domain)."""

from __future__ import annotations

from typing import Iterable

from core.config import AllowListConfig
from core.models import SourceMeta


def normalize_handle(value: str) -> str:
    """Lowercase a channel handle and drop a leading "@"."""

    handle = (value or "").strip()
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.strip().lower()


def normalize_title(value: str) -> str:
    return (value or "").strip().lower()


class AllowList:
    """Decide whether an observed chat is in scope for relay.

    Matching logic:
    - A source is admitted when its title equals a configured group title, OR
      its username equals a configured channel handle.
    - Both comparisons are case-insensitive and exact; no substring matching.
    - Empty lists admit nothing.
    """

    def __init__(self, groups: Iterable[str] = (), channels: Iterable[str] = ()) -> None:
        self._groups = {normalize_title(g) for g in groups if normalize_title(g)}
        self._channels = {normalize_handle(c) for c in channels if normalize_handle(c)}

    @classmethod
    def from_config(cls, config: AllowListConfig) -> "AllowList":
        return cls(groups=config.groups, channels=config.channels)

    @property
    def is_empty(self) -> bool:
        return not self._groups and not self._channels

    def is_allowed(self, meta: SourceMeta) -> bool:
        title = normalize_title(meta.title)
        username = normalize_handle(meta.username)
        group_match = bool(title) and title in self._groups
        channel_match = bool(username) and username in self._channels
        return group_match or channel_match
