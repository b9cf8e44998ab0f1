"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Tuple

_INTERVAL_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$", re.IGNORECASE)
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_interval(value: object, default: float = 0.0) -> float:
    """Parse a duration like ``"1500ms"``, ``"30m"`` or ``"1h"`` into seconds.

    Plain numbers are taken as seconds. Anything unparseable yields ``default``.
    """

    if value is None or value == "":
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if value >= 0 else default
    match = _INTERVAL_RE.match(str(value).strip())
    if not match:
        return default
    return float(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]


@dataclass(frozen=True)
class AllowListConfig:
    """Group titles and channel handles admitted for passive observation."""

    groups: Tuple[str, ...] = ()
    channels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SchedulerConfig:
    """Publishing cadence: ``batch_size`` entries every ``interval`` seconds."""

    batch_size: int = 3
    interval: float = 3600.0
    min_post_interval: float = 0.0


@dataclass(frozen=True)
class AlbumConfig:
    """Quiet periods (seconds) before an album is considered complete."""

    observed_quiet_period: float = 1.5
    forwarded_quiet_period: float = 1.2


@dataclass(frozen=True)
class FooterConfig:
    """Provenance footer settings consumed by the publisher."""

    enabled: bool = True
    handle_override: str = ""


@dataclass(frozen=True)
class IngestConfig:
    """Who may push posts and run admin commands. Empty means anyone."""

    admin_user_ids: Tuple[int, ...] = field(default_factory=tuple)
