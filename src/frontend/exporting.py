"""Flatten queue entries for display and export."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from core.models import PostKind, QueueEntry

EXPORT_FIELDS = [
    "id",
    "status",
    "kind",
    "source",
    "text",
    "media_count",
    "created_at",
    "posted_at",
    "error_message",
]


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def entry_to_row(entry: QueueEntry) -> dict[str, Any]:
    """Return a JSON/CSV friendly row. Media payloads are left out."""

    item = entry.item
    if item.kind == PostKind.ALBUM:
        media_count = len(item.album)
    elif item.media is not None:
        media_count = 1
    else:
        media_count = 0
    return {
        "id": entry.id,
        "status": entry.status.value,
        "kind": item.kind.value,
        "source": item.source.label(),
        "text": item.text,
        "media_count": media_count,
        "created_at": _iso(entry.created_at),
        "posted_at": _iso(entry.posted_at),
        "error_message": entry.error_message or "",
    }


def export_rows(rows: Iterable[dict[str, Any]], directory: Path, fmt: str, now: Optional[datetime] = None) -> Path:
    """Write rows to ``directory`` as json or csv and return the file path."""

    rows = list(rows)
    directory.mkdir(parents=True, exist_ok=True)
    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    path = directory / f"queue-{timestamp}.{fmt}"
    if fmt == "json":
        path.write_text(json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8")
    elif fmt == "csv":
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=EXPORT_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
    else:
        raise ValueError(f"Unsupported export format: {fmt}")
    return path
