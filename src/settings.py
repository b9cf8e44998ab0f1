"""Static configuration for the relay.

All user-editable settings (sources, destination, cadence, footer) live in a
single JSON file for quick edits without touching Python. Secrets stay in the
environment (see client.py).
"""

import json
import os

from core.config import (
    AlbumConfig,
    AllowListConfig,
    FooterConfig,
    IngestConfig,
    SchedulerConfig,
    parse_interval,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# config.json sits at the project root next to .env.
CONFIG_PATH = os.environ.get("RELAY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_destination(value):
    """Numeric chat ids must reach Telethon as ints, handles as strings."""

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.lstrip("-").isdigit():
        return int(text)
    return text


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Allow-list for passive observation. Empty lists admit nothing.
_sources = _CONFIG.get("sources", {})
ALLOW_LIST = AllowListConfig(
    groups=tuple(str(g) for g in _sources.get("groups", []) if str(g).strip()),
    channels=tuple(str(c) for c in _sources.get("channels", []) if str(c).strip()),
)

# Single destination channel; validated at startup in app.py.
DESTINATION = _normalize_destination(_CONFIG.get("destination"))

# Publishing cadence: batch_size posts every interval.
_scheduler = _CONFIG.get("scheduler", {})
SCHEDULER = SchedulerConfig(
    batch_size=max(int(_scheduler.get("batch_size", 3)), 1),
    interval=parse_interval(_scheduler.get("interval"), 3600.0) or 3600.0,
    min_post_interval=parse_interval(_scheduler.get("min_post_interval"), 0.0),
)

# Album quiet periods for the two inbound channels.
_albums = _CONFIG.get("albums", {})
ALBUMS = AlbumConfig(
    observed_quiet_period=parse_interval(_albums.get("observed_quiet_period"), 1.5),
    forwarded_quiet_period=parse_interval(_albums.get("forwarded_quiet_period"), 1.2),
)

# Provenance footer on media captions.
_footer = _CONFIG.get("footer", {})
FOOTER = FooterConfig(
    enabled=bool(_footer.get("enabled", True)),
    handle_override=str(_footer.get("handle", "") or ""),
)

# One success line per publish when enabled.
LOG_SUCCESS = bool(_CONFIG.get("publishing", {}).get("log_success", True))

# Who may push posts to the bot and run admin commands.
_ingest = _CONFIG.get("ingest", {})
INGEST = IngestConfig(admin_user_ids=tuple(int(u) for u in _ingest.get("admin_user_ids", [])))
# Source title used for pushed posts that carry no forward header.
INGEST_DEFAULT_TITLE = str(_ingest.get("default_source_title", "") or "")

# Where to store the SQLite database.
_storage = _CONFIG.get("storage", {})
DB_PATH = _storage.get("db_path") or "relay.db"
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
