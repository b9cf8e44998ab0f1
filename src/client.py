"""Telegram client factories for the relay.

Two Telethon clients share one event loop: a user client (string session)
that observes the allow-listed chats, and a bot client that receives pushed
posts, answers admin commands and publishes to the destination.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient
from telethon.sessions import StringSession


def _api_credentials() -> tuple[int, str]:
    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    return int(api_id), api_hash


def build_client(session: "str | StringSession | None" = None) -> TelegramClient:
    """Create the user client from environment variables.

    TELEGRAM_SESSION holds a string session produced by ``relay session``.
    """

    api_id, api_hash = _api_credentials()
    if session is None:
        session_string = os.getenv("TELEGRAM_SESSION")
        if not session_string:
            raise RuntimeError("TELEGRAM_SESSION is required")
        session = StringSession(session_string)

    logging.getLogger(__name__).info("Initializing Telegram user client")

    return TelegramClient(session, api_id, api_hash, connection_retries=5)


def build_bot_client() -> tuple[TelegramClient, str]:
    """Create the bot client; the caller starts it with the returned token."""

    api_id, api_hash = _api_credentials()
    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise RuntimeError("BOT_TOKEN is required")

    logging.getLogger(__name__).info("Initializing Telegram bot client")

    # A file session keeps the entity cache, so numeric destinations resolve
    # after a restart.
    session_name = os.getenv("BOT_SESSION_NAME", "relay_bot")
    return TelegramClient(session_name, api_id, api_hash, connection_retries=5), bot_token
