"""Application entry point for the relay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

NAME = "TELERELAY"
FONT = "tarty-1"

DEFAULT_REDACT_PATTERNS = ["BOT_TOKEN", "TELEGRAM_SESSION", "API_HASH"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", DEFAULT_REDACT_PATTERNS):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict, project_root: str) -> None:
    config = config or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/relay.log")
        if not os.path.isabs(path):
            path = os.path.join(project_root, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO about reconnects and updates.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))


async def _serve() -> None:
    import settings
    from adapters.bot_commands import AdminCommands, parse_command
    from adapters.sqlite_storage import SQLiteStorage
    from adapters.telegram_mapper import (
        PeerResolver,
        TelethonMediaFetcher,
        build_forwarded_message,
        build_observed_message,
    )
    from adapters.telegram_sender import TelethonMediaSender
    from client import build_bot_client, build_client
    from core.filters import AllowList
    from core.ingest import IngestPipeline
    from core.ledger import DedupLedger
    from core.post_queue import PostQueue
    from core.publisher import Publisher
    from core.scheduler import QueueScheduler

    logger = logging.getLogger(__name__)

    if settings.DESTINATION is None:
        raise RuntimeError("destination is required in config.json")

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    allow_list = AllowList.from_config(settings.ALLOW_LIST)
    if allow_list.is_empty:
        logger.warning("Allow-list is empty; observed chats will not be relayed")

    bot, bot_token = build_bot_client()
    client = build_client()

    await bot.start(bot_token=bot_token)
    logger.info("Bot launched.")
    await client.connect()
    if not await client.is_user_authorized():
        raise RuntimeError("TELEGRAM_SESSION is not authorized; run `relay session` first")

    queue = PostQueue(storage)
    ledger = DedupLedger(storage)
    publisher = Publisher(
        sender=TelethonMediaSender(bot, settings.DESTINATION),
        footer=settings.FOOTER,
        log_success=settings.LOG_SUCCESS,
        destination_label=str(settings.DESTINATION),
    )
    # The scheduler is owned here and handed to the command handlers.
    scheduler = QueueScheduler(queue, publisher, settings.SCHEDULER)
    pipeline = IngestPipeline(
        allow_list=allow_list,
        ledger=ledger,
        queue=queue,
        fetcher=TelethonMediaFetcher(),
        observed_quiet_period=settings.ALBUMS.observed_quiet_period,
        forwarded_quiet_period=settings.ALBUMS.forwarded_quiet_period,
        admin_user_ids=settings.INGEST.admin_user_ids,
    )
    commands = AdminCommands(scheduler, queue, settings.INGEST.admin_user_ids)
    commands.register(bot)

    resolver = PeerResolver(client)
    destination_id = await bot.get_peer_id(settings.DESTINATION)

    # One handler per client; all filtering happens in the pipeline.
    @client.on(events.NewMessage())
    async def observe(event) -> None:
        try:
            # Never relay the destination back into itself.
            if event.chat_id == destination_id:
                return
            message = await build_observed_message(event.message, resolver)
            await pipeline.handle_observed(message)
        except Exception:
            logger.exception("Watcher error")

    @bot.on(events.NewMessage(incoming=True))
    async def ingest(event) -> None:
        try:
            if not event.is_private or parse_command(event.raw_text) is not None:
                return
            message = build_forwarded_message(event.message, settings.INGEST_DEFAULT_TITLE)
            await pipeline.handle_forwarded(message)
        except Exception:
            logger.exception("Forward-ingest error")

    scheduler.start()
    logger.info("Watcher started. Listening for new messages...")

    try:
        await asyncio.gather(client.run_until_disconnected(), bot.run_until_disconnected())
    finally:
        scheduler.stop()
        pipeline.close()
        await client.disconnect()
        await bot.disconnect()


def _run() -> None:
    _print_banner()
    import settings

    _configure_logging(settings.LOGGING, settings.PROJECT_ROOT)
    logging.getLogger(__name__).info("Starting relay")
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Relay stopped")


def _dialog_type(dialog: Any) -> str:
    if getattr(dialog, "is_channel", False):
        entity = getattr(dialog, "entity", None)
        if getattr(entity, "megagroup", False):
            return "group"
        return "channel"
    if getattr(dialog, "is_group", False):
        return "group"
    if getattr(dialog, "is_user", False):
        return "user"
    return "chat"


def _dialog_title(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = getattr(dialog, "name", None)
    if name:
        return str(name)
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


def _format_dialog(index: int, dialog: Any) -> str:
    username = getattr(getattr(dialog, "entity", None), "username", None)
    handle = f"@{username}" if username else "-"
    return f"{index}. {_dialog_type(dialog)} | title=\"{_dialog_title(dialog)}\" | {handle} | id={dialog.id}"


async def _list_dialogs(client) -> None:
    # Titles go into sources.groups and handles into sources.channels.
    dialogs = []
    async for dialog in client.iter_dialogs():
        # Skip private 1:1 chats; only groups and channels can be relayed.
        if dialog.is_user:
            continue
        dialogs.append(dialog)

    if not dialogs:
        print("No group or channel dialogs found.")
        return

    print("Found chats/channels:")
    for index, dialog in enumerate(dialogs, start=1):
        print(_format_dialog(index, dialog))


def _discover() -> None:
    _print_banner()
    from client import build_client

    async def _run_discover() -> None:
        client = build_client()
        await client.connect()
        try:
            if not await client.is_user_authorized():
                raise RuntimeError("TELEGRAM_SESSION is not authorized; run `relay session` first")
            await _list_dialogs(client)
        finally:
            await client.disconnect()

    asyncio.run(_run_discover())


def _session() -> None:
    _print_banner()
    from get_session import generate_session, new_session_client, print_session

    async def _run_session() -> str:
        return await generate_session(new_session_client())

    print_session(asyncio.run(_run_session()))


def _queue_browser() -> None:
    _print_banner()
    import settings
    from frontend.app import QueueBrowserApp

    QueueBrowserApp(db_path=settings.DB_PATH).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="relay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser(
        "discover",
        help="List groups and channels with their titles and handles for the allow-list.",
    )
    subparsers.add_parser("session", help="Log in and print a TELEGRAM_SESSION string")
    subparsers.add_parser("queue", help="Browse and export the post queue")

    args = parser.parse_args(argv)
    if args.command == "discover":
        _discover()
        return
    if args.command == "session":
        _session()
        return
    if args.command == "queue":
        _queue_browser()
        return
    _run()


if __name__ == "__main__":
    main()
