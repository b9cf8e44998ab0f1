"""Administrative bot commands.

Each command maps onto a public scheduler operation. Failures are answered
with a short message; details only go to the log.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional

from telethon import events

from adapters.status_formatting import (
    WELCOME_TEXT,
    format_batch_report,
    format_queue_status,
    format_scheduler_status,
)
from core.models import QueueStats
from core.post_queue import PostQueue
from core.scheduler import QueueScheduler, SchedulerState

LOGGER = logging.getLogger(__name__)

COMMANDS = ("start", "queue", "status", "pause", "resume", "test")
COMMAND_RE = re.compile(r"^/(?P<name>[A-Za-z_]+)(?:@\w+)?(?:\s|$)")

StatusFormatter = Callable[[QueueStats, SchedulerState, int, float], str]


def parse_command(text: str) -> Optional[str]:
    """Return the known command name in ``text``, if any."""

    match = COMMAND_RE.match((text or "").strip())
    if not match:
        return None
    name = match.group("name").lower()
    return name if name in COMMANDS else None


class AdminCommands:
    """Answer admin commands using the scheduler owned by the app."""

    def __init__(
        self,
        scheduler: QueueScheduler,
        queue: PostQueue,
        admin_user_ids: Iterable[int] = (),
    ) -> None:
        self._scheduler = scheduler
        self._queue = queue
        self._admin_user_ids = {int(user_id) for user_id in admin_user_ids}

    def is_admin(self, user_id: Optional[int]) -> bool:
        return not self._admin_user_ids or user_id in self._admin_user_ids

    async def reply_for(self, command: str) -> str:
        """Run one command and return the reply text."""

        if command == "start":
            return WELCOME_TEXT
        if command == "pause":
            self._scheduler.pause()
            return "⏸️ Queue paused. Messages will not be posted until you /resume."
        if command == "resume":
            self._scheduler.resume()
            return "▶️ Queue resumed. Posting will continue."
        if command == "queue":
            return await self._status_reply(
                format_queue_status, "Queue status command error", "Failed to fetch queue status."
            )
        if command == "status":
            return await self._status_reply(
                format_scheduler_status, "Status command error", "❌ Error fetching status."
            )
        if command == "test":
            try:
                report = await self._scheduler.process_queue()
                stats = await self._queue.stats()
            except Exception:
                LOGGER.exception("Test command error")
                return "❌ Error processing queue. Check logs."
            return format_batch_report(report, stats)
        return "Unknown command."

    async def _status_reply(self, formatter: StatusFormatter, log_message: str, failure_reply: str) -> str:
        try:
            stats = await self._queue.stats()
        except Exception:
            LOGGER.exception(log_message)
            return failure_reply
        return formatter(
            stats,
            self._scheduler.state,
            self._scheduler.batch_size,
            self._scheduler.interval,
        )

    def register(self, client) -> None:
        """Attach a single command handler to the bot client."""

        @client.on(events.NewMessage(incoming=True, pattern=COMMAND_RE))
        async def handler(event) -> None:
            try:
                command = parse_command(event.raw_text)
                if command is None or not event.is_private:
                    return
                if not self.is_admin(event.sender_id):
                    return
                if command == "test":
                    await event.reply("🔄 Manually processing queue...")
                await event.reply(await self.reply_for(command))
            except Exception:
                LOGGER.exception("Error while handling admin command")
